# type: ignore
#
# SPDX-FileCopyrightText: Copyright (c) provide.io llc. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#

"""The core runtime package for verwatch: monitor actors and their registry."""

from .monitor import CheckOutcome, MonitorActor, MonitorSettings
from .orchestrator import WatchOrchestrator
from .registry import Registry

__all__ = ["CheckOutcome", "MonitorActor", "MonitorSettings", "Registry", "WatchOrchestrator"]

# 🔼⚙️🔚
