# type: ignore
#
# SPDX-FileCopyrightText: Copyright (c) 2025 provide.io llc. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#

"""Monitor state management for verwatch."""

from verwatch.state.runtime import (
    STATUS_EMOJI_MAP,
    MonitorState,
    MonitorStatus,
    MonitorSummary,
    monitor_from_dict,
    monitor_to_dict,
)
from verwatch.state.store import JsonFileStateStore, MemoryStateStore, StateStore

__all__ = [
    "STATUS_EMOJI_MAP",
    "JsonFileStateStore",
    "MemoryStateStore",
    "MonitorState",
    "MonitorStatus",
    "MonitorSummary",
    "StateStore",
    "monitor_from_dict",
    "monitor_to_dict",
]

# 🔼⚙️🔚
