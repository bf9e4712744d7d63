#
# SPDX-FileCopyrightText: Copyright (c) provide.io llc. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#

"""Test helper modules for verwatch.

This package contains deterministic fakes for the clock, the timer service
and the outbound GitHub clients, plus configuration file builders."""

from __future__ import annotations

# 🔼⚙️🔚
