#
# SPDX-FileCopyrightText: Copyright (c) 2025 provide.io llc. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#

"""Clock and per-key wake-up timers."""

from verwatch.scheduler.clock import Clock, SystemClock
from verwatch.scheduler.timer import AsyncioTimerService, TimerService, WakeHandler

__all__ = ["AsyncioTimerService", "Clock", "SystemClock", "TimerService", "WakeHandler"]

# 🔼⚙️🔚
