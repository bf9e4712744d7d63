#
# SPDX-FileCopyrightText: Copyright (c) 2025 provide.io llc. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#

"""One-shot, per-key wake-up timers.

Contract shared by every implementation:

- ``arm(key, at_time)`` replaces any wake-up already armed for ``key``.
- ``cancel(key)`` clears a pending wake-up and is a no-op otherwise.
- The bound handler is invoked with ``key`` at or after ``at_time``.
- At most one wake-up is outstanding per key at any time.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Protocol

from attrs import define
from provide.foundation.logger import get_logger

from verwatch.scheduler.clock import Clock, SystemClock

log = get_logger(__name__)

WakeHandler = Callable[[str], Awaitable[None]]


class TimerService(Protocol):
    def bind(self, handler: WakeHandler) -> None: ...

    def arm(self, key: str, at_time: datetime) -> None: ...

    def cancel(self, key: str) -> None: ...

    def pending(self, key: str) -> datetime | None: ...

    async def close(self) -> None: ...


@define
class _ArmedTimer:
    at_time: datetime
    handle: asyncio.TimerHandle


class AsyncioTimerService:
    """Timer service backed by ``loop.call_later`` handles.

    Fired wake-ups run the handler in their own task so one slow monitor
    never delays another. The entry for a key is removed before its handler
    starts, which lets the handler re-arm the same key.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()
        self._handler: WakeHandler | None = None
        self._timers: dict[str, _ArmedTimer] = {}
        self._tasks: set[asyncio.Task[None]] = set()
        self._closed = False

    def bind(self, handler: WakeHandler) -> None:
        self._handler = handler

    def arm(self, key: str, at_time: datetime) -> None:
        if self._closed:
            raise RuntimeError("Timer service is closed")
        self.cancel(key)
        loop = asyncio.get_running_loop()
        delay = max(0.0, (at_time - self._clock.now()).total_seconds())
        handle = loop.call_later(delay, self._fire, key)
        self._timers[key] = _ArmedTimer(at_time=at_time, handle=handle)
        log.debug("Wake-up armed", monitor=key, at=at_time.isoformat(), delay_seconds=round(delay, 3))

    def cancel(self, key: str) -> None:
        armed = self._timers.pop(key, None)
        if armed is not None:
            armed.handle.cancel()
            log.debug("Wake-up cancelled", monitor=key)

    def pending(self, key: str) -> datetime | None:
        armed = self._timers.get(key)
        return armed.at_time if armed else None

    def _fire(self, key: str) -> None:
        self._timers.pop(key, None)
        if self._handler is None:
            log.warning("Wake-up fired with no handler bound", monitor=key)
            return
        task = asyncio.create_task(self._run_handler(key, self._handler), name=f"verwatch-wake:{key}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_handler(self, key: str, handler: WakeHandler) -> None:
        try:
            await handler(key)
        except asyncio.CancelledError:
            raise
        except Exception:
            log.exception("Wake-up handler failed", monitor=key)

    async def close(self) -> None:
        """Cancel every pending wake-up and wait for running handlers to finish."""
        self._closed = True
        for key in list(self._timers):
            self.cancel(key)
        if self._tasks:
            for task in list(self._tasks):
                task.cancel()
            await asyncio.gather(*self._tasks, return_exceptions=True)


# 🔼⚙️🔚
