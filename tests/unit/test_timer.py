#
# SPDX-FileCopyrightText: Copyright (c) 2025 provide.io llc. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#

"""Tests for the asyncio-backed wake-up timer service."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from verwatch.scheduler import AsyncioTimerService, SystemClock


class Recorder:
    def __init__(self) -> None:
        self.keys: list[str] = []
        self.event = asyncio.Event()

    async def __call__(self, key: str) -> None:
        self.keys.append(key)
        self.event.set()


@pytest.fixture
def wall_clock() -> SystemClock:
    return SystemClock()


@pytest.mark.asyncio
class TestAsyncioTimerService:
    """arm / cancel / fire semantics with short real delays."""

    async def test_fires_after_delay(self, wall_clock) -> None:
        timer = AsyncioTimerService(wall_clock)
        recorder = Recorder()
        timer.bind(recorder)

        at = wall_clock.now() + timedelta(milliseconds=20)
        timer.arm("k", at)
        assert timer.pending("k") == at

        await asyncio.wait_for(recorder.event.wait(), timeout=1.0)
        assert recorder.keys == ["k"]
        assert timer.pending("k") is None
        await timer.close()

    async def test_past_time_fires_immediately(self, wall_clock) -> None:
        timer = AsyncioTimerService(wall_clock)
        recorder = Recorder()
        timer.bind(recorder)

        timer.arm("k", wall_clock.now() - timedelta(hours=1))

        await asyncio.wait_for(recorder.event.wait(), timeout=1.0)
        assert recorder.keys == ["k"]
        await timer.close()

    async def test_rearm_replaces_pending(self, wall_clock) -> None:
        timer = AsyncioTimerService(wall_clock)
        recorder = Recorder()
        timer.bind(recorder)

        timer.arm("k", wall_clock.now() + timedelta(milliseconds=10))
        later = wall_clock.now() + timedelta(milliseconds=60)
        timer.arm("k", later)
        assert timer.pending("k") == later

        await asyncio.wait_for(recorder.event.wait(), timeout=1.0)
        await asyncio.sleep(0.08)
        assert recorder.keys == ["k"]
        await timer.close()

    async def test_cancel(self, wall_clock) -> None:
        timer = AsyncioTimerService(wall_clock)
        recorder = Recorder()
        timer.bind(recorder)

        timer.arm("k", wall_clock.now() + timedelta(milliseconds=10))
        timer.cancel("k")
        timer.cancel("never-armed")

        await asyncio.sleep(0.05)
        assert recorder.keys == []
        assert timer.pending("k") is None
        await timer.close()

    async def test_keys_are_independent(self, wall_clock) -> None:
        timer = AsyncioTimerService(wall_clock)
        recorder = Recorder()
        timer.bind(recorder)

        timer.arm("a", wall_clock.now() + timedelta(milliseconds=10))
        timer.arm("b", wall_clock.now() + timedelta(milliseconds=10))
        timer.cancel("a")

        await asyncio.wait_for(recorder.event.wait(), timeout=1.0)
        assert recorder.keys == ["b"]
        await timer.close()

    async def test_handler_can_rearm_its_own_key(self, wall_clock) -> None:
        timer = AsyncioTimerService(wall_clock)
        fired: list[str] = []
        done = asyncio.Event()

        async def handler(key: str) -> None:
            fired.append(key)
            if len(fired) < 3:
                timer.arm(key, wall_clock.now())
            else:
                done.set()

        timer.bind(handler)
        timer.arm("k", wall_clock.now())

        await asyncio.wait_for(done.wait(), timeout=1.0)
        assert fired == ["k", "k", "k"]
        await timer.close()

    async def test_handler_error_does_not_break_service(self, wall_clock) -> None:
        timer = AsyncioTimerService(wall_clock)
        recorder = Recorder()

        async def handler(key: str) -> None:
            if key == "bad":
                raise RuntimeError("boom")
            await recorder(key)

        timer.bind(handler)
        timer.arm("bad", wall_clock.now())
        await asyncio.sleep(0.02)
        timer.arm("good", wall_clock.now())

        await asyncio.wait_for(recorder.event.wait(), timeout=1.0)
        assert recorder.keys == ["good"]
        await timer.close()

    async def test_close_cancels_and_rejects_new_arms(self, wall_clock) -> None:
        timer = AsyncioTimerService(wall_clock)
        recorder = Recorder()
        timer.bind(recorder)
        timer.arm("k", wall_clock.now() + timedelta(milliseconds=20))

        await timer.close()
        await asyncio.sleep(0.05)

        assert recorder.keys == []
        with pytest.raises(RuntimeError, match="closed"):
            timer.arm("k", wall_clock.now())

    async def test_close_cancels_running_handlers(self, wall_clock) -> None:
        timer = AsyncioTimerService(wall_clock)
        started = asyncio.Event()
        cancelled = asyncio.Event()

        async def handler(key: str) -> None:
            started.set()
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        timer.bind(handler)
        timer.arm("k", wall_clock.now())
        await asyncio.wait_for(started.wait(), timeout=1.0)

        await timer.close()
        assert cancelled.is_set()


# 🔼⚙️🔚
