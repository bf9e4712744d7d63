#
# SPDX-FileCopyrightText: Copyright (c) 2025 provide.io llc. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#

"""Shared pytest fixtures for verwatch tests."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
import textwrap

import pytest

from verwatch.config import MonitorConfig
from verwatch.runtime import MonitorActor, MonitorSettings, Registry
from tests.helpers.builders import make_monitor_config
from tests.helpers.fakes import (
    FakeClock,
    FlakyStateStore,
    ManualTimerService,
    RecordingDispatcher,
    ScriptedReleaseSource,
)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def timer() -> ManualTimerService:
    return ManualTimerService()


@pytest.fixture
def store() -> FlakyStateStore:
    return FlakyStateStore()


@pytest.fixture
def source() -> ScriptedReleaseSource:
    return ScriptedReleaseSource()


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def settings() -> MonitorSettings:
    return MonitorSettings(fetch_timeout=1.0, dispatch_timeout=1.0)


@pytest.fixture
def monitor_config() -> MonitorConfig:
    return make_monitor_config()


@pytest.fixture
def make_actor(store, timer, clock, source, dispatcher, settings) -> Callable[[str], MonitorActor]:
    """Factory for actors wired to the shared fakes, with the timer bound to them."""
    actors: dict[str, MonitorActor] = {}

    async def on_wake(key: str) -> None:
        await actors[key].on_wake()

    timer.bind(on_wake)

    def factory(key: str) -> MonitorActor:
        actor = MonitorActor(
            key,
            store=store,
            timer=timer,
            clock=clock,
            release_source=source,
            dispatcher=dispatcher,
            settings=settings,
        )
        actors[key] = actor
        return actor

    return factory


@pytest.fixture
def registry(store, timer, clock, source, dispatcher, settings) -> Registry:
    return Registry(
        store=store,
        timer=timer,
        clock=clock,
        release_source=source,
        dispatcher=dispatcher,
        settings=settings,
        list_timeout=0.5,
    )


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[..., Path]:
    """Write a TOML configuration into ``tmp_path`` and return its path."""

    def writer(body: str, name: str = "verwatch.conf") -> Path:
        path = tmp_path / name
        path.write_text(textwrap.dedent(body))
        return path

    return writer


# 🔼⚙️🔚
