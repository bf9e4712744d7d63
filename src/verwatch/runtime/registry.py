#
# SPDX-FileCopyrightText: Copyright (c) 2025 provide.io llc. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#

"""The registry: the single coordination point for monitor actors.

The registry only knows which keys exist. Configuration and state live in
the actors, and the registry changes them exclusively by calling actor
operations.
"""

from __future__ import annotations

import asyncio

from provide.foundation.logger import get_logger

from verwatch.config.models import BaseConfig, MonitorConfig, make_unique_key
from verwatch.engines.protocols import Dispatcher, ReleaseSource
from verwatch.errors import (
    ConfigConflictError,
    MonitorNotFoundError,
    SetupFailureError,
    StateStoreError,
)
from verwatch.runtime.monitor import CheckOutcome, MonitorActor, MonitorSettings
from verwatch.scheduler.clock import Clock, SystemClock
from verwatch.scheduler.timer import TimerService
from verwatch.state.runtime import MonitorSummary, monitor_from_dict
from verwatch.state.store import StateStore

log = get_logger(__name__)

MonitorTarget = str | BaseConfig | MonitorConfig


def resolve_key(target: MonitorTarget) -> str:
    """Accept a unique key, a base config or a full monitor config."""
    if isinstance(target, MonitorConfig):
        return target.unique_key
    if isinstance(target, BaseConfig):
        return make_unique_key(target)
    return target


class Registry:
    """Creates, destroys, lists, pauses and triggers monitors by key."""

    def __init__(
        self,
        *,
        store: StateStore,
        timer: TimerService,
        release_source: ReleaseSource,
        dispatcher: Dispatcher,
        clock: Clock | None = None,
        settings: MonitorSettings | None = None,
        list_timeout: float = 5.0,
    ) -> None:
        self._store = store
        self._timer = timer
        self._clock = clock or SystemClock()
        self._release_source = release_source
        self._dispatcher = dispatcher
        self._settings = settings or MonitorSettings()
        self._list_timeout = list_timeout

        self._actors: dict[str, MonitorActor] = {}
        self._reserved: set[str] = set()
        self._timer.bind(self._on_wake)

    def _create_actor(self, key: str) -> MonitorActor:
        return MonitorActor(
            key,
            store=self._store,
            timer=self._timer,
            clock=self._clock,
            release_source=self._release_source,
            dispatcher=self._dispatcher,
            settings=self._settings,
        )

    def _get_actor(self, target: MonitorTarget) -> MonitorActor:
        key = resolve_key(target)
        actor = self._actors.get(key)
        if actor is None:
            raise MonitorNotFoundError(key)
        return actor

    # --- Index queries ---

    def contains(self, target: MonitorTarget) -> bool:
        return resolve_key(target) in self._actors

    def keys(self) -> list[str]:
        return sorted(self._actors)

    def get_actor(self, target: MonitorTarget) -> MonitorActor:
        return self._get_actor(target)

    def get_config(self, target: MonitorTarget) -> MonitorConfig:
        config = self._get_actor(target).config
        if config is None:
            raise MonitorNotFoundError(resolve_key(target))
        return config

    def __len__(self) -> int:
        return len(self._actors)

    # --- Operations ---

    async def register(self, config: MonitorConfig) -> str:
        """Create and set up a monitor for ``config``.

        Raises:
            ConfigConflictError: If a monitor with the same key exists (it is
                left untouched).
            SetupFailureError: If the monitor could not be initialised; the
                registration is rolled back and nothing is recorded.
        """
        key = config.unique_key
        if key in self._actors or key in self._reserved:
            raise ConfigConflictError(key)

        self._reserved.add(key)
        actor = self._create_actor(key)
        try:
            await actor.setup(config)
        except SetupFailureError:
            await self._discard(actor)
            raise
        finally:
            self._reserved.discard(key)

        # No await between setup arming the timer and the key being indexed,
        # so a wake-up can never reach an unindexed actor.
        self._actors[key] = actor
        log.info("Monitor registered", monitor=key, total=len(self._actors))
        return key

    async def _discard(self, actor: MonitorActor) -> None:
        try:
            await actor.stop()
        except StateStoreError as e:
            log.warning("Rollback could not erase monitor state", monitor=actor.key, error=str(e))

    async def unregister(self, target: MonitorTarget) -> MonitorConfig:
        """Stop a monitor, erase its state, and return the config that was in effect.

        Raises:
            MonitorNotFoundError: If no monitor is registered under the key.
        """
        key = resolve_key(target)
        actor = self._actors.pop(key, None)
        if actor is None:
            raise MonitorNotFoundError(key)

        config = actor.config
        try:
            config = await actor.stop() or config
        except StateStoreError as e:
            log.warning("Monitor removed but its state could not be erased", monitor=key, error=str(e))

        log.info("Monitor unregistered", monitor=key, total=len(self._actors))
        if config is None:
            # Registered actors always carry a config; treat a bare slot as absent.
            raise MonitorNotFoundError(key)
        return config

    async def remove(self, target: MonitorTarget) -> bool:
        """Silent variant of :meth:`unregister`: ``False`` when the key is unknown."""
        try:
            await self.unregister(target)
        except MonitorNotFoundError:
            return False
        return True

    async def list(self) -> list[MonitorSummary]:
        """Snapshot every monitor concurrently.

        A monitor whose snapshot fails or exceeds the list timeout is
        reported as an entry with ``error`` set; it never fails the listing.
        """
        actors = [self._actors[key] for key in sorted(self._actors)]
        results = await asyncio.gather(
            *(asyncio.wait_for(actor.snapshot(), timeout=self._list_timeout) for actor in actors),
            return_exceptions=True,
        )

        summaries: list[MonitorSummary] = []
        for actor, result in zip(actors, results, strict=True):
            if isinstance(result, MonitorSummary):
                summaries.append(result)
                continue
            if isinstance(result, TimeoutError):
                error = f"snapshot timed out after {self._list_timeout}s"
            else:
                error = f"{type(result).__name__}: {result}"
            log.warning("Monitor snapshot failed", monitor=actor.key, error=error)
            summaries.append(MonitorSummary(key=actor.key, status=actor.status, error=error))
        return summaries

    async def set_paused(self, target: MonitorTarget, paused: bool) -> None:
        """Pause or resume a monitor.

        Raises:
            MonitorNotFoundError: If no monitor is registered under the key.
        """
        await self._get_actor(target).set_paused(paused)

    async def trigger(self, target: MonitorTarget) -> CheckOutcome:
        """Run an immediate out-of-band check.

        Raises:
            MonitorNotFoundError: If no monitor is registered under the key.
            MonitorBusyError: If the monitor is already checking.
        """
        return await self._get_actor(target).trigger_now()

    async def restore(self) -> list[str]:
        """Rebuild monitors from every persisted record not already registered."""
        records = await self._store.load_all()
        restored: list[str] = []
        for key, record in sorted(records.items()):
            if key in self._actors:
                continue
            try:
                config, state = monitor_from_dict(record)
            except (KeyError, TypeError, ValueError) as e:
                log.warning("Skipping corrupt persisted monitor", monitor=key, error=str(e))
                continue
            if config.unique_key != key:
                log.warning("Skipping persisted monitor with mismatched key", monitor=key, derived=config.unique_key)
                continue

            actor = self._create_actor(key)
            try:
                await actor.restore(config, state)
            except RuntimeError as e:
                # Left in the store so the next restore can try again.
                log.warning("Skipping persisted monitor that could not be restored", monitor=key, error=str(e))
                continue
            self._actors[key] = actor
            restored.append(key)

        if restored:
            log.info("Monitors restored from state", count=len(restored))
        return restored

    async def close(self) -> None:
        """Cancel every pending wake-up and forget all actors, keeping persisted state."""
        for key in list(self._actors):
            self._timer.cancel(key)
        self._actors.clear()
        log.debug("Registry closed")

    async def _on_wake(self, key: str) -> None:
        actor = self._actors.get(key)
        if actor is None:
            log.debug("Wake-up for unknown monitor ignored", monitor=key)
            return
        await actor.on_wake()


# 🔼⚙️🔚
