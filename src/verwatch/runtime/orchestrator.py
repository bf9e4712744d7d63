#
# SPDX-FileCopyrightText: Copyright (c) 2025 provide.io llc. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#

"""Hosts a registry for the lifetime of the ``verwatch watch`` process."""

from __future__ import annotations

import asyncio
from pathlib import Path

import httpx
from provide.foundation.logger import get_logger

from verwatch.config import VerwatchConfig, load_config
from verwatch.engines.github import GitHubDispatcher, GitHubReleaseSource, create_http_client
from verwatch.engines.protocols import Dispatcher, EnvSecretResolver, ReleaseSource, SecretResolver
from verwatch.errors import SetupFailureError
from verwatch.runtime.monitor import MonitorSettings
from verwatch.runtime.registry import Registry
from verwatch.scheduler.clock import Clock, SystemClock
from verwatch.scheduler.timer import AsyncioTimerService, TimerService
from verwatch.state.store import JsonFileStateStore, StateStore

log = get_logger(__name__)


class WatchOrchestrator:
    """Loads configuration, reconciles monitors against it, and runs until shutdown.

    Reconciliation on start:
        1. Persisted monitors are restored with their delivered version,
           failure count and pause flag intact.
        2. Enabled projects without a monitor are registered.
        3. Restored monitors that are no longer configured (or are now
           disabled) are unregistered.
    """

    def __init__(
        self,
        config_path: Path,
        shutdown_event: asyncio.Event,
        *,
        store: StateStore | None = None,
        timer: TimerService | None = None,
        clock: Clock | None = None,
        release_source: ReleaseSource | None = None,
        dispatcher: Dispatcher | None = None,
        secrets: SecretResolver | None = None,
    ) -> None:
        self.config_path = Path(config_path)
        self.shutdown_event = shutdown_event
        self.config: VerwatchConfig | None = None
        self.registry: Registry | None = None

        self._store = store
        self._clock = clock or SystemClock()
        self._timer = timer
        self._release_source = release_source
        self._dispatcher = dispatcher
        self._secrets = secrets or EnvSecretResolver()
        self._http_client: httpx.AsyncClient | None = None

    def _build_registry(self, config: VerwatchConfig) -> Registry:
        global_config = config.global_config
        if self._release_source is None or self._dispatcher is None:
            self._http_client = create_http_client(
                timeout=max(global_config.fetch_timeout_seconds, global_config.dispatch_timeout_seconds)
            )
        if self._release_source is None:
            self._release_source = GitHubReleaseSource(
                self._http_client, self._secrets, read_token_name=global_config.github_token_name
            )
        if self._dispatcher is None:
            self._dispatcher = GitHubDispatcher(self._http_client, self._secrets)
        if self._store is None:
            self._store = JsonFileStateStore(global_config.state_file_path)
        if self._timer is None:
            self._timer = AsyncioTimerService(self._clock)

        return Registry(
            store=self._store,
            timer=self._timer,
            clock=self._clock,
            release_source=self._release_source,
            dispatcher=self._dispatcher,
            settings=MonitorSettings.from_global(global_config),
            list_timeout=global_config.list_timeout_seconds,
        )

    async def start(self) -> Registry:
        """Load config, build the registry and reconcile monitors."""
        self.config = load_config(self.config_path)
        self.registry = self._build_registry(self.config)
        await self.reconcile()
        return self.registry

    async def reconcile(self) -> None:
        if self.config is None or self.registry is None:
            raise RuntimeError("Orchestrator has not been started")
        registry = self.registry

        await registry.restore()

        wanted = {p.monitor.unique_key: p for p in self.config.enabled_projects}
        for key in registry.keys():
            if key not in wanted:
                await registry.unregister(key)
                log.info("Removed monitor no longer in configuration", monitor=key)

        for key, project in wanted.items():
            if registry.contains(key):
                if registry.get_config(key) != project.monitor:
                    # Configuration changed: recreate the monitor.
                    await registry.unregister(key)
                    log.info("Monitor configuration changed, recreating", monitor=key, project=project.name)
                else:
                    continue
            try:
                await registry.register(project.monitor)
            except SetupFailureError as e:
                log.error("Failed to register project", project=project.name, monitor=key, error=str(e))

        log.info("Monitors reconciled", active=len(registry))

    async def stop(self) -> None:
        if self.registry is not None:
            await self.registry.close()
        if self._timer is not None:
            await self._timer.close()
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
        log.info("Orchestrator stopped")

    async def run(self) -> None:
        """Start, wait for the shutdown event, then stop."""
        try:
            await self.start()
            log.info("Watching releases", config=str(self.config_path))
            await self.shutdown_event.wait()
        finally:
            await self.stop()


# 🔼⚙️🔚
