#
# SPDX-FileCopyrightText: Copyright (c) 2025 provide.io llc. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#

"""Offline monitor commands that work against the configuration and state file."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from pathlib import Path
import sys

import click
from provide.foundation.cli.decorators import logging_options
from provide.foundation.logger import get_logger
from structlog.typing import FilteringBoundLogger as StructLogger

from verwatch.cli.options import config_path_option
from verwatch.config import ConfigurationError, ProjectEntry, VerwatchConfig, load_config
from verwatch.engines.github import GitHubReleaseSource, create_http_client
from verwatch.engines.protocols import EnvSecretResolver
from verwatch.errors import ReleaseComparisonError, StateStoreError, UpstreamFetchError
from verwatch.release import ReleaseRecord
from verwatch.state import (
    STATUS_EMOJI_MAP,
    JsonFileStateStore,
    MonitorState,
    MonitorStatus,
    monitor_from_dict,
    monitor_to_dict,
)

log: StructLogger = get_logger(__name__)

RUNNING_WATCHER_NOTE = "   (a running 'verwatch watch' keeps its own copy; restart it to pick this up)"


def _format_when(value: datetime | None) -> str:
    return value.isoformat() if value else "-"


def _persisted_status(state: MonitorState) -> MonitorStatus:
    return MonitorStatus.PAUSED if state.paused else MonitorStatus.SCHEDULED


def _resolve_project(config: VerwatchConfig, name_or_key: str) -> ProjectEntry:
    project = config.find_project(name_or_key)
    if project is None:
        click.echo(f"❌ Error: Project '{name_or_key}' not found in configuration", err=True)
        sys.exit(1)
    return project


@click.command(name="status")
@config_path_option
@logging_options
@click.pass_context
def show_status(ctx: click.Context, config_path: Path, **kwargs):
    """Show the persisted state of every configured project."""
    try:
        config = load_config(config_path)
        store = JsonFileStateStore(config.global_config.state_file_path)
        records = asyncio.run(store.load_all())

        click.echo("\n📡 Release monitors\n")
        if not config.projects:
            click.echo("   No projects configured\n")
            return

        for project in config.projects.values():
            key = project.monitor.unique_key
            record = records.get(key)
            if not project.enabled:
                click.echo(f"⚫ {project.name} ({key}): disabled\n")
                continue
            if record is None:
                click.echo(f"{STATUS_EMOJI_MAP[MonitorStatus.UNINITIALIZED]} {project.name} ({key}): not started\n")
                continue

            try:
                _, state = monitor_from_dict(record)
            except (KeyError, TypeError, ValueError) as e:
                click.echo(f"⚠️  {project.name} ({key}): unreadable state ({e})\n")
                continue

            emoji = STATUS_EMOJI_MAP[_persisted_status(state)]
            version = state.current_version.tag if state.current_version else "-"
            click.echo(f"{emoji} {project.name} ({key}):")
            click.echo(f"   Version: {version}")
            click.echo(f"   Paused: {'yes' if state.paused else 'no'}")
            click.echo(f"   Failures: {state.consecutive_failures}")
            click.echo(f"   Next check: {_format_when(state.next_check_at)}")
            click.echo(f"   Last checked: {_format_when(state.last_checked_at)}")
            if state.last_error:
                click.echo(f"   Last error: {state.last_error}")
            click.echo("")

        orphans = sorted(set(records) - {p.monitor.unique_key for p in config.projects.values()})
        for key in orphans:
            click.echo(f"👻 {key}: persisted but no longer configured\n")

    except (ConfigurationError, StateStoreError) as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)


def _set_paused_offline(config_path: Path, name_or_key: str, paused: bool) -> None:
    config = load_config(config_path)
    project = _resolve_project(config, name_or_key)
    key = project.monitor.unique_key
    store = JsonFileStateStore(config.global_config.state_file_path)

    record = asyncio.run(store.load(key))
    if record is None:
        click.echo(f"⚠️  Warning: No state found for '{key}' (monitor has not started yet)")
        sys.exit(1)

    try:
        monitor_config, state = monitor_from_dict(record)
    except (KeyError, TypeError, ValueError) as e:
        raise StateStoreError(f"Corrupt state for monitor '{key}': {e}", key) from e

    if state.paused == paused:
        word = "paused" if paused else "running"
        click.echo(f"✅ '{key}' is already {word}")
        return

    state.paused = paused
    if paused:
        state.next_check_at = None
    else:
        state.next_check_at = datetime.now(UTC) + monitor_config.time_config.check_interval

    asyncio.run(store.save(key, monitor_to_dict(monitor_config, state)))
    log.info("Monitor pause flag updated", monitor=key, paused=paused)

    emoji = STATUS_EMOJI_MAP[_persisted_status(state)]
    if paused:
        click.echo(f"{emoji} Paused '{key}'")
    else:
        click.echo(f"{emoji} Resumed '{key}', next check at {_format_when(state.next_check_at)}")
    click.echo(RUNNING_WATCHER_NOTE)


@click.command(name="pause")
@click.argument("project")
@config_path_option
@logging_options
@click.pass_context
def pause_monitor(ctx: click.Context, project: str, config_path: Path, **kwargs):
    """Pause a monitor. PROJECT is a project name or 'owner/repo->owner/repo' key."""
    try:
        _set_paused_offline(config_path, project, paused=True)
    except (ConfigurationError, StateStoreError) as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)


@click.command(name="resume")
@click.argument("project")
@config_path_option
@logging_options
@click.pass_context
def resume_monitor(ctx: click.Context, project: str, config_path: Path, **kwargs):
    """Resume a paused monitor; the next check runs one check interval from now."""
    try:
        _set_paused_offline(config_path, project, paused=False)
    except (ConfigurationError, StateStoreError) as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)


async def _fetch_latest(config: VerwatchConfig, upstream: str) -> ReleaseRecord:
    global_config = config.global_config
    async with create_http_client(timeout=global_config.fetch_timeout_seconds) as client:
        source = GitHubReleaseSource(
            client, EnvSecretResolver(), read_token_name=global_config.github_token_name
        )
        return await source.fetch_latest(upstream)


@click.command(name="check")
@click.argument("project")
@config_path_option
@logging_options
@click.pass_context
def check_release(ctx: click.Context, project: str, config_path: Path, **kwargs):
    """Fetch the latest upstream release and compare it with the delivered one.

    This is a dry run: nothing is dispatched and the state file is not
    modified.

    Example:
        verwatch check my-project
    """
    try:
        config = load_config(config_path)
        entry = _resolve_project(config, project)
        monitor = entry.monitor
        key = monitor.unique_key

        store = JsonFileStateStore(config.global_config.state_file_path)
        record = asyncio.run(store.load(key))
        current: ReleaseRecord | None = None
        if record is not None:
            try:
                _, state = monitor_from_dict(record)
                current = state.current_version
            except (KeyError, TypeError, ValueError) as e:
                click.echo(f"⚠️  Warning: ignoring unreadable state for '{key}' ({e})")

        latest = asyncio.run(_fetch_latest(config, monitor.base.upstream))
        newer = latest.is_newer_than(current, monitor.comparison_mode)

        click.echo(f"\n🔍 {key} ({monitor.comparison_mode.value})")
        click.echo(f"   Upstream latest: {latest.tag} ({_format_when(latest.timestamp_for(monitor.comparison_mode))})")
        if current is not None:
            when = _format_when(current.timestamp_for(monitor.comparison_mode))
            click.echo(f"   Delivered:       {current.tag} ({when})")
        else:
            click.echo("   Delivered:       -")

        if newer:
            click.echo(f"\n🚀 '{latest.tag}' would be dispatched to {monitor.base.downstream}")
        else:
            click.echo("\n✅ Up to date")

    except (UpstreamFetchError, ReleaseComparisonError) as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)
    except (ConfigurationError, StateStoreError) as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)


# 🔼⚙️🔚
