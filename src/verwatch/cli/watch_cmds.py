#
# SPDX-FileCopyrightText: Copyright (c) 2025 provide.io llc. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#

"""CLI command that runs the release watcher until interrupted."""

from __future__ import annotations

import asyncio
from pathlib import Path
import signal
import sys

import click
from provide.foundation.cli.decorators import logging_options
from provide.foundation.logger import get_logger
from structlog.typing import FilteringBoundLogger as StructLogger

from verwatch.cli.options import config_path_option
from verwatch.config import ConfigurationError
from verwatch.errors import StateStoreError
from verwatch.runtime.orchestrator import WatchOrchestrator

log: StructLogger = get_logger(__name__)


def _configure_logging(log_level: str | None, log_file: Path | None) -> None:
    """Initialise Foundation telemetry for a long-running watch process."""
    from attrs import evolve
    from provide.foundation import LoggingConfig, TelemetryConfig, get_hub

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)

    base_config = TelemetryConfig.from_env()
    telemetry_config = evolve(
        base_config,
        service_name="verwatch",
        logging=LoggingConfig(
            default_level=(log_level or "INFO").upper(),
            log_file=log_file,
        ),
    )
    get_hub().initialize_foundation(telemetry_config)


def _request_shutdown(shutdown_event: asyncio.Event, sig: signal.Signals) -> None:
    log.warning("Received shutdown signal", signal=sig.name, signal_num=int(sig))
    if not shutdown_event.is_set():
        shutdown_event.set()
    else:
        log.warning("Shutdown already requested, signal ignored.")


async def _run_watch(config_path: Path) -> None:
    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _request_shutdown, shutdown_event, sig)
        except NotImplementedError:
            # Windows event loops do not support signal handlers.
            pass

    orchestrator = WatchOrchestrator(config_path=config_path, shutdown_event=shutdown_event)
    await orchestrator.run()


@click.command(name="watch")
@config_path_option
@logging_options
@click.pass_context
def watch_cli(ctx: click.Context, config_path: Path, **kwargs):
    """Watch all configured projects and dispatch on new upstream releases."""
    log_file = kwargs.get("log_file")
    _configure_logging(kwargs.get("log_level"), Path(log_file) if log_file else None)

    try:
        asyncio.run(_run_watch(config_path))
    except ConfigurationError as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)
    except StateStoreError as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nInterrupted.")


# 🔼⚙️🔚
