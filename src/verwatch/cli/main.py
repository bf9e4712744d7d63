#
# SPDX-FileCopyrightText: Copyright (c) 2025 provide.io llc. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#

"""Main CLI entry point for verwatch."""

from __future__ import annotations

import click

from verwatch import __version__
from verwatch.cli.monitor_cmds import check_release, pause_monitor, resume_monitor, show_status
from verwatch.cli.watch_cmds import watch_cli


@click.group()
@click.version_option(version=__version__, prog_name="verwatch")
def cli():
    """verwatch: dispatch downstream notifications when upstream releases change."""


cli.add_command(watch_cli)
cli.add_command(show_status)
cli.add_command(pause_monitor)
cli.add_command(resume_monitor)
cli.add_command(check_release)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()

# 🔼⚙️🔚
