#
# SPDX-FileCopyrightText: Copyright (c) 2025 provide.io llc. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#

"""Shared click options."""

from __future__ import annotations

from pathlib import Path

import click

from verwatch.config import DEFAULT_CONFIG_FILENAME

config_path_option = click.option(
    "-c",
    "--config-path",
    type=click.Path(exists=True, file_okay=True, dir_okay=False, readable=True, path_type=Path),
    default=Path(DEFAULT_CONFIG_FILENAME),
    show_default=True,
    envvar="VERWATCH_CONF",
    help="Path to the verwatch configuration file (env var VERWATCH_CONF).",
    show_envvar=True,
)

# 🔼⚙️🔚
