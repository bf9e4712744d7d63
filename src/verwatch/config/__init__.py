#
# SPDX-FileCopyrightText: Copyright (c) 2025 provide.io llc. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#

"""Configuration module for verwatch.

Re-exports all configuration models and loading functions."""

from __future__ import annotations

from verwatch.config.models import (
    DEFAULT_CONFIG_FILENAME,
    BaseConfig,
    ComparisonMode,
    ConfigurationError,
    GlobalConfig,
    MonitorConfig,
    ProjectEntry,
    TimeConfig,
    VerwatchConfig,
    load_config,
    make_unique_key,
    parse_duration,
)

__all__ = [
    "DEFAULT_CONFIG_FILENAME",
    "BaseConfig",
    "ComparisonMode",
    "ConfigurationError",
    "GlobalConfig",
    "MonitorConfig",
    "ProjectEntry",
    "TimeConfig",
    "VerwatchConfig",
    "load_config",
    "make_unique_key",
    "parse_duration",
]

# 🔼⚙️🔚
