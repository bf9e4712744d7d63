#
# SPDX-FileCopyrightText: Copyright (c) 2025 provide.io llc. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#

"""Configuration models and TOML loading for verwatch."""

from __future__ import annotations

from datetime import timedelta
from enum import Enum
from pathlib import Path
import re
import tomllib
from typing import Any

from attrs import define, field, validators
from provide.foundation.logger import get_logger

log = get_logger(__name__)

DEFAULT_CONFIG_FILENAME = "verwatch.conf"
DEFAULT_STATE_FILE = Path("~/.verwatch/state.json")
DEFAULT_CHECK_INTERVAL = timedelta(hours=1)
DEFAULT_RETRY_INTERVAL = timedelta(seconds=10)
DEFAULT_INITIAL_DELAY = timedelta(0)

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([smhd]?)\s*$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}
_IDENTIFIER_RE = re.compile(r"^[^/\s]+$")


class ConfigurationError(Exception):
    """Raised when the configuration file is missing, unreadable or invalid."""

    def __init__(self, message: str, path: Path | None = None):
        self.path = path
        super().__init__(f"{message} ({path})" if path else message)


class ComparisonMode(Enum):
    """Which release timestamp decides whether a release is newer."""

    PUBLISHED_AT = "published_at"
    UPDATED_AT = "updated_at"


def _non_negative_timedelta(instance: Any, attribute: Any, value: timedelta) -> None:
    if value < timedelta(0):
        raise ValueError(f"{attribute.name} must be non-negative, got {value}")


def _identifier(instance: Any, attribute: Any, value: str) -> None:
    if not isinstance(value, str) or not _IDENTIFIER_RE.match(value):
        raise ValueError(f"{attribute.name} must be a non-empty name without '/' or whitespace, got {value!r}")


def _positive(instance: Any, attribute: Any, value: float) -> None:
    if value <= 0:
        raise ValueError(f"{attribute.name} must be positive, got {value}")


@define(frozen=True, slots=True)
class BaseConfig:
    """Identifies one upstream → downstream relationship."""

    upstream_owner: str = field(validator=_identifier)
    upstream_repo: str = field(validator=_identifier)
    my_owner: str = field(validator=_identifier)
    my_repo: str = field(validator=_identifier)
    # Name of the secret holding the dispatch credential, never the secret itself.
    dispatch_token_secret: str | None = field(
        default=None, validator=validators.optional(validators.instance_of(str))
    )

    @property
    def upstream(self) -> str:
        return f"{self.upstream_owner}/{self.upstream_repo}"

    @property
    def downstream(self) -> str:
        return f"{self.my_owner}/{self.my_repo}"


@define(frozen=True, slots=True)
class TimeConfig:
    """Scheduling periods for a monitor.

    ``retry_interval`` is expected to be no longer than ``check_interval``
    but this is not enforced.
    """

    check_interval: timedelta = field(default=DEFAULT_CHECK_INTERVAL, validator=_non_negative_timedelta)
    retry_interval: timedelta = field(default=DEFAULT_RETRY_INTERVAL, validator=_non_negative_timedelta)
    initial_delay: timedelta = field(default=DEFAULT_INITIAL_DELAY, validator=_non_negative_timedelta)


def make_unique_key(base: BaseConfig) -> str:
    """Derive the monitor key for a relationship."""
    return f"{base.upstream}->{base.downstream}"


@define(frozen=True, slots=True)
class MonitorConfig:
    """Everything a monitor needs to run: who to watch, when, and how to compare."""

    base: BaseConfig
    time_config: TimeConfig = field(factory=TimeConfig)
    comparison_mode: ComparisonMode = field(
        default=ComparisonMode.PUBLISHED_AT, converter=ComparisonMode
    )

    @property
    def unique_key(self) -> str:
        return make_unique_key(self.base)


@define(frozen=True, slots=True)
class GlobalConfig:
    """Process-wide settings."""

    state_file: Path = field(default=DEFAULT_STATE_FILE, converter=Path)
    fetch_timeout_seconds: float = field(default=15.0, converter=float, validator=_positive)
    dispatch_timeout_seconds: float = field(default=15.0, converter=float, validator=_positive)
    list_timeout_seconds: float = field(default=5.0, converter=float, validator=_positive)
    github_token_name: str = field(default="GITHUB_TOKEN")
    pat_token_name: str = field(default="MY_GITHUB_PAT")
    dispatch_event_type: str = field(default="upstream_update")

    @property
    def state_file_path(self) -> Path:
        return self.state_file.expanduser()


@define(frozen=True, slots=True)
class ProjectEntry:
    """A named project from the configuration file."""

    name: str
    monitor: MonitorConfig
    enabled: bool = True


@define(frozen=True, slots=True)
class VerwatchConfig:
    """Root configuration object."""

    global_config: GlobalConfig = field(factory=GlobalConfig)
    projects: dict[str, ProjectEntry] = field(factory=dict)

    @property
    def enabled_projects(self) -> list[ProjectEntry]:
        return [p for p in self.projects.values() if p.enabled]

    def find_project(self, name_or_key: str) -> ProjectEntry | None:
        """Look a project up by its config name or its monitor key."""
        if name_or_key in self.projects:
            return self.projects[name_or_key]
        for project in self.projects.values():
            if project.monitor.unique_key == name_or_key:
                return project
        return None


def parse_duration(value: Any) -> timedelta:
    """Parse ``30``, ``"30s"``, ``"15m"``, ``"1h"`` or ``"2d"`` into a timedelta."""
    if isinstance(value, timedelta):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, int | float):
        return timedelta(seconds=value)
    if isinstance(value, str):
        match = _DURATION_RE.match(value.lower())
        if match:
            amount, unit = match.groups()
            return timedelta(seconds=float(amount) * _DURATION_UNITS[unit])
    raise ValueError(f"Invalid duration: {value!r}")


def _split_identifier(value: Any, field_name: str) -> tuple[str, str]:
    if not isinstance(value, str) or value.count("/") != 1:
        raise ValueError(f"'{field_name}' must look like 'owner/repo', got {value!r}")
    owner, repo = value.split("/")
    return owner, repo


def _parse_project(name: str, raw: dict[str, Any]) -> ProjectEntry:
    upstream_owner, upstream_repo = _split_identifier(raw.get("upstream"), "upstream")
    my_owner, my_repo = _split_identifier(raw.get("downstream"), "downstream")
    base = BaseConfig(
        upstream_owner=upstream_owner,
        upstream_repo=upstream_repo,
        my_owner=my_owner,
        my_repo=my_repo,
        dispatch_token_secret=raw.get("dispatch_token_secret"),
    )
    time_config = TimeConfig(
        check_interval=parse_duration(raw.get("check_interval", DEFAULT_CHECK_INTERVAL)),
        retry_interval=parse_duration(raw.get("retry_interval", DEFAULT_RETRY_INTERVAL)),
        initial_delay=parse_duration(raw.get("initial_delay", DEFAULT_INITIAL_DELAY)),
    )
    monitor = MonitorConfig(
        base=base,
        time_config=time_config,
        comparison_mode=raw.get("comparison_mode", ComparisonMode.PUBLISHED_AT.value),
    )
    return ProjectEntry(name=name, monitor=monitor, enabled=bool(raw.get("enabled", True)))


def _parse_global(raw: dict[str, Any], config_dir: Path) -> GlobalConfig:
    kwargs = dict(raw)
    state_file = kwargs.pop("state_file", None)
    if state_file is not None:
        path = Path(state_file).expanduser()
        kwargs["state_file"] = path if path.is_absolute() else config_dir / path
    return GlobalConfig(**kwargs)


def load_config(config_path: Path) -> VerwatchConfig:
    """Load and validate a verwatch TOML configuration file.

    Raises:
        ConfigurationError: If the file is missing, is not valid TOML, or
            describes an invalid configuration.
    """
    config_path = Path(config_path)
    log.debug("Loading configuration", path=str(config_path))

    try:
        with config_path.open("rb") as fh:
            raw = tomllib.load(fh)
    except FileNotFoundError as e:
        raise ConfigurationError("Configuration file not found", config_path) from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML: {e}", config_path) from e

    try:
        global_config = _parse_global(raw.get("global", {}), config_path.parent)
        projects = {
            name: _parse_project(name, project_raw)
            for name, project_raw in raw.get("projects", {}).items()
        }
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid configuration: {e}", config_path) from e

    keys: dict[str, str] = {}
    for name, project in projects.items():
        key = project.monitor.unique_key
        if key in keys:
            raise ConfigurationError(
                f"Projects '{keys[key]}' and '{name}' describe the same relationship '{key}'",
                config_path,
            )
        keys[key] = name

    log.info("Configuration loaded", path=str(config_path), projects=len(projects))
    return VerwatchConfig(global_config=global_config, projects=projects)


# 🔼⚙️🔚
