#
# SPDX-FileCopyrightText: Copyright (c) 2025 provide.io llc. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#

"""Runtime state of a single monitor and its persisted representation."""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum, auto
from typing import Any

from attrs import define, field

from verwatch.config.models import BaseConfig, ComparisonMode, MonitorConfig, TimeConfig
from verwatch.release import ReleaseRecord, format_timestamp, parse_timestamp

STATE_FORMAT_VERSION = 1


class MonitorStatus(Enum):
    """Lifecycle states of a monitor actor."""

    UNINITIALIZED = auto()
    SCHEDULED = auto()
    CHECKING = auto()
    PAUSED = auto()
    STOPPED = auto()


STATUS_EMOJI_MAP = {
    MonitorStatus.UNINITIALIZED: "⚪",
    MonitorStatus.SCHEDULED: "⏰",
    MonitorStatus.CHECKING: "🔄",
    MonitorStatus.PAUSED: "⏸️",
    MonitorStatus.STOPPED: "⏹️",
}


@define
class MonitorState:
    """Mutable state owned by exactly one monitor actor."""

    current_version: ReleaseRecord | None = field(default=None)
    paused: bool = field(default=False)
    consecutive_failures: int = field(default=0)

    next_check_at: datetime | None = field(default=None)
    last_checked_at: datetime | None = field(default=None)
    last_dispatched_at: datetime | None = field(default=None)
    last_error: str | None = field(default=None)

    def record_success(self) -> None:
        self.consecutive_failures = 0
        self.last_error = None

    def record_failure(self, error: str) -> None:
        self.consecutive_failures += 1
        self.last_error = error

    def advance_version(self, record: ReleaseRecord, at: datetime) -> None:
        self.current_version = record
        self.last_dispatched_at = at
        self.record_success()

    def copy(self) -> MonitorState:
        return MonitorState(
            current_version=self.current_version,
            paused=self.paused,
            consecutive_failures=self.consecutive_failures,
            next_check_at=self.next_check_at,
            last_checked_at=self.last_checked_at,
            last_dispatched_at=self.last_dispatched_at,
            last_error=self.last_error,
        )


@define(frozen=True)
class MonitorSummary:
    """One entry of a registry listing.

    ``error`` is set (and ``config``/``state`` may be ``None``) when the
    monitor's snapshot could not be read.
    """

    key: str
    config: MonitorConfig | None = None
    state: MonitorState | None = None
    status: MonitorStatus | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"key": self.key}
        if self.config is not None and self.state is not None:
            result.update(monitor_to_dict(self.config, self.state))
        result["status"] = self.status.name if self.status else None
        result["error"] = self.error
        return result


def _seconds(value: timedelta) -> float:
    return value.total_seconds()


def monitor_to_dict(config: MonitorConfig, state: MonitorState) -> dict[str, Any]:
    """Serialise a monitor's configuration and state to a JSON-safe dict."""
    base = config.base
    times = config.time_config
    return {
        "base_config": {
            "upstream_owner": base.upstream_owner,
            "upstream_repo": base.upstream_repo,
            "my_owner": base.my_owner,
            "my_repo": base.my_repo,
            "dispatch_token_secret": base.dispatch_token_secret,
        },
        "time_config": {
            "check_interval": _seconds(times.check_interval),
            "retry_interval": _seconds(times.retry_interval),
            "initial_delay": _seconds(times.initial_delay),
        },
        "comparison_mode": config.comparison_mode.value,
        "current_version": state.current_version.to_dict() if state.current_version else None,
        "paused": state.paused,
        "consecutive_failures": state.consecutive_failures,
        "next_check_at": format_timestamp(state.next_check_at),
        "last_checked_at": format_timestamp(state.last_checked_at),
        "last_dispatched_at": format_timestamp(state.last_dispatched_at),
        "last_error": state.last_error,
    }


def monitor_from_dict(data: dict[str, Any]) -> tuple[MonitorConfig, MonitorState]:
    """Inverse of :func:`monitor_to_dict`.

    Raises:
        KeyError, TypeError, ValueError: If the record is malformed.
    """
    times = data["time_config"]
    config = MonitorConfig(
        base=BaseConfig(**data["base_config"]),
        time_config=TimeConfig(
            check_interval=timedelta(seconds=times["check_interval"]),
            retry_interval=timedelta(seconds=times["retry_interval"]),
            initial_delay=timedelta(seconds=times["initial_delay"]),
        ),
        comparison_mode=ComparisonMode(data["comparison_mode"]),
    )
    version = data.get("current_version")
    state = MonitorState(
        current_version=ReleaseRecord.from_dict(version) if version else None,
        paused=bool(data.get("paused", False)),
        consecutive_failures=int(data.get("consecutive_failures", 0)),
        next_check_at=parse_timestamp(data.get("next_check_at")),
        last_checked_at=parse_timestamp(data.get("last_checked_at")),
        last_dispatched_at=parse_timestamp(data.get("last_dispatched_at")),
        last_error=data.get("last_error"),
    )
    return config, state


# 🔼⚙️🔚
