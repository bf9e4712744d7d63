#
# SPDX-FileCopyrightText: Copyright (c) 2025 provide.io llc. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#

"""Release records and the "is newer" comparison policy."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from attrs import define, field

from verwatch.config.models import ComparisonMode
from verwatch.errors import ReleaseComparisonError

DEFAULT_DISPATCH_EVENT_TYPE = "upstream_update"


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp (``Z`` suffix accepted) into an aware UTC datetime."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise TypeError(f"timestamp must be a string, got {type(value).__name__}")
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def format_timestamp(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


@define(frozen=True, slots=True)
class ReleaseRecord:
    """The latest known release of an upstream repository."""

    tag: str
    published_at: datetime | None = field(default=None)
    updated_at: datetime | None = field(default=None)

    def timestamp_for(self, mode: ComparisonMode) -> datetime | None:
        if mode is ComparisonMode.UPDATED_AT:
            return self.updated_at
        return self.published_at

    def is_newer_than(self, current: ReleaseRecord | None, mode: ComparisonMode) -> bool:
        """Decide whether this release should be delivered over ``current``.

        A missing baseline, or a baseline without the compared timestamp
        (stored under another mode), always loses. Equal timestamps are not
        newer, so a release that was already delivered is never re-sent.

        Raises:
            ReleaseComparisonError: If this record lacks the compared timestamp.
        """
        candidate = self.timestamp_for(mode)
        if candidate is None:
            raise ReleaseComparisonError(f"Release '{self.tag}' has no '{mode.value}' timestamp")
        if current is None:
            return True
        baseline = current.timestamp_for(mode)
        if baseline is None:
            return True
        return candidate > baseline

    def to_dict(self) -> dict[str, Any]:
        return {
            "tag": self.tag,
            "published_at": format_timestamp(self.published_at),
            "updated_at": format_timestamp(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReleaseRecord:
        return cls(
            tag=data["tag"],
            published_at=parse_timestamp(data.get("published_at")),
            updated_at=parse_timestamp(data.get("updated_at")),
        )


@define(frozen=True, slots=True)
class DispatchPayload:
    """What the downstream is told when a newer release appears."""

    tag: str
    source_timestamp: datetime
    event_type: str = DEFAULT_DISPATCH_EVENT_TYPE

    @classmethod
    def for_release(
        cls, record: ReleaseRecord, mode: ComparisonMode, event_type: str = DEFAULT_DISPATCH_EVENT_TYPE
    ) -> DispatchPayload:
        timestamp = record.timestamp_for(mode)
        if timestamp is None:
            raise ReleaseComparisonError(f"Release '{record.tag}' has no '{mode.value}' timestamp")
        return cls(tag=record.tag, source_timestamp=timestamp, event_type=event_type)

    def client_payload(self) -> dict[str, Any]:
        return {"version": self.tag, "timestamp": self.source_timestamp.isoformat()}


# 🔼⚙️🔚
