#
# SPDX-FileCopyrightText: Copyright (c) 2025 provide.io llc. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#

"""Exception hierarchy for verwatch.

Recoverable registry errors (conflict, not found, busy, setup failure) are
surfaced to callers. Transient errors from the outbound clients (fetch,
dispatch, comparison) are absorbed by the monitor's check cycle and turned
into a retry-interval reschedule; they never escape a cycle.
"""

from __future__ import annotations


class VerwatchError(Exception):
    """Base exception for verwatch errors."""

    def __init__(self, message: str, key: str | None = None):
        self.key = key
        super().__init__(message)


class ConfigConflictError(VerwatchError):
    """Raised when registering a monitor whose key is already registered."""

    def __init__(self, key: str):
        super().__init__(
            f"Monitor '{key}' is already registered. Delete it first or choose a different relationship.",
            key,
        )


class MonitorNotFoundError(VerwatchError):
    """Raised when operating on a key that has no live monitor."""

    def __init__(self, key: str):
        super().__init__(f"Monitor '{key}' is not registered.", key)


class MonitorBusyError(VerwatchError):
    """Raised when a manual trigger arrives while a check is already running.

    Callers may treat this as "already in progress" rather than a failure.
    """

    def __init__(self, key: str):
        super().__init__(f"Monitor '{key}' is already checking.", key)


class SetupFailureError(VerwatchError):
    """Raised when a monitor could not be initialised during registration."""

    def __init__(self, key: str, cause: BaseException):
        self.cause = cause
        super().__init__(f"Monitor '{key}' failed to initialise: {cause}", key)


class StateStoreError(VerwatchError):
    """Raised when persisted monitor state cannot be read or written."""


class UpstreamFetchError(VerwatchError):
    """Transient failure fetching the latest upstream release."""

    def __init__(self, upstream: str, reason: str):
        self.upstream = upstream
        self.reason = reason
        super().__init__(f"Fetching latest release of '{upstream}' failed: {reason}")


class ReleaseNotFoundError(UpstreamFetchError):
    """The upstream has no published release (or does not exist)."""

    def __init__(self, upstream: str):
        super().__init__(upstream, "no release found")


class ReleaseComparisonError(VerwatchError):
    """A fetched release lacks the timestamp required by the comparison mode."""


class DispatchError(VerwatchError):
    """Transient failure delivering a dispatch notification downstream."""

    def __init__(self, downstream: str, reason: str):
        self.downstream = downstream
        self.reason = reason
        super().__init__(f"Dispatch to '{downstream}' failed: {reason}")


# 🔼⚙️🔚
