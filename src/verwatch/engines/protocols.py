#
# SPDX-FileCopyrightText: Copyright (c) 2025 provide.io llc. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#

"""Capability interfaces the monitors depend on."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from verwatch.release import DispatchPayload, ReleaseRecord


class ReleaseSource(Protocol):
    """Looks up the latest release of an upstream repository."""

    async def fetch_latest(self, upstream: str) -> ReleaseRecord:
        """Return the latest release of ``upstream`` (``"owner/repo"``).

        Raises:
            ReleaseNotFoundError: If the upstream has no release.
            UpstreamFetchError: On any transport or payload failure.
        """
        ...


class Dispatcher(Protocol):
    """Delivers a one-shot notification to a downstream repository."""

    async def send(self, downstream: str, credential_ref: str, payload: DispatchPayload) -> None:
        """Deliver ``payload`` to ``downstream`` authenticating with the secret named ``credential_ref``.

        Raises:
            DispatchError: If delivery could not be confirmed.
        """
        ...


class SecretResolver(Protocol):
    def get_secret(self, name: str) -> str | None: ...


class EnvSecretResolver:
    """Resolves secret names from environment variables."""

    def get_secret(self, name: str) -> str | None:
        value = os.environ.get(name)
        return value or None


# 🔼⚙️🔚
