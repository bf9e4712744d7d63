#
# SPDX-FileCopyrightText: Copyright (c) 2025 provide.io llc. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#

"""GitHub REST implementations of the release source and dispatcher."""

from __future__ import annotations

from typing import Any

import httpx
from provide.foundation.logger import get_logger

from verwatch.engines.protocols import SecretResolver
from verwatch.errors import DispatchError, ReleaseNotFoundError, UpstreamFetchError
from verwatch.release import DispatchPayload, ReleaseRecord, parse_timestamp

log = get_logger(__name__)

GITHUB_API_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"
USER_AGENT = "verwatch"
DEFAULT_TIMEOUT_SECONDS = 15.0


def default_headers() -> dict[str, str]:
    return {
        "User-Agent": USER_AGENT,
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": GITHUB_API_VERSION,
    }


def create_http_client(timeout: float = DEFAULT_TIMEOUT_SECONDS, **kwargs: Any) -> httpx.AsyncClient:
    """Create the shared client used by both GitHub engines."""
    return httpx.AsyncClient(
        base_url=GITHUB_API_URL, headers=default_headers(), timeout=timeout, **kwargs
    )


class GitHubReleaseSource:
    """Reads ``/repos/{owner}/{repo}/releases/latest``."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        secrets: SecretResolver,
        read_token_name: str = "GITHUB_TOKEN",
    ) -> None:
        self._client = client
        self._secrets = secrets
        self._read_token_name = read_token_name
        self._log = log.bind(engine="github.releases")

    async def fetch_latest(self, upstream: str) -> ReleaseRecord:
        headers = {}
        token = self._secrets.get_secret(self._read_token_name)
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = await self._client.get(f"/repos/{upstream}/releases/latest", headers=headers)
        except httpx.HTTPError as e:
            raise UpstreamFetchError(upstream, f"{type(e).__name__}: {e}") from e

        if response.status_code == 404:
            raise ReleaseNotFoundError(upstream)
        if response.status_code != 200:
            raise UpstreamFetchError(upstream, f"HTTP {response.status_code}")

        try:
            body = response.json()
        except ValueError as e:
            raise UpstreamFetchError(upstream, f"invalid JSON: {e}") from e
        if not isinstance(body, dict):
            raise UpstreamFetchError(upstream, "unexpected response body")

        tag = body.get("tag_name")
        if not isinstance(tag, str) or not tag:
            raise UpstreamFetchError(upstream, "missing 'tag_name' in response")

        try:
            record = ReleaseRecord(
                tag=tag,
                published_at=parse_timestamp(body.get("published_at")),
                updated_at=parse_timestamp(body.get("updated_at")),
            )
        except (TypeError, ValueError) as e:
            raise UpstreamFetchError(upstream, f"invalid timestamp: {e}") from e

        self._log.debug("Latest release fetched", upstream=upstream, tag=record.tag)
        return record


class GitHubDispatcher:
    """Sends ``repository_dispatch`` events to ``/repos/{owner}/{repo}/dispatches``."""

    def __init__(self, client: httpx.AsyncClient, secrets: SecretResolver) -> None:
        self._client = client
        self._secrets = secrets
        self._log = log.bind(engine="github.dispatch")

    async def send(self, downstream: str, credential_ref: str, payload: DispatchPayload) -> None:
        token = self._secrets.get_secret(credential_ref)
        if not token:
            raise DispatchError(downstream, f"secret '{credential_ref}' is not available")

        body = {"event_type": payload.event_type, "client_payload": payload.client_payload()}
        try:
            response = await self._client.post(
                f"/repos/{downstream}/dispatches",
                json=body,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as e:
            raise DispatchError(downstream, f"{type(e).__name__}: {e}") from e

        if response.status_code != 204:
            raise DispatchError(downstream, f"HTTP {response.status_code}")

        self._log.info("Dispatch delivered", downstream=downstream, tag=payload.tag, event_type=payload.event_type)


# 🔼⚙️🔚
