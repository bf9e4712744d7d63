#
# SPDX-FileCopyrightText: Copyright (c) 2025 provide.io llc. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#

"""Per-monitor persisted state slots.

Each monitor owns exactly one slot, keyed by its unique key. The store is
not a general key-value store: it only ever holds serialised monitor
records.
"""

from __future__ import annotations

import asyncio
import copy
import json
import os
from pathlib import Path
import tempfile
from typing import Any, Protocol

from provide.foundation.logger import get_logger

from verwatch.errors import StateStoreError
from verwatch.state.runtime import STATE_FORMAT_VERSION

log = get_logger(__name__)


class StateStore(Protocol):
    """Durable storage for monitor records."""

    async def load(self, key: str) -> dict[str, Any] | None: ...

    async def save(self, key: str, record: dict[str, Any]) -> None: ...

    async def delete(self, key: str) -> bool: ...

    async def load_all(self) -> dict[str, dict[str, Any]]: ...


class MemoryStateStore:
    """In-process store. Records are deep-copied in and out."""

    def __init__(self) -> None:
        self._records: dict[str, dict[str, Any]] = {}

    async def load(self, key: str) -> dict[str, Any] | None:
        record = self._records.get(key)
        return copy.deepcopy(record) if record is not None else None

    async def save(self, key: str, record: dict[str, Any]) -> None:
        self._records[key] = copy.deepcopy(record)

    async def delete(self, key: str) -> bool:
        return self._records.pop(key, None) is not None

    async def load_all(self) -> dict[str, dict[str, Any]]:
        return copy.deepcopy(self._records)


class JsonFileStateStore:
    """All monitor records in one JSON document, rewritten atomically.

    Layout: ``{"version": 1, "monitors": {key: record}}``. Every write goes
    to a temporary file in the same directory which then replaces the
    original, so a crash never leaves a half-written document behind.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path).expanduser()
        self._lock = asyncio.Lock()
        self._log = log.bind(state_file=str(self.path))

    def _read(self) -> dict[str, dict[str, Any]]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise StateStoreError(f"Cannot read state file {self.path}: {e}") from e

        try:
            document = json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError as e:
            raise StateStoreError(f"State file {self.path} is not valid JSON: {e}") from e

        if not isinstance(document, dict):
            raise StateStoreError(f"State file {self.path} has an unexpected layout")
        version = document.get("version", STATE_FORMAT_VERSION)
        if version != STATE_FORMAT_VERSION:
            raise StateStoreError(f"Unsupported state file version {version} in {self.path}")
        monitors = document.get("monitors", {})
        if not isinstance(monitors, dict):
            raise StateStoreError(f"State file {self.path} has an unexpected layout")
        return monitors

    def _write(self, monitors: dict[str, dict[str, Any]]) -> None:
        document = {"version": STATE_FORMAT_VERSION, "monitors": monitors}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(document, fh, indent=2, sort_keys=True)
                    fh.flush()
                    os.fsync(fh.fileno())
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StateStoreError(f"Cannot write state file {self.path}: {e}") from e

    async def load(self, key: str) -> dict[str, Any] | None:
        async with self._lock:
            monitors = await asyncio.to_thread(self._read)
        return monitors.get(key)

    async def save(self, key: str, record: dict[str, Any]) -> None:
        async with self._lock:
            monitors = await asyncio.to_thread(self._read)
            monitors[key] = record
            await asyncio.to_thread(self._write, monitors)
        self._log.debug("Monitor state saved", monitor=key)

    async def delete(self, key: str) -> bool:
        async with self._lock:
            monitors = await asyncio.to_thread(self._read)
            if key not in monitors:
                return False
            del monitors[key]
            await asyncio.to_thread(self._write, monitors)
        self._log.debug("Monitor state deleted", monitor=key)
        return True

    async def load_all(self) -> dict[str, dict[str, Any]]:
        async with self._lock:
            return await asyncio.to_thread(self._read)


# 🔼⚙️🔚
