#
# SPDX-FileCopyrightText: Copyright (c) 2025 provide.io llc. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#

"""Tests for monitor state, its persisted layout, and the state stores."""

from __future__ import annotations

import json
from datetime import timedelta
from pathlib import Path

import pytest

from verwatch.config import ComparisonMode
from verwatch.errors import StateStoreError
from verwatch.state import (
    JsonFileStateStore,
    MemoryStateStore,
    MonitorState,
    MonitorStatus,
    MonitorSummary,
    monitor_from_dict,
    monitor_to_dict,
)
from tests.helpers.builders import make_monitor_config
from tests.helpers.fakes import EPOCH, release


class TestMonitorState:
    """Bookkeeping helpers on MonitorState."""

    def test_failure_then_success_resets(self) -> None:
        state = MonitorState()

        state.record_failure("boom")
        state.record_failure("boom again")
        assert state.consecutive_failures == 2
        assert state.last_error == "boom again"

        state.record_success()
        assert state.consecutive_failures == 0
        assert state.last_error is None

    def test_advance_version(self) -> None:
        state = MonitorState(consecutive_failures=3, last_error="x")

        state.advance_version(release("v2"), EPOCH)

        assert state.current_version.tag == "v2"
        assert state.last_dispatched_at == EPOCH
        assert state.consecutive_failures == 0

    def test_copy_is_independent(self) -> None:
        state = MonitorState(paused=True)
        clone = state.copy()
        clone.paused = False
        assert state.paused is True


class TestPersistedLayout:
    def test_layout(self) -> None:
        config = make_monitor_config(check=60, retry=5, initial=1, mode=ComparisonMode.UPDATED_AT, secret="PAT")
        state = MonitorState(current_version=release("v1"), consecutive_failures=2, next_check_at=EPOCH)

        data = monitor_to_dict(config, state)

        assert data["base_config"] == {
            "upstream_owner": "acme",
            "upstream_repo": "widget",
            "my_owner": "me",
            "my_repo": "widget-builds",
            "dispatch_token_secret": "PAT",
        }
        assert data["time_config"] == {"check_interval": 60.0, "retry_interval": 5.0, "initial_delay": 1.0}
        assert data["comparison_mode"] == "updated_at"
        assert data["current_version"]["tag"] == "v1"
        assert data["next_check_at"] == EPOCH.isoformat()
        assert data["last_checked_at"] is None
        json.dumps(data)

    def test_restores_config_and_state(self) -> None:
        config = make_monitor_config(check=60, retry=5)
        state = MonitorState(current_version=release("v1"), paused=True, last_error="HTTP 502")

        restored_config, restored_state = monitor_from_dict(monitor_to_dict(config, state))

        assert restored_config == config
        assert restored_state == state

    def test_malformed_record(self) -> None:
        with pytest.raises(KeyError):
            monitor_from_dict({"base_config": {}})


class TestMonitorSummary:
    def test_ok_summary_to_dict(self) -> None:
        config = make_monitor_config()
        summary = MonitorSummary(key=config.unique_key, config=config, state=MonitorState(), status=MonitorStatus.SCHEDULED)

        data = summary.to_dict()

        assert summary.ok
        assert data["key"] == config.unique_key
        assert data["status"] == "SCHEDULED"
        assert data["error"] is None

    def test_error_summary(self) -> None:
        summary = MonitorSummary(key="a/b->c/d", status=MonitorStatus.CHECKING, error="timed out")

        assert not summary.ok
        assert summary.to_dict() == {"key": "a/b->c/d", "status": "CHECKING", "error": "timed out"}


@pytest.mark.asyncio
class TestMemoryStateStore:
    async def test_round_trip_and_isolation(self) -> None:
        store = MemoryStateStore()
        record = {"paused": False, "nested": {"n": 1}}

        await store.save("k", record)
        record["nested"]["n"] = 2
        loaded = await store.load("k")
        loaded["paused"] = True

        assert await store.load("k") == {"paused": False, "nested": {"n": 1}}

    async def test_delete(self) -> None:
        store = MemoryStateStore()
        await store.save("k", {})

        assert await store.delete("k") is True
        assert await store.delete("k") is False
        assert await store.load("k") is None
        assert await store.load_all() == {}


@pytest.mark.asyncio
class TestJsonFileStateStore:
    """Atomic JSON document store."""

    async def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        store = JsonFileStateStore(tmp_path / "state.json")

        assert await store.load_all() == {}
        assert await store.load("k") is None
        assert await store.delete("k") is False

    async def test_save_creates_document(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "state.json"
        store = JsonFileStateStore(path)

        await store.save("a/b->c/d", {"paused": True})
        await store.save("e/f->g/h", {"paused": False})

        document = json.loads(path.read_text())
        assert document == {
            "version": 1,
            "monitors": {"a/b->c/d": {"paused": True}, "e/f->g/h": {"paused": False}},
        }
        assert await store.load("a/b->c/d") == {"paused": True}

    async def test_delete_removes_only_one_slot(self, tmp_path: Path) -> None:
        store = JsonFileStateStore(tmp_path / "state.json")
        await store.save("one", {"n": 1})
        await store.save("two", {"n": 2})

        assert await store.delete("one") is True
        assert await store.load_all() == {"two": {"n": 2}}

    async def test_no_temp_files_left_behind(self, tmp_path: Path) -> None:
        store = JsonFileStateStore(tmp_path / "state.json")
        for i in range(5):
            await store.save(f"k{i}", {"i": i})

        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]

    async def test_corrupt_json(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        path.write_text("{not json")

        with pytest.raises(StateStoreError, match="not valid JSON"):
            await JsonFileStateStore(path).load_all()

    async def test_unsupported_version(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        path.write_text(json.dumps({"version": 99, "monitors": {}}))

        with pytest.raises(StateStoreError, match="Unsupported state file version"):
            await JsonFileStateStore(path).load("k")

    async def test_unexpected_layout(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        path.write_text(json.dumps([1, 2, 3]))

        with pytest.raises(StateStoreError, match="unexpected layout"):
            await JsonFileStateStore(path).load_all()

    async def test_persisted_monitor_round_trip(self, tmp_path: Path) -> None:
        store = JsonFileStateStore(tmp_path / "state.json")
        config = make_monitor_config(check=90)
        state = MonitorState(current_version=release("v9"), next_check_at=EPOCH + timedelta(seconds=90))

        await store.save(config.unique_key, monitor_to_dict(config, state))
        reopened = JsonFileStateStore(tmp_path / "state.json")
        loaded = await reopened.load(config.unique_key)

        assert monitor_from_dict(loaded) == (config, state)


# 🔼⚙️🔚
