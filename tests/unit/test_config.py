#
# SPDX-FileCopyrightText: Copyright (c) 2025 provide.io llc. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#

"""Tests for configuration models and TOML loading."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest

from verwatch.config import (
    BaseConfig,
    ComparisonMode,
    ConfigurationError,
    GlobalConfig,
    MonitorConfig,
    TimeConfig,
    load_config,
    make_unique_key,
    parse_duration,
)
from tests.helpers.builders import make_monitor_config


class TestBaseConfig:
    """Relationship identity and validation."""

    def test_unique_key_format(self) -> None:
        base = BaseConfig(upstream_owner="nodejs", upstream_repo="node", my_owner="me", my_repo="images")

        assert base.upstream == "nodejs/node"
        assert base.downstream == "me/images"
        assert make_unique_key(base) == "nodejs/node->me/images"

    def test_key_ignores_timing_and_mode(self) -> None:
        a = make_monitor_config(check=60, mode=ComparisonMode.PUBLISHED_AT)
        b = make_monitor_config(check=7200, mode=ComparisonMode.UPDATED_AT)

        assert a.unique_key == b.unique_key
        assert a != b

    @pytest.mark.parametrize("bad", ["", "a/b", "has space", "tab\tchar"])
    def test_rejects_malformed_identifiers(self, bad: str) -> None:
        with pytest.raises(ValueError):
            BaseConfig(upstream_owner=bad, upstream_repo="r", my_owner="o", my_repo="r")

    def test_dispatch_secret_is_optional(self) -> None:
        base = BaseConfig(upstream_owner="a", upstream_repo="b", my_owner="c", my_repo="d")
        assert base.dispatch_token_secret is None


class TestTimeConfig:
    """Interval defaults and validation."""

    def test_defaults(self) -> None:
        times = TimeConfig()

        assert times.check_interval == timedelta(hours=1)
        assert times.retry_interval == timedelta(seconds=10)
        assert times.initial_delay == timedelta(0)

    def test_negative_interval_rejected(self) -> None:
        with pytest.raises(ValueError, match="must be non-negative"):
            TimeConfig(retry_interval=timedelta(seconds=-1))

    def test_zero_is_allowed(self) -> None:
        assert TimeConfig(check_interval=timedelta(0)).check_interval == timedelta(0)


class TestMonitorConfig:
    def test_comparison_mode_accepts_string(self) -> None:
        config = MonitorConfig(
            base=BaseConfig(upstream_owner="a", upstream_repo="b", my_owner="c", my_repo="d"),
            comparison_mode="updated_at",
        )
        assert config.comparison_mode is ComparisonMode.UPDATED_AT

    def test_unknown_comparison_mode_rejected(self) -> None:
        with pytest.raises(ValueError):
            MonitorConfig(
                base=BaseConfig(upstream_owner="a", upstream_repo="b", my_owner="c", my_repo="d"),
                comparison_mode="created_at",
            )


class TestParseDuration:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (30, timedelta(seconds=30)),
            (1.5, timedelta(seconds=1.5)),
            ("45", timedelta(seconds=45)),
            ("30s", timedelta(seconds=30)),
            ("15m", timedelta(minutes=15)),
            ("1h", timedelta(hours=1)),
            ("2d", timedelta(days=2)),
            (" 10 S ", timedelta(seconds=10)),
        ],
    )
    def test_valid(self, value, expected: timedelta) -> None:
        assert parse_duration(value) == expected

    @pytest.mark.parametrize("value", ["soon", "10w", "-5s", True, None, [1]])
    def test_invalid(self, value) -> None:
        with pytest.raises(ValueError, match="Invalid duration"):
            parse_duration(value)


class TestLoadConfig:
    """Loading the TOML configuration file."""

    def test_full_file(self, write_config, tmp_path: Path) -> None:
        path = write_config(
            """
            [global]
            state_file = "state/verwatch.json"
            fetch_timeout_seconds = 5
            pat_token_name = "ORG_PAT"

            [projects.node]
            upstream = "nodejs/node"
            downstream = "me/node-images"
            check_interval = "15m"
            retry_interval = "30s"
            initial_delay = 5

            [projects.uv]
            upstream = "astral-sh/uv"
            downstream = "me/containers"
            comparison_mode = "updated_at"
            dispatch_token_secret = "CONTAINERS_PAT"
            enabled = false
            """
        )

        config = load_config(path)

        assert config.global_config.state_file == tmp_path / "state" / "verwatch.json"
        assert config.global_config.fetch_timeout_seconds == 5.0
        assert config.global_config.pat_token_name == "ORG_PAT"
        assert config.global_config.github_token_name == "GITHUB_TOKEN"

        node = config.projects["node"].monitor
        assert node.unique_key == "nodejs/node->me/node-images"
        assert node.time_config.check_interval == timedelta(minutes=15)
        assert node.time_config.retry_interval == timedelta(seconds=30)
        assert node.time_config.initial_delay == timedelta(seconds=5)
        assert node.comparison_mode is ComparisonMode.PUBLISHED_AT

        uv = config.projects["uv"]
        assert uv.enabled is False
        assert uv.monitor.comparison_mode is ComparisonMode.UPDATED_AT
        assert uv.monitor.base.dispatch_token_secret == "CONTAINERS_PAT"
        assert [p.name for p in config.enabled_projects] == ["node"]

    def test_defaults_when_sections_missing(self, write_config) -> None:
        config = load_config(write_config(""))

        assert config.projects == {}
        assert config.global_config == GlobalConfig()

    def test_find_project_by_name_or_key(self, write_config) -> None:
        config = load_config(
            write_config(
                """
                [projects.node]
                upstream = "nodejs/node"
                downstream = "me/node-images"
                """
            )
        )

        assert config.find_project("node") is config.projects["node"]
        assert config.find_project("nodejs/node->me/node-images") is config.projects["node"]
        assert config.find_project("missing") is None

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(tmp_path / "absent.conf")

    def test_invalid_toml(self, write_config) -> None:
        with pytest.raises(ConfigurationError, match="Invalid TOML"):
            load_config(write_config("[projects.node\nupstream = "))

    @pytest.mark.parametrize(
        "body",
        [
            '[projects.x]\nupstream = "nodejs"\ndownstream = "me/r"\n',
            '[projects.x]\nupstream = "a/b"\ndownstream = "me/r"\ncheck_interval = "often"\n',
            '[projects.x]\nupstream = "a/b"\ndownstream = "me/r"\ncomparison_mode = "created_at"\n',
            '[projects.x]\nupstream = "a/b"\ndownstream = "me/r"\nretry_interval = -1\n',
            '[global]\nfetch_timeout_seconds = 0\n',
            '[global]\nunknown_option = 1\n',
        ],
    )
    def test_invalid_values(self, write_config, body: str) -> None:
        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            load_config(write_config(body))

    def test_duplicate_relationship_rejected(self, write_config) -> None:
        path = write_config(
            """
            [projects.one]
            upstream = "a/b"
            downstream = "c/d"

            [projects.two]
            upstream = "a/b"
            downstream = "c/d"
            check_interval = "5m"
            """
        )

        with pytest.raises(ConfigurationError, match="same relationship 'a/b->c/d'"):
            load_config(path)


# 🔼⚙️🔚
