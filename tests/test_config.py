"""Tests for flowgen.config.

Covers:
- XDG data directory resolution
- atomic_write success and failure cleanup
- load_project_config parsing and errors
- resolve_options precedence: CLI > env > project > defaults
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from flowgen.config import (
    atomic_write,
    get_data_dir,
    get_logs_dir,
    load_project_config,
    resolve_options,
)
from flowgen.exceptions import ConfigError


class TestDataDir:
    def test_xdg_data_home(self, isolated_config: Path) -> None:
        with patch("flowgen.config._is_xdg_platform", return_value=True):
            path = get_data_dir()
        assert path == isolated_config / "data" / "flowgen"
        assert path.is_dir()

    def test_fallback_on_non_xdg_platform(self, tmp_path: Path) -> None:
        with patch("flowgen.config._is_xdg_platform", return_value=False), patch(
            "flowgen.config.Path.home", return_value=tmp_path
        ):
            path = get_data_dir()
        assert path == tmp_path / ".flowgen"

    def test_logs_dir_is_created(self, isolated_config: Path) -> None:
        with patch("flowgen.config._is_xdg_platform", return_value=True):
            path = get_logs_dir()
        assert path.name == "logs"
        assert path.is_dir()


class TestAtomicWrite:
    def test_writes_content_and_creates_parents(self, tmp_path: Path) -> None:
        target = tmp_path / "js" / "client.js"
        atomic_write(target, "// @flow\n")
        assert target.read_text(encoding="utf-8") == "// @flow\n"

    def test_replaces_existing_file(self, tmp_path: Path) -> None:
        target = tmp_path / "client.js"
        target.write_text("old")
        atomic_write(target, "new")
        assert target.read_text() == "new"

    def test_failure_leaves_no_temp_file(self, tmp_path: Path) -> None:
        target = tmp_path / "client.js"
        with patch("flowgen.config.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError, match="disk full"):
                atomic_write(target, "data")
        assert os.listdir(tmp_path) == []


class TestProjectConfig:
    def test_missing_file_returns_none(self, isolated_config: Path) -> None:
        assert load_project_config() is None

    def test_loads_object(self, isolated_config: Path) -> None:
        (isolated_config / "flowgen.json").write_text(json.dumps({"host": "api.local"}))
        assert load_project_config() == {"host": "api.local"}

    def test_invalid_json_raises(self, isolated_config: Path) -> None:
        (isolated_config / "flowgen.json").write_text("{not json")
        with pytest.raises(ConfigError, match="Invalid project config"):
            load_project_config()

    def test_non_object_raises(self, isolated_config: Path) -> None:
        (isolated_config / "flowgen.json").write_text("[1, 2]")
        with pytest.raises(ConfigError, match="expected a JSON object"):
            load_project_config()


class TestResolveOptions:
    def test_defaults(self, isolated_config: Path) -> None:
        options = resolve_options()
        assert options.out_dir == "."
        assert options.timeout == 20
        assert options.timeout_ms == 20000
        assert options.scheme == ""
        assert options.host == ""
        assert options.indent == "  "
        assert options.glue is True
        assert options.mark_optional is False

    def test_project_config_over_defaults(self, isolated_config: Path) -> None:
        (isolated_config / "flowgen.json").write_text(
            json.dumps({"host": "project.local", "timeout": 5, "glue": False})
        )
        options = resolve_options()
        assert options.host == "project.local"
        assert options.timeout == 5
        assert options.glue is False

    def test_env_over_project_config(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (isolated_config / "flowgen.json").write_text(json.dumps({"host": "project.local"}))
        monkeypatch.setenv("FLOWGEN_HOST", "env.local")
        monkeypatch.setenv("FLOWGEN_TIMEOUT", "2.5")
        options = resolve_options()
        assert options.host == "env.local"
        assert options.timeout_ms == 2500

    def test_cli_over_env(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FLOWGEN_HOST", "env.local")
        monkeypatch.setenv("FLOWGEN_OUT", "env-out")
        options = resolve_options(host="cli.local", out_dir=None)
        assert options.host == "cli.local"
        assert options.out_dir == "env-out"

    def test_unknown_project_option_raises(self, isolated_config: Path) -> None:
        (isolated_config / "flowgen.json").write_text(json.dumps({"hots": "typo"}))
        with pytest.raises(ConfigError, match="hots"):
            resolve_options()

    def test_invalid_timeout_raises(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("FLOWGEN_TIMEOUT", "soon")
        with pytest.raises(ConfigError, match="timeout"):
            resolve_options()

    def test_non_positive_timeout_raises(self, isolated_config: Path) -> None:
        with pytest.raises(ConfigError, match="positive"):
            resolve_options(timeout=0)
