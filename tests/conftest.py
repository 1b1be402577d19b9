"""Shared test fixtures for flowgen.

Provides the design fixture (raw, validated and linked), an isolated
configuration environment, output managers, and a CLI runner. These
fixtures are discovered by pytest and available to every test module.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
import yaml

from flowgen.design.builder import build_api
from flowgen.design.types import APIDefinition
from flowgen.models import DesignDocument
from flowgen.output import OutputFormat, OutputManager, reset_output, set_output


FIXTURES_DIR = Path(__file__).parent / "fixtures"
DESIGN_PATH = FIXTURES_DIR / "design.yaml"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams and the
    test finishes, the cached references become stale. Resetting forces a
    fresh manager on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Design fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def design_raw() -> dict[str, Any]:
    """The cellar design document as a plain dict."""
    with open(DESIGN_PATH, encoding="utf-8") as f:
        return yaml.safe_load(f)


@pytest.fixture
def design_document(design_raw: dict[str, Any]) -> DesignDocument:
    return DesignDocument.model_validate(design_raw)


@pytest.fixture
def cellar_api(design_document: DesignDocument) -> APIDefinition:
    """The linked cellar API definition."""
    return build_api(design_document)


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points XDG_DATA_HOME into tmp_path, clears every FLOWGEN_* variable,
    and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory.
    """
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in ["FLOWGEN_OUT", "FLOWGEN_TIMEOUT", "FLOWGEN_SCHEME", "FLOWGEN_HOST"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def json_output() -> OutputManager:
    """Install a JSON-format OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.JSON)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
