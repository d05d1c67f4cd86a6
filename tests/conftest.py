"""Shared test fixtures for specgate.

Provides reusable fixtures for loading spec fixtures, creating isolated
config environments, managing output state, and running CLI commands.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from specgate.models import SpecDocument
from specgate.output import OutputFormat, OutputManager, reset_output, set_output
from specgate.parser import load_document_from
from specgate.validation import ContractValidator

FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time; once CliRunner restores the real streams those
    references are stale.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Document fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def users_spec_path() -> Path:
    return FIXTURES_DIR / "users_api.yaml"


@pytest.fixture
def products_spec_path() -> Path:
    return FIXTURES_DIR / "products_api.json"


@pytest.fixture
def users_document(users_spec_path: Path) -> SpecDocument:
    """Loaded Users API (OpenAPI 3.0, YAML)."""
    return load_document_from(str(users_spec_path))


@pytest.fixture
def products_document(products_spec_path: Path) -> SpecDocument:
    """Loaded Products API (OpenAPI 3.1, JSON)."""
    return load_document_from(str(products_spec_path))


@pytest.fixture
def users_validator(users_document: SpecDocument) -> ContractValidator:
    return ContractValidator(users_document)


@pytest.fixture
def products_validator(products_document: SpecDocument) -> ContractValidator:
    return ContractValidator(products_document)


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME, XDG_CACHE_HOME, and XDG_DATA_HOME to
    subdirectories of tmp_path, clears ``SPECGATE_SPEC`` and changes the
    working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("specgate.config._is_xdg_platform", lambda: True)
    monkeypatch.delenv("SPECGATE_SPEC", raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def json_output() -> OutputManager:
    """Install a JSON-format OutputManager for the test."""
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
