"""Shared test fixtures for irsession.

Provides reusable fixtures for isolated config directories, key files,
output state, and running CLI commands.  These fixtures are discovered by
pytest and available to all test modules without explicit imports.
"""

from __future__ import annotations

import base64
import os
from pathlib import Path

import pytest

from irsession.output import OutputFormat, OutputManager, reset_output, set_output


KEY_BYTES = bytes(range(32))


def write_key_file(path: Path, key: bytes = KEY_BYTES, mode: int = 0o400) -> Path:
    """Write *key* as base64 to *path* and apply *mode*."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.exists():
        os.chmod(path, 0o600)
    path.write_text(base64.b64encode(key).decode("ascii"), encoding="ascii")
    os.chmod(path, mode)
    return path


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time.  When Typer's CliRunner redirects those streams during a
    test, the cached references go stale once the test finishes.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path so
    tests never touch real user config, clears all IRSESSION_* environment
    variables, and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("irsession.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in [
        "IRSESSION_BASE_URL",
        "IRSESSION_KEY_FILE",
        "IRSESSION_CREDS_FILE",
        "IRSESSION_USERNAME",
        "IRSESSION_PASSWORD",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Key material fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_key_file():
    """Factory fixture: ``make_key_file(path, key=..., mode=...)``."""
    return write_key_file


@pytest.fixture
def key_file(tmp_path: Path) -> Path:
    """A valid 32-byte key file with mode 0400."""
    return write_key_file(tmp_path / "keys" / "irsession.key")


@pytest.fixture
def creds_file(tmp_path: Path) -> Path:
    """Path for the credential envelope (not created)."""
    return tmp_path / "creds" / "creds.enc"


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet PLAIN-format OutputManager for the duration of a test."""
    output = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
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
