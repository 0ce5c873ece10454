"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for irsession:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.irsession/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Settings** -- a single :class:`~irsession.models.Settings` JSON file
  storing the API location, login policy and credential file paths.
* **Precedence resolution** -- :func:`resolve_settings` merges CLI flags,
  environment variables, the settings file and defaults.

All file writes use an atomic temp-file-then-rename strategy
(:func:`atomic_write`) so a crash never leaves a half-written settings or
credential file behind.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from irsession.exceptions import ConfigError
from irsession.models import Settings

_APP_NAME = "irsession"
_CONFIG_FILENAME = "config.json"
_KEY_FILENAME = "key"
_CREDS_FILENAME = "creds.enc"

ENV_BASE_URL = "IRSESSION_BASE_URL"
ENV_KEY_FILE = "IRSESSION_KEY_FILE"
ENV_CREDS_FILE = "IRSESSION_CREDS_FILE"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/irsession/`` (default ``~/.config/irsession/``).
    On macOS/Windows: ``~/.irsession/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (credential envelope, crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/irsession/`` (default ``~/.local/share/irsession/``).
    On macOS/Windows: ``~/.irsession/data/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


def default_key_file() -> Path:
    """Default location of the AES key file: ``<config_dir>/key``."""
    return get_config_dir() / _KEY_FILENAME


def default_creds_file() -> Path:
    """Default location of the credential envelope: ``<data_dir>/creds.enc``."""
    return get_data_dir() / _CREDS_FILENAME


# --- Atomic file writes ---


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems.  When *mode* is
    given it is applied to the temp file before any content is written, so
    the final file never exists with looser permissions.  On any failure the
    temp file is removed and *path* is left as it was.

    Args:
        path: Destination file.
        data: Text content.
        mode: Optional permission bits (e.g. ``0o600``).
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        if mode is not None:
            os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any error (including KeyboardInterrupt).
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Settings ---


def _settings_path() -> Path:
    """Path to the settings file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_settings() -> Settings:
    """Load settings from the XDG config directory.

    Returns:
        The deserialised :class:`~irsession.models.Settings`. If the file
        does not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _settings_path()
    if not path.is_file():
        return Settings()
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text)
        return Settings.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid settings at {path}: {exc}") from exc


def save_settings(settings: Settings) -> None:
    """Persist settings atomically to disk.

    Args:
        settings: The settings to save.
    """
    data = settings.model_dump(mode="json")
    atomic_write(_settings_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def resolve_settings(
    cli_base_url: Optional[str] = None,
    cli_key_file: Optional[str] = None,
    cli_creds_file: Optional[str] = None,
) -> Settings:
    """Resolve settings with the full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_base_url``, ``cli_key_file``, ``cli_creds_file``)
        2. Environment variables (``IRSESSION_BASE_URL``,
           ``IRSESSION_KEY_FILE``, ``IRSESSION_CREDS_FILE``)
        3. User config (``~/.config/irsession/config.json``)
        4. Defaults

    ``key_file`` and ``creds_file`` are always populated on the returned
    object, using :func:`default_key_file` / :func:`default_creds_file`
    when nothing else sets them.

    Returns:
        The effective :class:`~irsession.models.Settings`.
    """
    settings = load_settings()

    overrides = (
        ("base_url", ENV_BASE_URL, cli_base_url),
        ("key_file", ENV_KEY_FILE, cli_key_file),
        ("creds_file", ENV_CREDS_FILE, cli_creds_file),
    )
    for field, env_var, cli_value in overrides:
        env_value = os.environ.get(env_var)
        if cli_value is not None:
            setattr(settings, field, cli_value)
        elif env_value:
            setattr(settings, field, env_value)

    if settings.key_file is None:
        settings.key_file = str(default_key_file())
    if settings.creds_file is None:
        settings.creds_file = str(default_creds_file())

    return settings
