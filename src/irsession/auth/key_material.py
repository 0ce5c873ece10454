"""Symmetric key loading with permission gating and in-place erasure.

The credential envelope is sealed with an AES key kept in its own file as
base64 text.  That file must be owner-read-only (``0400``); anything looser
is refused outright rather than warned about.

Keys are returned as a mutable :class:`bytearray` so the caller can
:func:`shred` them the moment a cipher has been built from them::

    key = load_key(path)
    aead = AESGCM(bytes(key))
    shred(key)  # immediately, not in a finally at the end of the function
"""

from __future__ import annotations

import base64
import binascii
import os
import secrets
from pathlib import Path
from typing import Union

from irsession.exceptions import ConfigError

KEY_SIZES = (16, 24, 32)
"""Supported AES key lengths in bytes."""

SHRED_BYTE = 0x69
"""Fixed pattern written over key bytes once they have been consumed."""

REQUIRED_KEY_MODE = 0o400

_B64_ALPHABET = b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"


def strict_b64decode(text: bytes) -> bytes:
    """Decode standard padded base64, accepting only the canonical encoding.

    ``base64.b64decode(..., validate=True)`` rejects foreign characters but
    ignores the unused low bits of the last digit before the padding, so
    several texts decode to the same bytes.  Those bits must be zero here.

    Raises:
        binascii.Error: If *text* is not canonical base64.
    """
    data = base64.b64decode(text, validate=True)
    pad = len(text) - len(text.rstrip(b"="))
    if pad:
        unused = 0b1111 if pad == 2 else 0b11
        if _B64_ALPHABET.find(text[-pad - 1]) & unused:
            raise binascii.Error("Non-zero padding bits")
    return data


def load_key(path: Union[str, Path]) -> bytearray:
    """Read and validate the key stored at *path*.

    The permission check happens before the file is opened, so a key file
    with the wrong mode is never read.

    Args:
        path: Key file containing base64 text.

    Returns:
        The decoded key.  The caller owns it and must :func:`shred` it.

    Raises:
        ConfigError: If the file cannot be stat'ed or read, its mode is not
            exactly ``0400``, its content is not strict base64, or the key
            is not 16, 24 or 32 bytes long.
    """
    key_path = Path(path).expanduser()
    try:
        mode = os.stat(key_path).st_mode & 0o777
    except OSError as exc:
        raise ConfigError(f"Cannot stat key file {key_path}: {exc}") from exc

    if mode != REQUIRED_KEY_MODE:
        raise ConfigError(
            f"Key file {key_path} must have perms set to 0400 (found {mode:04o})"
        )

    try:
        content = key_path.read_bytes()
    except OSError as exc:
        raise ConfigError(f"Cannot read key file {key_path}: {exc}") from exc

    try:
        key = bytearray(strict_b64decode(content.strip()))
    except (binascii.Error, ValueError) as exc:
        raise ConfigError(f"Key file {key_path} is not valid base64") from exc

    if len(key) not in KEY_SIZES:
        length = len(key)
        shred(key)
        raise ConfigError(
            f"Key in {key_path} must be 16, 24, or 32 bytes long (got {length})"
        )

    return key


def shred(key: bytearray) -> None:
    """Overwrite every byte of *key* with :data:`SHRED_BYTE` in place."""
    for i in range(len(key)):
        key[i] = SHRED_BYTE


def generate_key(path: Union[str, Path], size: int = 32) -> Path:
    """Create a new random key file with mode ``0400``.

    Args:
        path: Where to write the key.  Must not exist yet.
        size: Key length in bytes (16, 24 or 32).

    Returns:
        The path written.

    Raises:
        ConfigError: If *size* is unsupported, the file already exists, or
            it cannot be created.
    """
    if size not in KEY_SIZES:
        raise ConfigError(f"Key size must be 16, 24, or 32 bytes (got {size})")

    key_path = Path(path).expanduser()
    key_path.parent.mkdir(parents=True, exist_ok=True)
    encoded = base64.b64encode(secrets.token_bytes(size))

    try:
        fd = os.open(key_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    except FileExistsError:
        raise ConfigError(f"Key file {key_path} already exists") from None
    except OSError as exc:
        raise ConfigError(f"Cannot create key file {key_path}: {exc}") from exc

    try:
        os.write(fd, encoded)
        os.fsync(fd)
    finally:
        os.close(fd)
    os.chmod(key_path, REQUIRED_KEY_MODE)
    return key_path
