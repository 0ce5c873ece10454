"""Encrypted-at-rest credential store.

A :class:`~irsession.models.Credentials` record is kept on disk as a single
line of base64 text::

    base64( nonce[12] || AES-GCM ciphertext || tag[16] )

The AES key comes from a separate ``0400`` key file (see
:mod:`irsession.auth.key_material`).  Every envelope is sealed with the
fixed associated data :data:`ASSOCIATED_DATA`, so an envelope written for
another application or format fails authentication here instead of being
decoded into something else.

Files are written atomically via :func:`~irsession.config.atomic_write`
with ``0o600`` permissions.  Any failure while saving leaves the previous
file in place; any failure while loading raises, and nothing partially
decrypted is ever returned.

Security Note:
    Never log the key, the plaintext record, or the envelope.
"""

from __future__ import annotations

import base64
import binascii
import os
from pathlib import Path
from typing import Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from pydantic import ValidationError

from irsession.auth.key_material import load_key, shred, strict_b64decode
from irsession.config import atomic_write
from irsession.exceptions import ConfigError, IntegrityError, IOError_
from irsession.models import Credentials
from irsession.output import debug

ASSOCIATED_DATA = b"irdata.auth"
"""Associated data bound into every envelope (domain separation tag)."""

NONCE_SIZE = 12  # 96-bit GCM nonce
TAG_SIZE = 16

_FILE_MODE = 0o600


def _cipher(key_path: Union[str, Path]) -> AESGCM:
    """Build the AEAD cipher for *key_path* and erase the loaded key.

    ``AESGCM`` holds on to the buffer it is given, so it gets its own
    immutable copy and the mutable one is shredded straight away.
    """
    key = load_key(key_path)
    try:
        aead = AESGCM(bytes(key))
    except ValueError as exc:
        shred(key)
        raise ConfigError(f"Cannot initialise cipher from {key_path}: {exc}") from exc
    shred(key)
    return aead


class CredentialStore:
    """Read/write one encrypted credential file.

    Args:
        key_path: Path to the base64 AES key file (mode ``0400``).
        data_path: Path to the credential envelope.

    Example::

        store = CredentialStore("~/.config/irsession/key", "creds.enc")
        store.save(Credentials.from_password("me@example.com", "hunter2"))
        creds = store.load()
    """

    def __init__(self, key_path: Union[str, Path], data_path: Union[str, Path]) -> None:
        self._key_path = Path(key_path).expanduser()
        self._path = Path(data_path).expanduser()

    @property
    def key_path(self) -> Path:
        return self._key_path

    @property
    def path(self) -> Path:
        """The filesystem path to the credential envelope."""
        return self._path

    def save(self, credentials: Credentials) -> None:
        """Encrypt *credentials* and write the envelope atomically.

        A fresh random nonce is drawn for every call.

        Raises:
            ConfigError: If the key file is missing, has the wrong
                permissions, or holds an unusable key.
            IOError_: If the envelope cannot be written.
        """
        aead = _cipher(self._key_path)

        nonce = os.urandom(NONCE_SIZE)
        plaintext = credentials.model_dump_json().encode("utf-8")
        sealed = aead.encrypt(nonce, plaintext, ASSOCIATED_DATA)
        envelope = base64.b64encode(nonce + sealed).decode("ascii")

        try:
            atomic_write(self._path, envelope, mode=_FILE_MODE)
        except OSError as exc:
            raise IOError_(f"Cannot write credential file {self._path}: {exc}") from exc
        debug(f"Saved credentials for {credentials.username} to {self._path}")

    def load(self) -> Credentials:
        """Read, authenticate, and decrypt the stored credentials.

        Raises:
            ConfigError: If the key file is missing, has the wrong
                permissions, or holds an unusable key.
            IOError_: If the envelope cannot be read.
            IntegrityError: If the envelope is not valid base64, is
                truncated, fails AEAD authentication (wrong key, tampering,
                other associated data), or does not hold a credential record.
        """
        aead = _cipher(self._key_path)

        try:
            text = self._path.read_bytes()
        except OSError as exc:
            raise IOError_(f"Cannot read credential file {self._path}: {exc}") from exc

        try:
            data = strict_b64decode(text.strip())
        except (binascii.Error, ValueError) as exc:
            raise IntegrityError(
                f"Credential file {self._path} is not valid base64"
            ) from exc

        if len(data) < NONCE_SIZE + TAG_SIZE:
            raise IntegrityError(f"Credential file {self._path} is truncated")

        try:
            plaintext = aead.decrypt(data[:NONCE_SIZE], data[NONCE_SIZE:], ASSOCIATED_DATA)
        except InvalidTag:
            raise IntegrityError(
                f"Credential file {self._path} failed authentication "
                "(wrong key or corrupted file)"
            ) from None

        try:
            return Credentials.model_validate_json(plaintext)
        except ValidationError as exc:
            raise IntegrityError(
                f"Credential file {self._path} does not hold a credential record"
            ) from exc

    def exists(self) -> bool:
        """Whether an envelope file is present (it is not decrypted)."""
        return self._path.is_file()

    def clear(self) -> None:
        """Delete the envelope file if it exists."""
        if self._path.is_file():
            self._path.unlink()


def save_credentials(
    key_path: Union[str, Path], data_path: Union[str, Path], credentials: Credentials
) -> None:
    """Encrypt *credentials* with the key in *key_path* and write them to *data_path*."""
    CredentialStore(key_path, data_path).save(credentials)


def load_credentials(key_path: Union[str, Path], data_path: Union[str, Path]) -> Credentials:
    """Decrypt the credentials stored in *data_path* with the key in *key_path*."""
    return CredentialStore(key_path, data_path).load()
