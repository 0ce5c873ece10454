"""Tests for the encrypted credential store."""

from __future__ import annotations

import base64
import json
import os
import stat
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from irsession.auth import credential_store as store_module
from irsession.auth.credential_store import (
    ASSOCIATED_DATA,
    NONCE_SIZE,
    CredentialStore,
    load_credentials,
    save_credentials,
)
from irsession.auth.key_material import SHRED_BYTE
from irsession.exceptions import ConfigError, IntegrityError, IOError_
from irsession.models import Credentials

# Same bytes the key_file fixture writes.
_KEY = bytes(range(32))


@pytest.fixture
def creds() -> Credentials:
    return Credentials.from_password("Driver@Example.com", "correct horse")


@pytest.fixture
def store(key_file: Path, creds_file: Path, quiet_output) -> CredentialStore:
    return CredentialStore(key_file, creds_file)


def _flip_bit(path: Path, index: int, bit: int) -> None:
    data = bytearray(base64.b64decode(path.read_text()))
    data[index] ^= 1 << bit
    path.write_text(base64.b64encode(bytes(data)).decode("ascii"))


class TestRoundTrip:
    def test_save_and_load(self, store: CredentialStore, creds: Credentials) -> None:
        store.save(creds)
        assert store.load() == creds

    def test_module_functions(
        self, key_file: Path, creds_file: Path, creds: Credentials, quiet_output
    ) -> None:
        save_credentials(key_file, creds_file, creds)
        assert load_credentials(key_file, creds_file) == creds

    @pytest.mark.parametrize(
        "username",
        ["a@b.c", "Ünïcødé@example.com", "quote\"and\\backslash@example.com", ""],
    )
    def test_unusual_usernames(self, store: CredentialStore, username: str) -> None:
        creds = Credentials(username=username, secret="c2VjcmV0")
        store.save(creds)
        assert store.load() == creds

    @pytest.mark.parametrize("size", [16, 24])
    def test_smaller_keys(
        self, tmp_path: Path, make_key_file, creds: Credentials, size: int, quiet_output
    ) -> None:
        key = make_key_file(tmp_path / f"k{size}", key=os.urandom(size))
        store = CredentialStore(key, tmp_path / "c")
        store.save(creds)
        assert store.load() == creds

    def test_overwrite(self, store: CredentialStore) -> None:
        store.save(Credentials(username="first", secret="s1"))
        store.save(Credentials(username="second", secret="s2"))
        assert store.load().username == "second"


class TestEnvelope:
    def test_file_is_single_base64_line(self, store: CredentialStore, creds: Credentials) -> None:
        store.save(creds)
        text = store.path.read_text()
        assert "\n" not in text
        raw = base64.b64decode(text, validate=True)
        # nonce + JSON body + 16-byte tag
        assert len(raw) == NONCE_SIZE + len(creds.model_dump_json()) + 16

    def test_plaintext_not_visible(self, store: CredentialStore, creds: Credentials) -> None:
        store.save(creds)
        raw = base64.b64decode(store.path.read_text())
        assert creds.username.encode() not in raw
        assert creds.secret.encode() not in raw

    def test_envelope_layout_and_associated_data(
        self, store: CredentialStore, creds: Credentials
    ) -> None:
        store.save(creds)
        raw = base64.b64decode(store.path.read_text())
        plaintext = AESGCM(_KEY).decrypt(raw[:NONCE_SIZE], raw[NONCE_SIZE:], ASSOCIATED_DATA)
        assert json.loads(plaintext) == {"username": creds.username, "secret": creds.secret}

    def test_fresh_nonce_per_save(self, store: CredentialStore, creds: Credentials) -> None:
        store.save(creds)
        first = store.path.read_text()
        store.save(creds)
        second = store.path.read_text()
        assert first != second
        assert base64.b64decode(first)[:NONCE_SIZE] != base64.b64decode(second)[:NONCE_SIZE]

    def test_file_permissions(self, store: CredentialStore, creds: Credentials) -> None:
        store.save(creds)
        assert stat.S_IMODE(os.stat(store.path).st_mode) == 0o600


class TestIntegrity:
    def test_wrong_key(
        self, store: CredentialStore, creds: Credentials, tmp_path: Path, make_key_file
    ) -> None:
        store.save(creds)
        other_key = make_key_file(tmp_path / "other.key", key=b"\xff" * 32)
        with pytest.raises(IntegrityError):
            CredentialStore(other_key, store.path).load()

    @pytest.mark.parametrize("index", [0, 5, NONCE_SIZE, NONCE_SIZE + 3, -1, -16])
    @pytest.mark.parametrize("bit", [0, 7])
    def test_single_bit_flip(
        self, store: CredentialStore, creds: Credentials, index: int, bit: int
    ) -> None:
        store.save(creds)
        _flip_bit(store.path, index, bit)
        with pytest.raises(IntegrityError):
            store.load()

    def test_every_byte_flip_detected(self, store: CredentialStore, creds: Credentials) -> None:
        store.save(creds)
        original = store.path.read_text()
        length = len(base64.b64decode(original))
        for index in range(length):
            store.path.write_text(original)
            _flip_bit(store.path, index, index % 8)
            with pytest.raises(IntegrityError):
                store.load()

    # Envelope lengths 104, 105 and 106 bytes: one, zero and two padding chars.
    @pytest.mark.parametrize("username", ["a@b.c", "ab@c.d", "abc@d.e"])
    def test_every_bit_of_file_text_detected(
        self, store: CredentialStore, username: str
    ) -> None:
        store.save(Credentials.from_password(username, "pw"))
        text = store.path.read_bytes()
        undetected = []
        for index in range(len(text)):
            for bit in range(8):
                corrupted = bytearray(text)
                corrupted[index] ^= 1 << bit
                store.path.write_bytes(bytes(corrupted))
                try:
                    store.load()
                except IntegrityError:
                    continue
                undetected.append((index, bit))
        assert undetected == []

    def test_nonzero_padding_bits_rejected(
        self, store: CredentialStore
    ) -> None:
        store.save(Credentials.from_password("a@b.c", "pw"))
        text = store.path.read_text()
        assert text.endswith("=") and not text.endswith("==")
        alphabet = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
        last = alphabet[alphabet.index(text[-2]) | 0b01]
        store.path.write_text(text[:-2] + last + "=")
        with pytest.raises(IntegrityError, match="base64"):
            store.load()

    def test_other_associated_data_rejected(
        self, store: CredentialStore, creds: Credentials
    ) -> None:
        nonce = os.urandom(NONCE_SIZE)
        sealed = AESGCM(_KEY).encrypt(
            nonce, creds.model_dump_json().encode(), b"someone-else.auth"
        )
        store.path.parent.mkdir(parents=True, exist_ok=True)
        store.path.write_text(base64.b64encode(nonce + sealed).decode())
        with pytest.raises(IntegrityError):
            store.load()

    def test_truncated(self, store: CredentialStore, creds: Credentials) -> None:
        store.save(creds)
        raw = base64.b64decode(store.path.read_text())
        store.path.write_text(base64.b64encode(raw[:NONCE_SIZE + 4]).decode())
        with pytest.raises(IntegrityError, match="truncated"):
            store.load()

    def test_not_base64(self, store: CredentialStore, creds: Credentials) -> None:
        store.save(creds)
        store.path.write_text("%%% definitely not base64 %%%")
        with pytest.raises(IntegrityError, match="base64"):
            store.load()

    def test_authentic_but_not_a_record(self, store: CredentialStore) -> None:
        nonce = os.urandom(NONCE_SIZE)
        sealed = AESGCM(_KEY).encrypt(nonce, b"[1, 2, 3]", ASSOCIATED_DATA)
        store.path.parent.mkdir(parents=True, exist_ok=True)
        store.path.write_text(base64.b64encode(nonce + sealed).decode())
        with pytest.raises(IntegrityError, match="credential record"):
            store.load()


class TestKeyHandling:
    @pytest.mark.parametrize("mode", [0o600, 0o644, 0o444])
    def test_bad_key_mode_fails_before_any_cipher_work(
        self,
        tmp_path: Path,
        make_key_file,
        creds: Credentials,
        monkeypatch: pytest.MonkeyPatch,
        mode: int,
    ) -> None:
        cipher = MagicMock()
        monkeypatch.setattr(store_module, "AESGCM", cipher)
        store = CredentialStore(make_key_file(tmp_path / "k", mode=mode), tmp_path / "c")

        with pytest.raises(ConfigError):
            store.save(creds)
        with pytest.raises(ConfigError):
            store.load()
        cipher.assert_not_called()
        assert not store.path.exists()

    def test_missing_key_file(self, tmp_path: Path, creds: Credentials) -> None:
        store = CredentialStore(tmp_path / "missing.key", tmp_path / "c")
        with pytest.raises(ConfigError):
            store.save(creds)
        assert not store.path.exists()

    def test_key_shredded_right_after_cipher_setup(
        self, store: CredentialStore, creds: Credentials, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        held: list[bytearray] = []
        real_load_key = store_module.load_key

        def _tracking_load_key(path):  # noqa: ANN001, ANN202
            key = real_load_key(path)
            held.append(key)
            return key

        real_aesgcm = store_module.AESGCM

        class _CheckingAESGCM:
            def __init__(self, key: bytes) -> None:
                self._inner = real_aesgcm(key)

            def encrypt(self, nonce: bytes, data: bytes, aad: bytes) -> bytes:
                # The loaded key must already be erased when the cipher is used.
                assert held[-1] == bytearray([SHRED_BYTE] * len(held[-1]))
                return self._inner.encrypt(nonce, data, aad)

            def decrypt(self, nonce: bytes, data: bytes, aad: bytes) -> bytes:
                assert held[-1] == bytearray([SHRED_BYTE] * len(held[-1]))
                return self._inner.decrypt(nonce, data, aad)

        monkeypatch.setattr(store_module, "load_key", _tracking_load_key)
        monkeypatch.setattr(store_module, "AESGCM", _CheckingAESGCM)

        store.save(creds)
        assert store.load() == creds
        assert len(held) == 2
        for key in held:
            assert set(key) == {SHRED_BYTE}


class TestFileHandling:
    def test_load_missing_file(self, store: CredentialStore) -> None:
        with pytest.raises(IOError_):
            store.load()

    def test_failed_write_keeps_previous_file(
        self, store: CredentialStore, creds: Credentials, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        store.save(creds)
        before = store.path.read_text()

        def _fail(src, dst):  # noqa: ANN001, ANN202
            raise OSError("disk full")

        monkeypatch.setattr("irsession.config.os.replace", _fail)
        with pytest.raises(IOError_, match="disk full"):
            store.save(Credentials(username="other", secret="s"))

        assert store.path.read_text() == before
        assert [p.name for p in store.path.parent.iterdir()] == [store.path.name]

    def test_exists_and_clear(self, store: CredentialStore, creds: Credentials) -> None:
        assert store.exists() is False
        store.save(creds)
        assert store.exists() is True
        store.clear()
        assert store.exists() is False

    def test_clear_nonexistent(self, store: CredentialStore) -> None:
        store.clear()  # no-op
