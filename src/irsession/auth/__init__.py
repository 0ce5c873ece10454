"""Authentication core for irsession.

- :func:`encode_password` -- the password transform the login endpoint expects.
- :func:`load_key` / :func:`shred` -- permission-gated key loading and erasure.
- :class:`CredentialStore` -- AES-GCM encrypted credential file.
- :class:`CredsProvider` -- where usernames and raw passwords come from.
- :class:`AuthSession` -- the login + verify state machine.

Typical usage::

    from irsession.auth import CredentialStore, Credentials

    store = CredentialStore(key_file, creds_file)
    store.save(Credentials.from_password("me@example.com", "hunter2"))
"""

from irsession.auth.credential_store import (
    ASSOCIATED_DATA,
    CredentialStore,
    load_credentials,
    save_credentials,
)
from irsession.auth.encoder import encode_password
from irsession.auth.key_material import generate_key, load_key, shred
from irsession.auth.providers import (
    CredsProvider,
    EnvCredsProvider,
    PromptCredsProvider,
    StaticCredsProvider,
    credentials_from_provider,
)
from irsession.auth.session import AuthSession, SessionState
from irsession.models import Credentials

__all__ = [
    "ASSOCIATED_DATA",
    "AuthSession",
    "Credentials",
    "CredentialStore",
    "CredsProvider",
    "EnvCredsProvider",
    "PromptCredsProvider",
    "SessionState",
    "StaticCredsProvider",
    "credentials_from_provider",
    "encode_password",
    "generate_key",
    "load_credentials",
    "load_key",
    "save_credentials",
    "shred",
]
