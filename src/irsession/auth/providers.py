"""Credential providers -- where a username and raw password come from.

A :class:`CredsProvider` is the only place a raw password exists.  It is
called once, the password is immediately encoded by
:func:`credentials_from_provider`, and only the encoded
:class:`~irsession.models.Credentials` travel further (to the login session
or the encrypted store).

Built-in providers:

- :class:`StaticCredsProvider` -- fixed values, for scripts and tests.
- :class:`EnvCredsProvider` -- ``IRSESSION_USERNAME`` / ``IRSESSION_PASSWORD``.
- :class:`PromptCredsProvider` -- interactive prompt with hidden input.
"""

from __future__ import annotations

import os
import sys
from abc import ABC, abstractmethod
from typing import Union

from irsession.exceptions import ConfigError
from irsession.models import Credentials
from irsession.output import debug


class CredsProvider(ABC):
    """Supplies a username and raw password on request."""

    @abstractmethod
    def get_creds(self) -> tuple[bytes, bytes]:
        """Return ``(username, password)`` as bytes."""
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class StaticCredsProvider(CredsProvider):
    """Return the username and password it was constructed with."""

    def __init__(self, username: Union[str, bytes], password: Union[str, bytes]) -> None:
        self._username = username if isinstance(username, bytes) else username.encode("utf-8")
        self._password = password if isinstance(password, bytes) else password.encode("utf-8")

    def get_creds(self) -> tuple[bytes, bytes]:
        return self._username, self._password


class EnvCredsProvider(CredsProvider):
    """Read the username and password from environment variables.

    Args:
        username_var: Variable holding the login email.
        password_var: Variable holding the raw password.
    """

    def __init__(
        self,
        username_var: str = "IRSESSION_USERNAME",
        password_var: str = "IRSESSION_PASSWORD",
    ) -> None:
        self._username_var = username_var
        self._password_var = password_var

    def get_creds(self) -> tuple[bytes, bytes]:
        """Return the values of both variables.

        Raises:
            ConfigError: If either variable is unset or empty.
        """
        values = []
        for var in (self._username_var, self._password_var):
            value = os.environ.get(var)
            if not value:
                raise ConfigError(f"Environment variable '{var}' is not set")
            values.append(value.encode("utf-8"))
        return values[0], values[1]


class PromptCredsProvider(CredsProvider):
    """Ask for the username and password on the terminal.

    The password is read with hidden input.  Refuses to run when stdin is
    not a TTY, since a piped prompt would hang or echo the secret.
    """

    def get_creds(self) -> tuple[bytes, bytes]:
        import typer

        if not sys.stdin.isatty():
            raise ConfigError("Cannot prompt for credentials: stdin is not a TTY")
        username = typer.prompt("Email")
        password = typer.prompt("Password", hide_input=True)
        return username.encode("utf-8"), password.encode("utf-8")


def credentials_from_provider(provider: CredsProvider) -> Credentials:
    """Call *provider* once and return the encoded credentials."""
    debug(f"Calling CredsProvider {provider!r}")
    username, password = provider.get_creds()
    return Credentials.from_password(username, password)
