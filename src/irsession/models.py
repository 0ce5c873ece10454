"""Canonical Pydantic models shared across all irsession modules.

**Credential model** -- :class:`Credentials`, the record sealed into the
encrypted credential file and handed to the login session.

**Configuration models** -- serialised as JSON in the user's config
directory: :class:`RequestConfig` and :class:`Settings`.
"""

from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_BASE_URL = "https://members-ng.iracing.com"
DEFAULT_LOGIN_PATH = "/auth"
DEFAULT_VERIFY_PATH = "/data/constants/event_types"


class Credentials(BaseModel):
    """Username plus the already-encoded password token.

    ``secret`` is the output of
    :func:`~irsession.auth.encoder.encode_password`, never the raw password.
    Field order is fixed, so ``model_dump_json()`` is deterministic and is
    what gets sealed into the credential envelope.

    Example::

        creds = Credentials.from_password("me@example.com", "hunter2")
        assert creds.secret != "hunter2"
    """

    model_config = ConfigDict(frozen=True)

    username: str = Field(description="Login email / username as typed by the user")
    secret: str = Field(
        default="", description="Base64 SHA-256 token derived from password and username"
    )

    @classmethod
    def from_password(
        cls, username: Union[str, bytes], password: Union[str, bytes]
    ) -> Credentials:
        """Encode *password* for *username* and return the resulting record."""
        from irsession.auth.encoder import encode_password

        if isinstance(username, bytes):
            username_text = username.decode("utf-8", errors="replace")
        else:
            username_text = username
        return cls(username=username_text, secret=encode_password(username, password))

    def masked_secret(self) -> str:
        """Return a display-safe preview of :attr:`secret`."""
        if len(self.secret) > 8:
            return self.secret[:4] + "..." + self.secret[-2:]
        return "*" * len(self.secret)


class RequestConfig(BaseModel):
    """HTTP settings for every request made through the client."""

    timeout: int = Field(default=30, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    max_retries: int = Field(
        default=3, description="Retries for data GETs that hit a 5xx response"
    )


class Settings(BaseModel):
    """User-wide configuration persisted at ``~/.config/irsession/config.json``.

    Loaded and saved by :func:`~irsession.config.load_settings` and
    :func:`~irsession.config.save_settings`.  ``key_file`` and
    ``creds_file`` fall back to locations under the config and data
    directories when left unset; see
    :func:`~irsession.config.resolve_settings` for the full precedence
    chain.
    """

    base_url: str = Field(default=DEFAULT_BASE_URL, description="API root URL")
    login_path: str = Field(default=DEFAULT_LOGIN_PATH, description="Login endpoint path")
    verify_path: str = Field(
        default=DEFAULT_VERIFY_PATH,
        description="Cheap authenticated endpoint used to confirm a login",
    )
    key_file: Optional[str] = Field(
        default=None, description="Path to the base64 AES key (mode 0400)"
    )
    creds_file: Optional[str] = Field(
        default=None, description="Path to the encrypted credential envelope"
    )
    login_attempts: int = Field(default=5, description="Login POST attempts on 5xx")
    login_backoff: int = Field(
        default=5, description="Seconds added to the wait after each failed login attempt"
    )
    request: RequestConfig = Field(default_factory=RequestConfig)

    @property
    def login_url(self) -> str:
        return self.base_url.rstrip("/") + self.login_path

    @property
    def verify_url(self) -> str:
        return self.base_url.rstrip("/") + self.verify_path
