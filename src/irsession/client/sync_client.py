"""Synchronous HTTP client that owns the authenticated session.

This module provides :class:`SyncClient`, the blocking client every CLI
command uses.  It wraps :class:`httpx.Client` and layers on:

- **Login** -- an :class:`~irsession.auth.session.AuthSession` sharing the
  same ``httpx.Client``, so cookies set at login are sent with every later
  request.  Credentials can come straight in, from the encrypted store, or
  from a :class:`~irsession.auth.providers.CredsProvider`.
- **Single-flight guard** -- a lock around authentication so concurrent
  callers cannot race the unauthenticated -> authenticated transition.
- **Retry with backoff** -- GETs are retried on 5xx with exponential delay
  (1 s, 2 s, 4 s, ...).  Network errors are not retried.
- **Error mapping** -- data GETs turn 401/403, 404 and other error
  statuses into typed exceptions.
"""

from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Any, Callable, Optional, Union

import httpx

from irsession.auth.credential_store import CredentialStore
from irsession.auth.providers import CredsProvider, credentials_from_provider
from irsession.auth.session import AuthSession, SessionState
from irsession.exceptions import (
    AuthError,
    NotFoundError,
    PreconditionError,
    ServerError,
    TransportError,
)
from irsession.models import Credentials, Settings
from irsession.output import debug


class SyncClient:
    """Synchronous client for the members API.

    Must be used as a context manager so that the underlying transport is
    properly opened and closed.

    Args:
        settings: Base URL, endpoint paths, login policy and request
            settings (timeout, retries, SSL verify).
        state: Optional shared :class:`~irsession.auth.session.SessionState`.
        transport: Optional ``httpx`` transport (tests pass an
            :class:`httpx.MockTransport`).
        sleep: Blocking sleep used for every backoff wait.

    Example::

        with SyncClient(settings) as client:
            client.auth_with_creds_from_file(settings.key_file, settings.creds_file)
            data = client.get_json("/data/member/info")
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        state: Optional[SessionState] = None,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._settings = settings or Settings()
        self._state = state if state is not None else SessionState()
        self._transport = transport
        self._sleep = sleep
        self._auth_lock = threading.Lock()
        self._client: Optional[httpx.Client] = None
        self._session: Optional[AuthSession] = None

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> SyncClient:
        config = self._settings.request
        self._client = httpx.Client(
            base_url=self._settings.base_url,
            timeout=config.timeout,
            verify=config.verify_ssl,
            follow_redirects=True,
            transport=self._transport,
        )
        self._session = AuthSession(
            self._client,
            self.retrying_get,
            state=self._state,
            login_url=self._settings.login_url,
            verify_url=self._settings.verify_url,
            max_attempts=self._settings.login_attempts,
            backoff_step=self._settings.login_backoff,
            sleep=self._sleep,
        )
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None
        self._session = None

    @property
    def authenticated(self) -> bool:
        return self._state.authenticated

    # ------------------------------------------------------------------ #
    # Authentication
    # ------------------------------------------------------------------ #

    def auth_with_creds(self, credentials: Credentials) -> None:
        """Authenticate with already-encoded *credentials*.

        Serialised by an internal lock; a no-op once authenticated.

        Raises:
            PreconditionError: If the client is not open or the secret is empty.
            AuthFailedError: See :meth:`AuthSession.authenticate`.
        """
        session = self._require_session()
        with self._auth_lock:
            session.authenticate(credentials)

    def auth_with_creds_from_file(
        self, key_path: Union[str, Path], data_path: Union[str, Path]
    ) -> None:
        """Decrypt the stored credentials and authenticate with them.

        Skips the decryption entirely when the session is already
        authenticated.
        """
        if self.authenticated:
            return
        credentials = CredentialStore(key_path, data_path).load()
        self.auth_with_creds(credentials)

    def auth_with_provided_creds(self, provider: CredsProvider) -> None:
        """Ask *provider* for a username and password and authenticate."""
        if self.authenticated:
            return
        self.auth_with_creds(credentials_from_provider(provider))

    # ------------------------------------------------------------------ #
    # Requests
    # ------------------------------------------------------------------ #

    def retrying_get(
        self, url: str, params: Optional[dict[str, Any]] = None
    ) -> httpx.Response:
        """GET *url*, retrying on 5xx with exponential backoff.

        Retries up to ``settings.request.max_retries`` times; the delay
        doubles each attempt: 1 s, 2 s, 4 s, ...  The final response is
        returned whatever its status.

        Raises:
            TransportError: On a network-level failure (not retried).
        """
        client = self._require_client()
        max_retries = self._settings.request.max_retries

        for attempt in range(max_retries + 1):
            try:
                response = client.get(url, params=params)
            except httpx.TransportError as exc:
                raise TransportError(f"GET {url} failed: {exc}") from exc

            if response.status_code >= 500 and attempt < max_retries:
                delay = 2 ** attempt  # 1, 2, 4, ...
                debug(
                    f"Server error {response.status_code}, retrying in {delay}s "
                    f"(attempt {attempt + 1}/{max_retries})"
                )
                self._sleep(delay)
                continue

            return response

        raise ServerError("Request failed after all retries")  # pragma: no cover

    def get(self, path: str, params: Optional[dict[str, Any]] = None) -> httpx.Response:
        """Authenticated GET with retry and error mapping.

        Args:
            path: URL path appended to the base URL.
            params: Query parameters.

        Raises:
            PreconditionError: If no login has succeeded yet.
            AuthError: On 401 / 403.
            NotFoundError: On 404.
            ServerError: On 5xx after retries, or any other error status.
            TransportError: On network errors.
        """
        if not self.authenticated:
            raise PreconditionError("authenticate before requesting data")
        response = self.retrying_get(path, params=params)
        self._map_response_error(response)
        return response

    def get_json(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        """Authenticated GET returning the decoded JSON body.

        Raises:
            ServerError: If a successful response does not carry JSON, in
                addition to everything :meth:`get` raises.
        """
        response = self.get(path, params=params)
        try:
            return response.json()
        except ValueError as exc:
            raise ServerError(
                f"Response from {path} is not JSON "
                f"(content-type: {response.headers.get('content-type', 'unknown')})"
            ) from exc

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _require_client(self) -> httpx.Client:
        if self._client is None:
            raise PreconditionError("Client not initialised -- use as context manager")
        return self._client

    def _require_session(self) -> AuthSession:
        if self._session is None:
            raise PreconditionError("Client not initialised -- use as context manager")
        return self._session

    def _map_response_error(self, response: httpx.Response) -> None:
        """Raise a typed exception for error HTTP status codes."""
        status = response.status_code
        if status < 400:
            return

        try:
            detail = response.json()
            if isinstance(detail, dict):
                msg = detail.get("message") or detail.get("error") or detail.get("detail") or ""
            else:
                msg = str(detail)
        except ValueError:
            msg = response.text[:200] if response.text else ""

        prefix = f"HTTP {status}"
        full_msg = f"{prefix}: {msg}" if msg else prefix

        if status in (401, 403):
            raise AuthError(full_msg)
        if status == 404:
            raise NotFoundError(full_msg)
        raise ServerError(full_msg)


def save_provided_creds_to_file(
    key_path: Union[str, Path], data_path: Union[str, Path], provider: CredsProvider
) -> Credentials:
    """Ask *provider* for credentials once, encode them, and store them encrypted.

    Returns:
        The encoded credentials that were written.
    """
    credentials = credentials_from_provider(provider)
    CredentialStore(key_path, data_path).save(credentials)
    return credentials
