"""Login state machine for the members API.

:class:`AuthSession` drives the two-step login:

1. ``POST /auth`` with ``{"email": ..., "password": <encoded token>}``,
   retried on HTTP 5xx with a linearly growing wait (5 s, 10 s, 15 s, ...).
2. One ``GET`` against a cheap authenticated endpoint.  The login endpoint
   can answer 200 without producing a usable session, so only a successful
   protected read confirms the login.

The result lives in a :class:`SessionState` with a single ``authenticated``
flag.  It starts ``False``, becomes ``True`` after a full login + verify,
and never goes back.  Session cookies set by the login response stay in the
``httpx.Client`` cookie jar and ride along on later requests.

:class:`AuthSession` holds no lock.  A caller that may authenticate from
several threads serialises the calls itself, as
:class:`~irsession.client.sync_client.SyncClient` does.
"""

from __future__ import annotations

import time
from typing import Callable, Optional

import httpx

from irsession.exceptions import (
    AuthFailedError,
    InvalidCredentialsError,
    PreconditionError,
    ServerError,
    TransportError,
)
from irsession.models import DEFAULT_BASE_URL, DEFAULT_LOGIN_PATH, DEFAULT_VERIFY_PATH, Credentials
from irsession.output import debug, info

LOGIN_URL = DEFAULT_BASE_URL + DEFAULT_LOGIN_PATH
VERIFY_URL = DEFAULT_BASE_URL + DEFAULT_VERIFY_PATH

MAX_LOGIN_ATTEMPTS = 5
BACKOFF_STEP = 5


class SessionState:
    """Process-wide authentication flag, owned by one :class:`AuthSession`."""

    def __init__(self) -> None:
        self.authenticated = False

    def __repr__(self) -> str:
        return f"SessionState(authenticated={self.authenticated})"


class AuthSession:
    """Authenticate an ``httpx.Client`` against the members API exactly once.

    Args:
        client: Transport for the login POST.  Its cookie jar carries the
            session afterwards.
        retrying_get: Callable performing a GET with retry on 5xx; used for
            the verification request.
        state: Shared state object.  A fresh one is created when omitted.
        login_url: Absolute login endpoint URL.
        verify_url: Absolute URL of the verification endpoint.
        max_attempts: Login POST attempts before giving up on 5xx.
        backoff_step: Seconds added to the wait after each 5xx login reply.
        sleep: Blocking sleep function, replaceable in tests.

    Example::

        session = AuthSession(http, client.retrying_get)
        session.authenticate(store.load())
        assert session.authenticated
    """

    def __init__(
        self,
        client: httpx.Client,
        retrying_get: Callable[[str], httpx.Response],
        state: Optional[SessionState] = None,
        login_url: str = LOGIN_URL,
        verify_url: str = VERIFY_URL,
        max_attempts: int = MAX_LOGIN_ATTEMPTS,
        backoff_step: int = BACKOFF_STEP,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._client = client
        self._retrying_get = retrying_get
        self._state = state if state is not None else SessionState()
        self._login_url = login_url
        self._verify_url = verify_url
        self._max_attempts = max_attempts
        self._backoff_step = backoff_step
        self._sleep = sleep

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def authenticated(self) -> bool:
        """Whether a full login + verify has succeeded in this session."""
        return self._state.authenticated

    def authenticate(self, credentials: Credentials) -> None:
        """Log in with *credentials* unless already authenticated.

        Safe to call before every request: once authenticated it returns
        without touching the network.  On failure the state stays
        unauthenticated and a later call starts over from scratch.

        Raises:
            PreconditionError: If ``credentials.secret`` is empty.
            TransportError: On a network-level failure (not retried).
            ServerError: If every login attempt returned HTTP 5xx.
            AuthFailedError: If login returned a non-200 status, or
                verification returned anything other than 200 / 401.
            InvalidCredentialsError: If verification returned HTTP 401.
        """
        if self._state.authenticated:
            return

        if not credentials.secret:
            raise PreconditionError("must provide credentials before calling")

        info("Authenticating")

        response = self._login(credentials)
        if response.status_code != 200:
            debug(f"Failed to authenticate: HTTP {response.status_code} {response.reason_phrase}")
            raise AuthFailedError("unexpected auth failure, try debug")

        self._verify()

        info("Login succeeded")
        self._state.authenticated = True

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _login(self, credentials: Credentials) -> httpx.Response:
        """POST the login body, retrying on 5xx with linear backoff.

        The n-th 5xx reply is followed by a wait of ``n * backoff_step``
        seconds, except the last one: there is no attempt left to wait for,
        so with the defaults the waits are 5, 10, 15 and 20 s and the
        25 s step is never slept.
        """
        body = {"email": credentials.username, "password": credentials.secret}

        for attempt in range(1, self._max_attempts + 1):
            try:
                response = self._client.post(self._login_url, json=body)
            except httpx.TransportError as exc:
                raise TransportError(f"Login request failed: {exc}") from exc

            if response.status_code < 500:
                return response

            if attempt == self._max_attempts:
                break

            delay = attempt * self._backoff_step
            debug(
                f"Login returned {response.status_code}, retrying in {delay}s "
                f"(attempt {attempt}/{self._max_attempts})"
            )
            self._sleep(delay)

        raise ServerError(
            f"Login failed after {self._max_attempts} attempts: "
            f"HTTP {response.status_code}"
        )

    def _verify(self) -> None:
        """Confirm the login with one authenticated GET."""
        try:
            response = self._retrying_get(self._verify_url)
        except httpx.TransportError as exc:
            raise TransportError(f"Verification request failed: {exc}") from exc

        if response.status_code == 200:
            return
        if response.status_code == 401:
            raise InvalidCredentialsError("login failed, check creds")

        debug(
            f"Unexpected status {response.status_code} {response.reason_phrase} "
            f"from {self._verify_url}"
        )
        raise AuthFailedError("unexpected auth failure, try debug")
