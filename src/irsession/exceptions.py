"""Exception hierarchy for irsession.

All exceptions inherit from :class:`IrsessionError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`irsession.exit_codes`.
Library code only ever raises these; the top-level handler in
:func:`irsession.app.main` is the single place that turns one into a process
exit.

Subclass hierarchy::

    IrsessionError (exit 1)
    +-- ConfigError            (exit 1)
    +-- IOError_               (exit 8)
    +-- IntegrityError         (exit 9)
    +-- PreconditionError      (exit 2)
    +-- TransportError         (exit 6)
    +-- AuthError              (exit 3)
    |   +-- AuthFailedError    (exit 3)
    |       +-- InvalidCredentialsError (exit 3)
    +-- NotFoundError          (exit 4)
    +-- ServerError            (exit 5)
"""

from irsession.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INTEGRITY_ERROR,
    EXIT_INVALID_USAGE,
    EXIT_IO_ERROR,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
)


class IrsessionError(Exception):
    """Base exception for all irsession errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`irsession.exit_codes`.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(IrsessionError):
    """Raised for bad key files (permissions, encoding, length) and invalid configuration."""

    exit_code = EXIT_GENERIC_FAILURE


class IOError_(IrsessionError):
    """Raised when a credential file cannot be read or written.

    Named with a trailing underscore to avoid shadowing the built-in
    ``IOError``.
    """

    exit_code = EXIT_IO_ERROR


class IntegrityError(IrsessionError):
    """Raised when a credential envelope fails authenticated decryption.

    Covers a wrong key, a corrupted or tampered file, and an envelope sealed
    for a different associated-data context.  Never accompanied by data.
    """

    exit_code = EXIT_INTEGRITY_ERROR


class PreconditionError(IrsessionError):
    """Raised when an operation is called before its inputs are ready."""

    exit_code = EXIT_INVALID_USAGE


class TransportError(IrsessionError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused)."""

    exit_code = EXIT_CONNECTION_ERROR


class AuthError(IrsessionError):
    """Raised when the remote API rejects the session (HTTP 401 / 403)."""

    exit_code = EXIT_AUTH_FAILURE


class AuthFailedError(AuthError):
    """Raised when login returns a non-200 status or verification is inconclusive.

    The remote API does not say whether the credentials were wrong, so
    neither does this error.
    """


class InvalidCredentialsError(AuthFailedError):
    """Raised when the post-login verification request returns HTTP 401."""


class NotFoundError(IrsessionError):
    """Raised when the API returns HTTP 404 (resource not found)."""

    exit_code = EXIT_NOT_FOUND


class ServerError(IrsessionError):
    """Raised when the API keeps returning HTTP 5xx or an unmapped error status."""

    exit_code = EXIT_SERVER_ERROR
