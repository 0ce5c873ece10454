"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~irsession.exceptions.IrsessionError` subclass.
Wrapper scripts can inspect the exit code to tell a rejected login apart
from a corrupted credential file without parsing stderr.

Example::

    $ irsession auth login
    $ echo $?
    9   # EXIT_INTEGRITY_ERROR -- the credential file failed authentication
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred, or the configuration is unusable."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or before a precondition was met."""

EXIT_AUTH_FAILURE = 3
"""The remote service rejected the login or the session."""

EXIT_NOT_FOUND = 4
"""The requested resource was not found (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The remote API kept returning HTTP 5xx server errors."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_IO_ERROR = 8
"""A credential file could not be read or written."""

EXIT_INTEGRITY_ERROR = 9
"""A stored credential envelope failed decryption or authentication."""
