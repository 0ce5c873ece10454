"""Password encoding required by the members login endpoint.

The login endpoint does not accept the raw password.  It expects
``base64(sha256(password + lowercase(email)))``, with the password bytes
first and the lower-cased email second.  Any other order or casing is
rejected with the same generic failure as a wrong password, so the
transform has to match byte for byte.

See: https://forums.iracing.com/discussion/22109/login-form-changes/p1
"""

from __future__ import annotations

import base64
import hashlib
from typing import Union


def _as_bytes(value: Union[str, bytes]) -> bytes:
    if isinstance(value, bytes):
        return value
    return value.encode("utf-8")


def _lower(username: bytes) -> bytes:
    # Per code point, keeping only the first character of a multi-character
    # mapping: U+0130 becomes "i", and a final sigma stays "\u03c3".
    text = username.decode("utf-8", errors="replace")
    return "".join(ch.lower()[0] for ch in text).encode("utf-8")


def encode_password(username: Union[str, bytes], password: Union[str, bytes]) -> str:
    """Return the credential token the login endpoint expects.

    Args:
        username: Login email.  Only its lower-cased form is hashed.  Bytes
            that are not valid UTF-8 are hashed as U+FFFD.
        password: Raw password, hashed as given.

    Returns:
        Standard padded base64 of the SHA-256 digest.

    Example::

        >>> encode_password("CLunky@iRacing.Com", "MyPassWord")
        'xGKecAR27ALXNuMLsGaG0v5Q9pSs2tZTZRKNgmHMg+Q='
    """
    hasher = hashlib.sha256()
    hasher.update(_as_bytes(password))
    hasher.update(_lower(_as_bytes(username)))
    return base64.b64encode(hasher.digest()).decode("ascii")
