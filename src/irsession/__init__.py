"""irsession -- authenticated sessions for the iRacing members data API.

This package logs a client into a session-based web API and keeps the login
secret encrypted on disk so it need not be re-entered.  The login secret is
stored as an AES-GCM envelope whose key lives in a separate owner-read-only
file.

Typical workflow::

    irsession keygen              # create the 0400 key file
    irsession auth save           # prompt once, store the encrypted secret
    irsession get /data/member/info

Modules:
    app: Typer application factory and CLI entry point.
    models: Pydantic models shared across the package.
    config: XDG-aware settings with atomic writes and precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
    auth: password encoding, key material, credential store, login session.
    client: the httpx client that owns the authenticated session.
"""

__version__ = "0.3.0"
