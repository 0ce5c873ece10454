"""Keygen command -- create the AES key file the credential store requires.

The key is random, base64-encoded, and written with mode ``0400``.  An
existing key file is never overwritten: replacing it would make the stored
credentials undecryptable.
"""

from __future__ import annotations

from typing import Optional

import typer

from irsession.exceptions import ConfigError
from irsession.output import error, success, suggest


def keygen_command(
    key_file: Optional[str] = typer.Option(
        None, "--key-file", "-k", help="Where to write the key (default: <config dir>/key)."
    ),
    size: int = typer.Option(32, "--size", help="Key length in bytes: 16, 24, or 32."),
) -> None:
    """Generate a new owner-read-only AES key file.

    Example::

        irsession keygen
        irsession keygen --key-file ~/secrets/irsession.key --size 16
    """
    from irsession.auth.key_material import generate_key
    from irsession.config import resolve_settings

    settings = resolve_settings(cli_key_file=key_file)
    try:
        path = generate_key(settings.key_file, size=size)
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    success(f"Wrote {size}-byte key to {path} (mode 0400).")
    suggest("Store your login: irsession auth save")
