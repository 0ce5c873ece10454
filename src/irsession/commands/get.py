"""Get command -- authenticated GET against any API path.

Logs in from the stored credentials, issues the request and prints the
JSON body to stdout.  Useful for poking at endpoints and for scripts::

    irsession get /data/member/info
    irsession --json get /data/constants/categories | jq '.[0]'
    irsession get /data/results/get -P subsession_id=12345
"""

from __future__ import annotations

from typing import Optional

import typer

from irsession.exceptions import IrsessionError
from irsession.output import error, format_response


def _parse_params(raw: list[str]) -> dict[str, str]:
    params: dict[str, str] = {}
    for item in raw:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got: {item}")
        params[key] = value
    return params


def get_command(
    ctx: typer.Context,
    path: str = typer.Argument(help="API path, e.g. /data/member/info."),
    param: Optional[list[str]] = typer.Option(
        None, "--param", "-P", help="Query parameter as key=value (repeatable)."
    ),
) -> None:
    """Log in from the stored credentials and GET *path*."""
    from irsession.client import SyncClient
    from irsession.config import resolve_settings

    params = _parse_params(param or [])
    base_url = ctx.obj.get("base_url") if ctx.obj else None
    settings = resolve_settings(cli_base_url=base_url)

    try:
        with SyncClient(settings) as client:
            client.auth_with_creds_from_file(settings.key_file, settings.creds_file)
            data = client.get_json(path, params=params or None)
    except IrsessionError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    format_response(data)
