"""Auth commands -- store, test, inspect and remove the saved login.

Provides the ``irsession auth`` sub-command group.  The login secret is
asked for once, encoded, and kept in the AES-GCM credential file; after that
``irsession auth login`` and every data command authenticate from the file.

Typical workflow::

    irsession keygen             # once: create the 0400 key file
    irsession auth save          # prompt for email + password, store encrypted
    irsession auth login         # verify the stored login works
    irsession auth show          # inspect what is stored
"""

from __future__ import annotations

from typing import Optional

import typer

from irsession.exceptions import ConfigError, IrsessionError
from irsession.output import error, info, print_table, success, suggest


auth_app = typer.Typer(no_args_is_help=True)

_KEY_FILE_HELP = "Path to the base64 AES key file (mode 0400)."
_CREDS_FILE_HELP = "Path to the encrypted credential file."


def _provider(from_env: bool):  # noqa: ANN202
    from irsession.auth.providers import EnvCredsProvider, PromptCredsProvider

    return EnvCredsProvider() if from_env else PromptCredsProvider()


@auth_app.command("save")
def auth_save(
    key_file: Optional[str] = typer.Option(None, "--key-file", "-k", help=_KEY_FILE_HELP),
    creds_file: Optional[str] = typer.Option(
        None, "--creds-file", "-c", help=_CREDS_FILE_HELP
    ),
    from_env: bool = typer.Option(
        False,
        "--from-env",
        help="Read IRSESSION_USERNAME / IRSESSION_PASSWORD instead of prompting.",
    ),
) -> None:
    """Ask for email and password once and store them encrypted.

    The password is encoded before anything is written; the raw password is
    never stored.  No network request is made.

    Example::

        irsession auth save
        IRSESSION_USERNAME=me@example.com IRSESSION_PASSWORD=... irsession auth save --from-env
    """
    from irsession.client import save_provided_creds_to_file
    from irsession.config import resolve_settings

    settings = resolve_settings(cli_key_file=key_file, cli_creds_file=creds_file)
    try:
        credentials = save_provided_creds_to_file(
            settings.key_file, settings.creds_file, _provider(from_env)
        )
    except IrsessionError as exc:
        error(str(exc))
        if isinstance(exc, ConfigError):
            suggest("Create a key file: irsession keygen")
        raise typer.Exit(code=exc.exit_code) from None
    success(f'Credentials for "{credentials.username}" saved to {settings.creds_file}.')
    suggest("Test them: irsession auth login")


@auth_app.command("login")
def auth_login(
    ctx: typer.Context,
    key_file: Optional[str] = typer.Option(None, "--key-file", "-k", help=_KEY_FILE_HELP),
    creds_file: Optional[str] = typer.Option(
        None, "--creds-file", "-c", help=_CREDS_FILE_HELP
    ),
    prompt: bool = typer.Option(
        False, "--prompt", help="Ask for credentials instead of using the stored file."
    ),
    from_env: bool = typer.Option(
        False, "--from-env", help="Take credentials from IRSESSION_USERNAME / IRSESSION_PASSWORD."
    ),
) -> None:
    """Log in and verify the session.

    By default the credentials come from the encrypted credential file.
    With ``--prompt`` or ``--from-env`` they are taken from the terminal or
    the environment instead and nothing is stored.

    Example::

        irsession auth login
        irsession auth login --prompt
    """
    from irsession.client import SyncClient
    from irsession.config import resolve_settings

    base_url = ctx.obj.get("base_url") if ctx.obj else None
    settings = resolve_settings(
        cli_base_url=base_url, cli_key_file=key_file, cli_creds_file=creds_file
    )

    try:
        with SyncClient(settings) as client:
            if prompt or from_env:
                client.auth_with_provided_creds(_provider(from_env))
            else:
                client.auth_with_creds_from_file(settings.key_file, settings.creds_file)
    except IrsessionError as exc:
        error(f"Login failed: {exc}")
        raise typer.Exit(code=exc.exit_code) from None

    success(f"Authenticated against {settings.base_url}.")


@auth_app.command("show")
def auth_show(
    key_file: Optional[str] = typer.Option(None, "--key-file", "-k", help=_KEY_FILE_HELP),
    creds_file: Optional[str] = typer.Option(
        None, "--creds-file", "-c", help=_CREDS_FILE_HELP
    ),
) -> None:
    """Decrypt the credential file and show who it is for.

    The encoded secret is shown truncated.

    Example::

        irsession auth show
        irsession --json auth show
    """
    from irsession.auth.credential_store import CredentialStore
    from irsession.config import resolve_settings

    settings = resolve_settings(cli_key_file=key_file, cli_creds_file=creds_file)
    store = CredentialStore(settings.key_file, settings.creds_file)
    if not store.exists():
        info(f"No stored credentials at {store.path}.")
        suggest("Store some: irsession auth save")
        return

    try:
        credentials = store.load()
    except IrsessionError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    rows = [
        ["Username", credentials.username],
        ["Secret", credentials.masked_secret()],
        ["Key File", str(store.key_path)],
        ["Credential File", str(store.path)],
    ]
    print_table(["Field", "Value"], rows, title="Stored Credentials")


@auth_app.command("clear")
def auth_clear(
    ctx: typer.Context,
    creds_file: Optional[str] = typer.Option(
        None, "--creds-file", "-c", help=_CREDS_FILE_HELP
    ),
) -> None:
    """Delete the stored credential file.

    Asks for confirmation unless the ``--force`` flag is active.  The key
    file is left alone.

    Example::

        irsession auth clear
        irsession --force auth clear
    """
    from irsession.auth.credential_store import CredentialStore
    from irsession.config import resolve_settings

    settings = resolve_settings(cli_creds_file=creds_file)
    store = CredentialStore(settings.key_file, settings.creds_file)
    if not store.exists():
        info(f"No stored credentials at {store.path}.")
        return

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm(f"Delete {store.path}?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    store.clear()
    success("Stored credentials cleared.")

