"""Config commands -- view and modify settings.

Provides the ``irsession config`` sub-command group for reading, updating
and resetting :class:`~irsession.models.Settings`.
"""

from __future__ import annotations

import typer

from irsession.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show the effective settings (file, environment and defaults merged).

    Example::

        irsession config show
        irsession --json config show
    """
    from irsession.config import get_config_dir, resolve_settings

    settings = resolve_settings()
    info(f"Config directory: {get_config_dir()}")
    format_response(settings.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Settings key (dot notation, e.g., 'request.timeout')."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a settings value.

    The value is coerced to the type of the current field (bool, int or
    str) and the result is validated before saving.

    Example::

        irsession config set key_file ~/secrets/irsession.key
        irsession config set login_attempts 3
        irsession config set request.verify_ssl false
    """
    from irsession.config import load_settings, save_settings
    from irsession.models import Settings

    data = load_settings().model_dump(mode="json")

    keys = key.split(".")
    target = data
    for k in keys[:-1]:
        if k not in target or not isinstance(target[k], dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=2)
        target = target[k]

    final_key = keys[-1]
    if final_key not in target or isinstance(target[final_key], dict):
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)

    current = target[final_key]
    if isinstance(current, bool):
        coerced: object = value.lower() in ("true", "1", "yes")
    elif isinstance(current, int):
        try:
            coerced = int(value)
        except ValueError:
            error(f"Expected integer for {key}, got: {value}")
            raise typer.Exit(code=2) from None
    else:
        coerced = value

    target[final_key] = coerced

    try:
        settings = Settings.model_validate(data)
    except ValueError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    save_settings(settings)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(ctx: typer.Context) -> None:
    """Reset settings to defaults.

    Asks for confirmation unless ``--force`` is active.
    """
    from irsession.config import save_settings
    from irsession.models import Settings

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm("Reset all settings to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    save_settings(Settings())
    success("Settings reset to defaults.")
