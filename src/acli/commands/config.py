"""Config commands -- view and modify global configuration.

Provides the ``ai config`` sub-command group for reading, updating, and
resetting the user's global configuration file
(:class:`~acli.models.GlobalConfig`). These values are the lowest-precedence
source for the server URL, client ID, and login scopes; environment
variables and CLI flags override them.
"""

from __future__ import annotations

import typer

from acli.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show current configuration.

    Example::

        ai config show
        ai --json config show
    """
    from acli.config import get_config_dir, load_global_config
    from acli.exceptions import ConfigError

    try:
        config = load_global_config()
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    info(f"Config directory: {get_config_dir()}")
    format_response(config.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Config key: server_url, client_id, or scope."),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    The updated config is validated against
    :class:`~acli.models.GlobalConfig` before saving.

    Raises:
        typer.Exit: With code 2 if the key is unknown or validation fails.

    Example::

        ai config set server_url https://auth.example.com
        ai config set client_id my-cli
    """
    from acli.config import load_global_config, save_global_config
    from acli.models import GlobalConfig

    config = load_global_config()
    data = config.model_dump(mode="json")

    if key not in data:
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)

    data[key] = value
    try:
        new_config = GlobalConfig.model_validate(data)
    except ValueError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    save_global_config(new_config)
    success(f"Set {key} = {value}")


@config_app.command("reset")
def config_reset(ctx: typer.Context) -> None:
    """Reset configuration to defaults.

    Asks for confirmation unless ``--force`` is active.

    Example::

        ai config reset
        ai --force config reset
    """
    from acli.config import save_global_config
    from acli.models import GlobalConfig

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm("Reset all config to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")
