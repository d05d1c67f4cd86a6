"""Config commands -- view and modify global configuration.

Provides the ``specgate config`` sub-command group for reading, updating,
and resetting the global configuration file
(:class:`~specgate.models.GlobalConfig`).
"""

from __future__ import annotations

import typer

from specgate.exceptions import ConfigError
from specgate.output import error, format_data, info, success

config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show the current global configuration.

    Example::

        specgate config show --json
    """
    from specgate.config import get_config_dir, load_global_config

    try:
        config = load_global_config()
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    info(f"Config directory: {get_config_dir()}")
    format_data(config.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Config key (dot notation, e.g. 'cache.ttl_seconds')."),
    value: str = typer.Argument(help="Value to set; JSON literals such as true or 600 are parsed."),
) -> None:
    """Set a configuration value.

    Example::

        specgate config set default_spec ./openapi.yaml
        specgate config set validation.check_formats false
        specgate config set cache.ttl_seconds 600
    """
    from specgate.config import load_global_config, save_global_config, set_config_value

    try:
        config = set_config_value(load_global_config(), key, value)
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=2) from None

    save_global_config(config)
    success(f"Set {key} = {value}")


@config_app.command("reset")
def config_reset(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """Reset configuration to defaults.

    Example::

        specgate config reset --yes
    """
    from specgate.config import save_global_config
    from specgate.models import GlobalConfig

    if not yes and not typer.confirm("Reset all config to defaults?"):
        info("Cancelled.")
        raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")
