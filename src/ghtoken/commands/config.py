"""Config commands -- view and modify the global configuration.

Provides the ``ghtoken config`` sub-command group for reading, updating
and resetting the global configuration file
(:class:`~ghtoken.models.GlobalConfig`). It holds the client defaults
(API root, timeout) and the scopes ``ghtoken create`` requests when no
``--scope`` is given.
"""

from __future__ import annotations

from typing import Any

import typer
from pydantic import ValidationError

from ghtoken.exit_codes import EXIT_INVALID_USAGE
from ghtoken.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show the current configuration.

    Example::

        ghtoken config show
        ghtoken --json config show
    """
    from ghtoken.config import get_config_dir, load_global_config

    config = load_global_config()
    info(f"Config directory: {get_config_dir()}")
    format_response(config.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g. 'client.api_url' or 'default_scopes')."
    ),
    value: str = typer.Argument(help="Value to set. Lists are comma-separated."),
) -> None:
    """Set a configuration value.

    The value is coerced to the type of the field it replaces: booleans
    accept ``true``/``1``/``yes``, numbers are parsed, and lists are split
    on commas (an empty value clears the list).

    Raises:
        typer.Exit: With code 2 for an unknown key, a value that cannot
            be coerced, or a result that fails validation.

    Example::

        ghtoken config set default_scopes repo,gist
        ghtoken config set client.api_url https://ghe.example.com/api/v3
        ghtoken config set client.timeout 10
    """
    from ghtoken.config import load_global_config, save_global_config
    from ghtoken.models import GlobalConfig

    data = load_global_config().model_dump(mode="json")

    keys = key.split(".")
    target = data
    for k in keys[:-1]:
        if not isinstance(target.get(k), dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=EXIT_INVALID_USAGE)
        target = target[k]

    final_key = keys[-1]
    if final_key not in target or isinstance(target[final_key], dict):
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    try:
        coerced = _coerce(target[final_key], value)
    except ValueError:
        error(f"Expected a number for {key}, got: {value}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None
    target[final_key] = coerced

    try:
        new_config = GlobalConfig.model_validate(data)
    except ValidationError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    save_global_config(new_config)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(
    force: bool = typer.Option(False, "--force", "-f", help="Do not ask for confirmation."),
) -> None:
    """Reset the configuration to defaults.

    Example::

        ghtoken config reset --force
    """
    from ghtoken.config import save_global_config
    from ghtoken.models import GlobalConfig

    if not force and not typer.confirm("Reset all config to defaults?", err=True):
        info("Cancelled.")
        raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")


def _coerce(current: Any, value: str) -> Any:
    if isinstance(current, bool):
        return value.lower() in ("true", "1", "yes")
    if isinstance(current, int):
        return int(value)
    if isinstance(current, float):
        return float(value)
    if isinstance(current, list):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value
