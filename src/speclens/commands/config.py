"""Config commands -- view and modify the user configuration.

``speclens config show|set|reset`` read and write the
:class:`~speclens.models.GlobalConfig` stored in the speclens config
directory (output format, analysis cache, processing limits).
"""

from __future__ import annotations

import typer

from speclens.exceptions import InvalidUsageError
from speclens.output import format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show the effective configuration.

    Includes project (``./speclens.json``) and environment overrides.

    Example::

        speclens config show
        speclens --json config show
    """
    from speclens.commands.common import load_config
    from speclens.config import get_config_dir

    config = load_config()
    info(f"Config directory: {get_config_dir()}")
    format_response(config.model_dump(mode="json"))


def _coerce(key: str, current: object, value: str) -> object:
    """Convert *value* to the type of the field it replaces."""
    if isinstance(current, bool):
        return value.lower() in ("true", "1", "yes", "on")
    try:
        if isinstance(current, int):
            return int(value)
        if isinstance(current, float):
            return float(value)
    except ValueError:
        raise InvalidUsageError(
            f"Expected {type(current).__name__} for {key}, got: {value}"
        ) from None
    return value


def _apply_setting(data: dict, key: str, value: str) -> object:
    """Set dotted *key* in *data* to the coerced *value* and return it."""
    keys = key.split(".")
    target = data
    for k in keys[:-1]:
        if k not in target or not isinstance(target[k], dict):
            raise InvalidUsageError(f"Invalid config key: {key}")
        target = target[k]

    final_key = keys[-1]
    if final_key not in target or isinstance(target[final_key], dict):
        raise InvalidUsageError(f"Unknown config key: {key}")

    coerced = _coerce(key, target[final_key], value)
    target[final_key] = coerced
    return coerced


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g., 'processing.chunk_size')."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    The value is coerced to the type of the existing field and the result
    is validated before it is saved.

    Example::

        speclens config set output.format json
        speclens config set cache.ttl_seconds 600
        speclens config set processing.http_timeout 12.5
    """
    from pydantic import ValidationError as PydanticValidationError

    from speclens.commands.common import report_errors
    from speclens.config import load_global_config, save_global_config
    from speclens.models import GlobalConfig

    with report_errors():
        config = load_global_config()
        data = config.model_dump(mode="json")
        coerced = _apply_setting(data, key, value)
        try:
            new_config = GlobalConfig.model_validate(data)
        except PydanticValidationError as exc:
            raise InvalidUsageError(f"Validation error: {exc}") from None
        save_global_config(new_config)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """Reset the configuration to defaults.

    Example::

        speclens config reset --yes
    """
    from speclens.config import save_global_config
    from speclens.models import GlobalConfig

    if not yes and not typer.confirm("Reset all config to defaults?"):
        info("Cancelled.")
        raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")
