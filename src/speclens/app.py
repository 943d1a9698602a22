"""Typer application factory and CLI entry point for speclens.

:func:`create_app` builds the root Typer application and registers the
built-in commands (``parse``, ``analyze``, ``process``, ``inspect``,
``config``). :func:`main` is the console-script entry point declared in
``pyproject.toml``: it installs signal handlers, invokes the app, maps
:class:`~speclens.exceptions.SpeclensError` to its exit code, and writes a
crash log for anything unexpected.

See Also:
    :mod:`speclens.config`: Configuration resolution.
    :mod:`speclens.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

import typer

from speclens import __version__
from speclens.exit_codes import EXIT_CANCELLED, EXIT_GENERIC_FAILURE

if TYPE_CHECKING:
    from speclens.output import OutputFormat


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"speclens {__version__}")
        raise typer.Exit()


def _output_format(json_output: bool, plain_output: bool) -> OutputFormat:
    """Pick the output format from the flags, falling back to configuration."""
    from speclens.config import resolve_config
    from speclens.exceptions import InvalidUsageError
    from speclens.output import OutputFormat

    if json_output and plain_output:
        raise InvalidUsageError("--json and --plain cannot be used together")
    if json_output:
        return OutputFormat.JSON
    if plain_output:
        return OutputFormat.PLAIN
    try:
        return OutputFormat(resolve_config().output.format)
    except ValueError:
        return OutputFormat.AUTO


def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    input_format: Optional[str] = typer.Option(
        None,
        "--format",
        help="Input format: openapi, asyncapi, postman or graphql (detected when omitted).",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~speclens.output.OutputManager`, configures
    logging, and stores the input format in ``ctx.obj`` for sub-commands.

    The output format comes from ``--json``/``--plain`` when given, else
    from the resolved configuration (``SPECLENS_FORMAT``, project and user
    config files).
    """
    from speclens.commands.common import report_errors
    from speclens.logging_setup import setup_logging
    from speclens.output import OutputManager, set_output

    with report_errors():
        fmt = _output_format(json_output, plain_output)

    output = OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose)
    set_output(output)
    setup_logging(verbose=verbose, console=output.stderr_console)

    ctx.ensure_object(dict)
    ctx.obj["input_format"] = input_format
    ctx.obj["verbose"] = verbose


def create_app() -> typer.Typer:
    """Build the root application with every built-in command registered."""
    from speclens.commands.analyze import analyze_command, process_command
    from speclens.commands.config import config_app
    from speclens.commands.inspect import inspect_app
    from speclens.commands.parse import parse_command

    root = typer.Typer(
        name="speclens",
        help="Parse, analyze and process OpenAPI, AsyncAPI, Postman and GraphQL documents.",
        no_args_is_help=True,
        add_completion=False,
        rich_markup_mode="rich",
    )
    root.callback()(main_callback)
    root.command("parse")(parse_command)
    root.command("analyze")(analyze_command)
    root.command("process")(process_command)
    root.add_typer(inspect_app, name="inspect", help="Inspect a document's contents.")
    root.add_typer(config_app, name="config", help="Configuration management.")
    return root


app = create_app()


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_CANCELLED)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write the current traceback under the data directory and return its path."""
    from speclens.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(f"{type(exc).__name__}: {exc}\n\n{traceback.format_exc()}")
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``speclens`` console script.

    :class:`~speclens.exceptions.SpeclensError` exits with the error's
    ``exit_code``; any other exception writes a crash log and exits with
    :data:`~speclens.exit_codes.EXIT_GENERIC_FAILURE`.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_CANCELLED)
    except Exception as exc:
        from speclens.exceptions import SpeclensError
        from speclens.output import error

        if isinstance(exc, SpeclensError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
