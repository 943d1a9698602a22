"""Helpers shared by the spec-reading commands.

Every command that takes a ``SOURCE`` argument reads it the same way:
resolve the effective configuration, load the text from a file, URL or
stdin, and (for most commands) parse it. Library errors are reported on
stderr and turned into a :class:`typer.Exit` carrying the error's exit
code.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

import typer

from speclens.exceptions import SpeclensError, ValidationError
from speclens.models import GlobalConfig, UnifiedSpec
from speclens.output import debug, error


def input_format(ctx: typer.Context) -> Optional[str]:
    """The ``--format`` given on the root command, if any."""
    return ctx.obj.get("input_format") if ctx.obj else None


@contextmanager
def report_errors() -> Iterator[None]:
    """Print a :class:`~speclens.exceptions.SpeclensError` and exit with its code."""
    try:
        yield
    except SpeclensError as exc:
        error(str(exc))
        if isinstance(exc, ValidationError):
            for field in exc.missing:
                debug(f"missing: {field}")
        raise typer.Exit(code=exc.exit_code) from None


def load_config() -> GlobalConfig:
    from speclens.config import resolve_config

    with report_errors():
        return resolve_config()


def read_source(source: str, config: Optional[GlobalConfig] = None) -> str:
    """Read the raw text of *source* (path, http(s) URL, or ``-``)."""
    from speclens.parser import load_source

    config = config or load_config()
    debug(f"Reading {source}")
    with report_errors():
        return load_source(source, timeout=config.processing.http_timeout)


def load_spec(source: str, format: Optional[str] = None) -> UnifiedSpec:
    """Read and parse *source* into a :class:`~speclens.models.UnifiedSpec`."""
    from speclens.parser import parse_spec

    text = read_source(source)
    with report_errors():
        return parse_spec(text, format)
