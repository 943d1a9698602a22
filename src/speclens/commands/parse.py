"""``speclens parse`` -- print the unified representation of a document."""

from __future__ import annotations

import json

import typer

from speclens.commands.common import input_format, load_spec, report_errors
from speclens.output import OutputFormat, format_response, get_output, info


def parse_command(
    ctx: typer.Context,
    source: str = typer.Argument(help="File path, http(s) URL, or '-' for stdin."),
    dedupe: bool = typer.Option(
        False, "--dedupe", help="Collapse identical schemas before printing."
    ),
) -> None:
    """Parse SOURCE and print the unified spec as JSON.

    Example::

        speclens parse openapi.yaml
        curl -s https://example.com/collection.json | speclens parse - --format postman
    """
    from speclens.parser import deduplicate_schemas

    spec = load_spec(source, input_format(ctx))
    if dedupe:
        with report_errors():
            spec = deduplicate_schemas(spec)

    data = spec.model_dump(mode="json", by_alias=True, exclude_none=True)
    if get_output().format == OutputFormat.RICH:
        format_response(data)
    else:
        get_output().print_data(json.dumps(data, indent=2, ensure_ascii=False))
    info(
        f"{spec.title} {spec.version}: {len(spec.endpoints)} endpoint(s), "
        f"{len(spec.schemas)} schema(s)"
    )
