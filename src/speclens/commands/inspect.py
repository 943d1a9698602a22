"""Inspect commands -- examine a parsed document.

Provides the ``speclens inspect`` group: ``info``, ``endpoints``,
``schemas``, ``auth`` and ``pagination``. Each takes a ``SOURCE``, parses
it, and prints a table (or JSON with ``--json``).
"""

from __future__ import annotations

from typing import Optional

import typer

from speclens.commands.common import input_format, load_spec
from speclens.models import SchemaNode, SchemaRef
from speclens.output import format_response, get_output, info


inspect_app = typer.Typer(no_args_is_help=True)

SOURCE_HELP = "File path, http(s) URL, or '-' for stdin."


@inspect_app.command("info")
def inspect_info(
    ctx: typer.Context,
    source: str = typer.Argument(help=SOURCE_HELP),
) -> None:
    """Show title, version, source format, servers and counts.

    Example::

        speclens inspect info openapi.json
    """
    spec = load_spec(source, input_format(ctx))

    data: dict = {
        "title": spec.title,
        "version": spec.version,
        "format": spec.source_format.value,
        "format_version": spec.source_version or "-",
        "description": spec.description or "-",
        "servers": [s.url for s in spec.servers],
        "endpoints": len(spec.endpoints),
        "schemas": len(spec.schemas),
        "security_schemes": [s.name for s in spec.security_schemes],
        "tags": spec.tags,
    }
    format_response(data)


@inspect_app.command("endpoints")
def inspect_endpoints(
    ctx: typer.Context,
    source: str = typer.Argument(help=SOURCE_HELP),
    tag: Optional[str] = typer.Option(None, "--tag", "-t", help="Only endpoints with this tag."),
) -> None:
    """List every endpoint with its method, path, operation id and summary.

    Example::

        speclens inspect endpoints openapi.json --tag pets
    """
    spec = load_spec(source, input_format(ctx))

    rows: list[list[str]] = []
    for ep in spec.endpoints:
        if tag is not None and tag not in ep.tags:
            continue
        rows.append([
            ep.method.upper(),
            ep.path,
            ep.operation_id or "-",
            ep.summary or "-",
            "Yes" if ep.deprecated else "",
        ])

    if not rows:
        info("No endpoints found.")
        return
    get_output().print_table(
        ["Method", "Path", "Operation", "Summary", "Deprecated"],
        rows,
        title=f"{spec.title} -- Endpoints ({len(rows)})",
    )


@inspect_app.command("schemas")
def inspect_schemas(
    ctx: typer.Context,
    source: str = typer.Argument(help=SOURCE_HELP),
) -> None:
    """List named schemas with their type and up to five property names."""
    spec = load_spec(source, input_format(ctx))

    if not spec.schemas:
        info("No schemas defined in this document.")
        return

    rows: list[list[str]] = []
    for name, node in spec.schemas.items():
        if isinstance(node, SchemaRef):
            rows.append([name, f"-> {node.name}", ""])
            continue
        assert isinstance(node, SchemaNode)
        prop_names = list(node.properties)
        props = ", ".join(prop_names[:5])
        if len(prop_names) > 5:
            props += "..."
        rows.append([name, node.type or "-", props])

    get_output().print_table(
        ["Schema", "Type", "Properties"], rows, title=f"Schemas ({len(rows)})"
    )


@inspect_app.command("auth")
def inspect_auth(
    ctx: typer.Context,
    source: str = typer.Argument(help=SOURCE_HELP),
) -> None:
    """Show detected authentication patterns, most confident first."""
    from speclens.patterns import detect_auth_patterns

    spec = load_spec(source, input_format(ctx))
    patterns = detect_auth_patterns(spec)
    if not patterns:
        info("No authentication patterns detected.")
        return

    rows: list[list[str]] = []
    for p in patterns:
        rows.append([
            p.type,
            p.subtype or "-",
            p.scheme_name or "-",
            f"{p.confidence:.2f}",
            p.complexity,
            ", ".join(h.name for h in p.headers) or "-",
        ])
    get_output().print_table(
        ["Type", "Subtype", "Scheme", "Confidence", "Complexity", "Headers"],
        rows,
        title="Authentication Patterns",
    )


@inspect_app.command("pagination")
def inspect_pagination(
    ctx: typer.Context,
    source: str = typer.Argument(help=SOURCE_HELP),
) -> None:
    """Show pagination patterns detected on each endpoint."""
    from speclens.patterns import detect_spec_pagination

    spec = load_spec(source, input_format(ctx))
    found = detect_spec_pagination(spec)
    if not found:
        info("No pagination patterns detected.")
        return

    rows: list[list[str]] = []
    for key, patterns in found.items():
        for p in patterns:
            rows.append([key, p.type, f"{p.confidence:.2f}", ", ".join(p.matched)])
    get_output().print_table(
        ["Endpoint", "Type", "Confidence", "Matched"], rows, title="Pagination Patterns"
    )
