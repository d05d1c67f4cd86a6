"""Inspect commands -- examine the loaded contract.

Provides the ``specgate inspect`` sub-command group with read-only views of
the active :class:`~specgate.models.SpecDocument`: its operations, its
component schemas, and general API info. Loading the document here also
proves the contract is well formed, so ``specgate inspect info`` doubles as
a lint step in CI.
"""

from __future__ import annotations

import typer

from specgate.commands._shared import load_active_document
from specgate.models import (
    AnySchema,
    ArraySchema,
    ObjectSchema,
    OneOfSchema,
    PrimitiveSchema,
    SchemaNode,
)
from specgate.output import format_data, get_output, info

inspect_app = typer.Typer(no_args_is_help=True)


def describe_schema(schema: SchemaNode) -> tuple[str, str]:
    """Return a short ``(type, detail)`` description of a schema node."""
    if isinstance(schema, ObjectSchema):
        names = list(schema.properties)
        detail = ", ".join(names[:5])
        if len(names) > 5:
            detail += "..."
        return "object", detail
    if isinstance(schema, ArraySchema):
        item_type, _ = describe_schema(schema.items)
        return "array", f"items: {item_type}"
    if isinstance(schema, OneOfSchema):
        return "oneOf", f"{len(schema.alternatives)} alternatives"
    if isinstance(schema, PrimitiveSchema):
        kind = schema.type.value if schema.type is not None else "any"
        detail = f"enum: {len(schema.enum)} values" if schema.enum is not None else ""
        return kind, schema.format or detail
    if isinstance(schema, AnySchema):
        return "any", ""
    return schema.kind, ""


@inspect_app.command("paths")
def inspect_paths(ctx: typer.Context) -> None:
    """List all operations.

    Example::

        specgate -s users.yaml inspect paths
    """
    document, _ = load_active_document(ctx)

    rows: list[list[str]] = []
    for op in sorted(document.operations, key=lambda o: (o.path, o.method.value)):
        rows.append([
            op.method.value.upper(),
            op.path,
            ", ".join(sorted(op.responses)) or "-",
            op.summary or "-",
            "Yes" if op.deprecated else "",
        ])

    get_output().print_table(
        ["Method", "Path", "Responses", "Summary", "Deprecated"],
        rows,
        title=f"{document.info.title} -- Paths ({len(rows)})",
    )


@inspect_app.command("schemas")
def inspect_schemas(ctx: typer.Context) -> None:
    """List the component schemas.

    Example::

        specgate inspect schemas
    """
    document, _ = load_active_document(ctx)

    if not document.schemas:
        info("No schemas defined in this spec.")
        return

    rows: list[list[str]] = []
    for name, schema in sorted(document.schemas.items()):
        kind, detail = describe_schema(schema)
        rows.append([name, kind, detail])

    get_output().print_table(["Schema", "Type", "Details"], rows, title=f"Schemas ({len(rows)})")


@inspect_app.command("info")
def inspect_info(ctx: typer.Context) -> None:
    """Show API info (title, version, servers, counts).

    Example::

        specgate inspect info --json
    """
    document, _ = load_active_document(ctx)

    format_data({
        "title": document.info.title,
        "version": document.info.version,
        "openapi_version": document.openapi_version,
        "description": document.info.description or "-",
        "servers": [s.url for s in document.servers],
        "operations": len(document.operations),
        "schemas": len(document.schemas),
    })
