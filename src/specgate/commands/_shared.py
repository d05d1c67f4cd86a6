"""Helpers shared by the command modules."""

from __future__ import annotations

from typing import Optional

import typer

from specgate.exceptions import SpecgateError
from specgate.models import GlobalConfig, SpecDocument
from specgate.output import debug, error, suggest


def load_active_document(ctx: typer.Context) -> tuple[SpecDocument, GlobalConfig]:
    """Resolve the spec source for this invocation and load it.

    Errors are reported on stderr and turned into ``typer.Exit`` with the
    error's exit code.
    """
    from specgate.cache import SpecCache
    from specgate.config import get_cache_dir, resolve_config
    from specgate.parser import load_document_from

    cli_spec: Optional[str] = ctx.obj.get("spec") if ctx.obj else None
    try:
        config, source = resolve_config(cli_spec=cli_spec)
        if source is None:
            error("No spec given.")
            suggest("Pass --spec PATH, set SPECGATE_SPEC, or run: specgate config set default_spec PATH")
            raise typer.Exit(code=2)

        debug(f"Loading spec from {source}")
        cache = SpecCache(get_cache_dir(), config.cache)
        try:
            document = load_document_from(source, cache=cache)
        finally:
            cache.close()
    except SpecgateError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    debug(f"{document.info.title} {document.info.version}: {len(document.operations)} operations")
    return document, config
