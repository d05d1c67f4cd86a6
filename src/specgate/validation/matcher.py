"""Resolve an observed method and path to a documented operation.

Templates are compared segment by segment.  A literal segment must match
exactly (case-sensitive); a ``{placeholder}`` matches any non-empty segment
and binds its percent-decoded value to the parameter name.

When several templates match, literal segments win over placeholders: the
candidate with the fewest placeholder segments is chosen, so
``/products/active`` beats ``/products/{id}``.  Two candidates tying on
placeholder count raise :class:`~specgate.exceptions.AmbiguousMatch`.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Optional
from urllib.parse import unquote, urlsplit

from specgate.exceptions import AmbiguousMatch, NoMatchingOperation
from specgate.models import MatchResult, Operation, PathSegment, SpecDocument

logger = logging.getLogger(__name__)


def split_path(path: str) -> list[str]:
    """Split a concrete request path into raw segments.

    Accepts absolute URLs and paths carrying a query string or fragment;
    only the path component is used. Leading and trailing slashes are
    ignored.
    """
    if "://" in path:
        path_only = urlsplit(path).path
    else:
        path_only = path.split("?", 1)[0].split("#", 1)[0]
    stripped = path_only.strip("/")
    return stripped.split("/") if stripped else []


def _bind(segments: tuple[PathSegment, ...], parts: list[str]) -> Optional[dict[str, str]]:
    bound: dict[str, str] = {}
    for segment, part in zip(segments, parts):
        if segment.is_placeholder:
            if not part:
                return None
            bound[segment.value] = unquote(part)
        elif segment.value != part:
            return None
    return bound


class OperationMatcher:
    """Finds the operation template matching a concrete request.

    The matcher indexes the document's operations by method and segment
    count once; :meth:`match` is then read-only and safe to call from any
    number of threads.

    Args:
        document: The loaded contract.
        strip_server_prefix: When no template matches, retry with the base
            path of each ``servers[].url`` removed from the request path.

    Example::

        matcher = OperationMatcher(document)
        result = matcher.match("GET", "/products/42")
        result.operation.path   # "/products/{id}"
        result.path_params      # {"id": "42"}
    """

    def __init__(self, document: SpecDocument, strip_server_prefix: bool = True) -> None:
        self._index: dict[tuple[str, int], list[Operation]] = defaultdict(list)
        for operation in document.operations:
            self._index[(operation.method.value, len(operation.segments))].append(operation)
        self._base_paths = document.base_paths if strip_server_prefix else []

    def match(self, method: str, path: str) -> MatchResult:
        """Resolve *method* and *path* to an operation.

        Args:
            method: HTTP method, any case.
            path: Request path, optionally with query string, or a full URL.

        Returns:
            The matched operation and its bound path parameters.

        Raises:
            NoMatchingOperation: If no template matches.
            AmbiguousMatch: If the best candidates tie on placeholder count.
        """
        parts = split_path(path)
        result = self._match_parts(method, parts, path)
        if result is not None:
            return result

        for base in self._base_paths:
            base_parts = split_path(base)
            if parts[: len(base_parts)] == base_parts:
                result = self._match_parts(method, parts[len(base_parts):], path)
                if result is not None:
                    return result

        raise NoMatchingOperation(
            f"No documented operation matches {method.upper()} {path}", method, path
        )

    def _match_parts(self, method: str, parts: list[str], path: str) -> Optional[MatchResult]:
        candidates = self._index.get((method.lower(), len(parts)), [])
        matches: list[tuple[Operation, dict[str, str]]] = []
        for operation in candidates:
            bound = _bind(operation.segments, parts)
            if bound is not None:
                matches.append((operation, bound))

        if not matches:
            return None

        fewest = min(operation.placeholder_count for operation, _ in matches)
        best = [m for m in matches if m[0].placeholder_count == fewest]
        if len(best) > 1:
            templates = [operation.path for operation, _ in best]
            logger.debug("Ambiguous match for %s %s: %s", method, path, templates)
            raise AmbiguousMatch(
                f"{method.upper()} {path} matches {len(best)} templates equally: "
                + ", ".join(templates),
                method,
                path,
                templates,
            )

        operation, bound = best[0]
        return MatchResult(operation=operation, path_params=bound)
