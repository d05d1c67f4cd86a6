"""Load OpenAPI specifications from text, a URL, a local file, or stdin.

This module handles all I/O for fetching raw OpenAPI documents and converting
them into Python dictionaries.  It supports both JSON and YAML formats with
automatic format detection, and validates that the document declares a
supported OpenAPI version (3.0.x or 3.1.x).

The public functions are:

* :func:`load_document` -- Build a linked
  :class:`~specgate.models.SpecDocument` from specification text.
* :func:`load_document_from` -- Same, reading the text from a source.
* :func:`load_spec` -- Load and parse a raw spec dict from any supported source.
* :func:`parse_spec_text` -- Parse JSON or YAML text into a dict.
* :func:`validate_openapi_version` -- Check and return the ``openapi`` version
  string, rejecting Swagger 2.x and unsupported versions.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

import httpx
import yaml

from specgate.exceptions import ConnectionError_, SpecLoadError
from specgate.models import SpecDocument
from specgate.parser.extractor import extract_document

if TYPE_CHECKING:
    from specgate.cache import SpecCache

logger = logging.getLogger(__name__)


def load_document(spec_text: str) -> SpecDocument:
    """Parse specification text into a fully linked SpecDocument.

    Args:
        spec_text: An OpenAPI 3.x document as JSON or YAML text.

    Returns:
        The immutable :class:`~specgate.models.SpecDocument`.

    Raises:
        SpecLoadError: If the text cannot be parsed, declares an unsupported
            version, or contains unresolved or cyclic references.
    """
    if not spec_text.strip():
        raise SpecLoadError("Specification text is empty")
    raw = parse_spec_text(spec_text)
    version = validate_openapi_version(raw)
    return extract_document(raw, version)


def load_document_from(source: str, cache: Optional[SpecCache] = None) -> SpecDocument:
    """Load a SpecDocument from a URL, file path, or stdin ('-').

    Args:
        source: A URL (http/https), file path, or '-' for stdin.
        cache: Optional cache consulted for remote sources.

    Returns:
        The immutable :class:`~specgate.models.SpecDocument`.

    Raises:
        SpecLoadError: If the source cannot be read or the document is invalid.
        ConnectionError_: If a remote source cannot be fetched.
    """
    raw = load_spec(source, cache=cache)
    version = validate_openapi_version(raw)
    document = extract_document(raw, version)
    logger.debug("Loaded %s from %s", document.info.title, source)
    return document


def load_spec(source: str, cache: Optional[SpecCache] = None) -> dict[str, Any]:
    """Load a raw OpenAPI spec dict from URL, file path, or stdin ('-').

    Supports JSON and YAML formats.
    Auto-detects format from content/extension.

    Args:
        source: A URL (http/https), file path, or '-' for stdin.
        cache: Optional cache for remote sources.

    Returns:
        The parsed spec as a dictionary.

    Raises:
        SpecLoadError: If the source cannot be loaded or parsed.
    """
    if source == "-":
        return _load_from_stdin()
    elif source.startswith(("http://", "https://")):
        return _load_from_url(source, cache)
    else:
        return _load_from_file(source)


def _load_from_stdin() -> dict[str, Any]:
    """Read spec from stdin."""
    try:
        content = sys.stdin.read()
    except OSError as exc:
        raise SpecLoadError(f"Failed to read from stdin: {exc}") from exc

    if not content.strip():
        raise SpecLoadError("No input received from stdin")

    return parse_spec_text(content, hint="stdin")


def _load_from_url(url: str, cache: Optional[SpecCache] = None) -> dict[str, Any]:
    """Fetch spec from URL. Supports JSON and YAML responses.

    When *cache* is given, a fresh cached copy is used instead of the
    network, and successful fetches are stored in it.

    Args:
        url: The HTTP(S) URL to fetch.
        cache: Optional remote spec cache.

    Returns:
        The parsed spec dictionary.

    Raises:
        ConnectionError_: If the URL cannot be fetched.
        SpecLoadError: If the server answers with an error or the content
            cannot be parsed.
    """
    if cache is not None:
        cached = cache.get(url)
        if cached is not None:
            logger.debug("Spec cache hit for %s", url)
            return parse_spec_text(cached["text"], hint=cached.get("hint", ""))

    try:
        response = httpx.get(url, timeout=30.0, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise SpecLoadError(
            f"HTTP {exc.response.status_code} fetching spec from {url}"
        ) from exc
    except httpx.RequestError as exc:
        raise ConnectionError_(f"Failed to fetch spec from {url}: {exc}") from exc

    content = response.text
    # Use content-type as a hint for parsing
    content_type = response.headers.get("content-type", "")
    hint = ""
    if "json" in content_type:
        hint = "json"
    elif "yaml" in content_type or "yml" in content_type:
        hint = "yaml"

    result = parse_spec_text(content, hint=hint)
    if cache is not None:
        cache.set(url, {"text": content, "hint": hint})
    return result


def _load_from_file(path: str) -> dict[str, Any]:
    """Load spec from local file.

    Supports .json, .yaml, and .yml extensions. Falls back to content-based
    detection if the extension is not recognized.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise SpecLoadError(f"Spec file not found: {path}")

    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SpecLoadError(f"Failed to read spec file {path}: {exc}") from exc

    if not content.strip():
        raise SpecLoadError(f"Spec file is empty: {path}")

    suffix = file_path.suffix.lower()
    hint = ""
    if suffix == ".json":
        hint = "json"
    elif suffix in (".yaml", ".yml"):
        hint = "yaml"

    return parse_spec_text(content, hint=hint)


def parse_spec_text(content: str, hint: str = "") -> dict[str, Any]:
    """Parse content as JSON or YAML.

    Tries JSON first (unless hint is 'yaml'), then falls back to YAML.
    Valid JSON is also valid YAML, but JSON parsing is stricter and faster.

    Args:
        content: The raw string content.
        hint: Optional format hint ('json' or 'yaml').

    Returns:
        The parsed dictionary.

    Raises:
        SpecLoadError: If the content cannot be parsed as either format.
    """
    json_error: Exception | None = None
    yaml_error: Exception | None = None

    if hint != "yaml":
        try:
            result = json.loads(content)
            if not isinstance(result, dict):
                raise SpecLoadError(
                    "Spec must be a JSON/YAML object (got "
                    f"{type(result).__name__})"
                )
            return result
        except json.JSONDecodeError as exc:
            json_error = exc
            if hint == "json":
                raise SpecLoadError(f"Invalid JSON: {exc}") from exc

    try:
        result = yaml.safe_load(content)
        if not isinstance(result, dict):
            raise SpecLoadError(
                "Spec must be a JSON/YAML object (got "
                f"{type(result).__name__ if result is not None else 'empty document'})"
            )
        return result
    except yaml.YAMLError as exc:
        yaml_error = exc

    msg = "Failed to parse spec as JSON or YAML"
    if json_error:
        msg += f"\n  JSON error: {json_error}"
    if yaml_error:
        msg += f"\n  YAML error: {yaml_error}"
    raise SpecLoadError(msg)


def validate_openapi_version(spec: dict[str, Any]) -> str:
    """Validate and return the OpenAPI version string.

    Supports OpenAPI 3.x. Raises SpecLoadError for Swagger 2.x,
    missing version fields, or unsupported versions.

    Args:
        spec: The parsed spec dictionary.

    Returns:
        The OpenAPI version string (e.g., '3.0.3', '3.1.0').

    Raises:
        SpecLoadError: If the version is missing, unsupported, or indicates Swagger 2.x.
    """
    if "swagger" in spec:
        swagger_ver = str(spec["swagger"])
        raise SpecLoadError(
            f"Swagger {swagger_ver} is not supported. "
            "Only OpenAPI 3.0.x and 3.1.x are supported. "
            "Consider converting with https://converter.swagger.io"
        )

    openapi_version = spec.get("openapi")
    if openapi_version is None:
        raise SpecLoadError(
            "Missing 'openapi' field. Is this an OpenAPI 3.x document?"
        )

    version_str = str(openapi_version)
    if version_str.startswith("3."):
        return version_str

    raise SpecLoadError(
        f"Unsupported OpenAPI version: {version_str}. "
        "Only OpenAPI 3.0.x and 3.1.x are supported."
    )
