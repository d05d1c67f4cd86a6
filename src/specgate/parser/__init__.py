"""OpenAPI spec parser -- load, link ``$ref`` pointers, and extract operations.

This sub-package turns a raw OpenAPI 3.x document (JSON or YAML, text, local
file, stdin or remote URL) into an immutable
:class:`~specgate.models.SpecDocument` that the matcher and validators
consume.

Typical usage::

    from specgate.parser import load_document, load_document_from

    document = load_document(spec_text)
    document = load_document_from("https://example.com/openapi.yaml")

Sub-modules:

* :mod:`~specgate.parser.loader` -- I/O layer (URL, file, stdin) plus format
  detection and OpenAPI version validation.
* :mod:`~specgate.parser.resolver` -- Schema parsing and eager ``$ref``
  linking with cycle rejection.
* :mod:`~specgate.parser.extractor` -- Walks the document and produces
  :class:`~specgate.models.Operation` objects.
"""

from specgate.parser.extractor import extract_document
from specgate.parser.loader import (
    load_document,
    load_document_from,
    load_spec,
    validate_openapi_version,
)

__all__ = [
    "extract_document",
    "load_document",
    "load_document_from",
    "load_spec",
    "validate_openapi_version",
]
