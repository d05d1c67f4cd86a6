"""specgate -- validate HTTP exchanges against OpenAPI 3.x contracts.

This package loads an OpenAPI specification into an immutable
:class:`~specgate.models.SpecDocument` and checks observed requests and
responses against it: operation matching, parameter constraints, and body
schemas (including ``oneOf`` version-conditional responses).

Typical usage::

    from specgate import ContractValidator, load_document_from

    document = load_document_from("openapi.yaml")
    validator = ContractValidator(document)
    result = validator.validate_response("GET", "/users", 200, body=payload)
    if not result.valid:
        for violation in result.violations:
            print(violation.path, violation.message)

Modules:
    app: Typer application factory and CLI entry point.
    models: Pydantic models shared across the entire package.
    config: XDG-aware configuration with precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"

from specgate.parser import load_document, load_document_from  # noqa: E402
from specgate.validation import ContractValidator  # noqa: E402

__all__ = ["ContractValidator", "load_document", "load_document_from", "__version__"]
