"""Validate an outbound response against its operation's declared responses."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from specgate.models import (
    Operation,
    ResponseSpec,
    ValidationResult,
    Violation,
    ViolationKind,
)
from specgate.validation.schema import SchemaValidator

logger = logging.getLogger(__name__)


def select_response(operation: Operation, status_code: int) -> Optional[ResponseSpec]:
    """Find the response definition that covers *status_code*.

    Lookup order is the exact code, then its range key (``2XX``), then
    ``default``.
    """
    responses = operation.responses
    exact = str(status_code)
    if exact in responses:
        return responses[exact]
    range_key = f"{exact[0]}XX"
    if range_key in responses:
        return responses[range_key]
    return responses.get("default")


def validate_response(
    operation: Operation,
    status_code: int,
    headers: Optional[Mapping[str, str]] = None,
    body: Any = None,
    schema_validator: Optional[SchemaValidator] = None,
) -> ValidationResult:
    """Validate one response against *operation*.

    Args:
        operation: The operation whose request produced the response.
        status_code: The HTTP status returned.
        headers: Response headers; names are compared case-insensitively.
        body: Decoded JSON body.
        schema_validator: Validator to use; defaults to one that checks
            formats.

    Returns:
        A :class:`~specgate.models.ValidationResult`. An undocumented status
        code yields a single ``UnknownOperation`` violation.
    """
    spec = select_response(operation, status_code)
    if spec is None:
        logger.debug("%s has no response for status %s", operation.key, status_code)
        return ValidationResult.from_violations(
            [
                Violation(
                    path="",
                    message=f"undocumented status code {status_code} for {operation.key}",
                    kind=ViolationKind.UNKNOWN_OPERATION,
                )
            ]
        )

    violations: list[Violation] = []

    present = {name.lower() for name in (headers or {})}
    for name, header in spec.headers.items():
        if header.required and name.lower() not in present:
            violations.append(
                Violation(
                    path=f"header.{name}",
                    message=f"missing required response header '{name}'",
                    kind=ViolationKind.MISSING_REQUIRED_FIELD,
                )
            )

    if spec.body_schema is not None:
        validator = schema_validator or SchemaValidator()
        violations.extend(validator.validate(body, spec.body_schema, ""))

    return ValidationResult.from_violations(violations)
