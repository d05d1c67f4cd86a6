"""Validate an inbound request against its matched operation.

Path, query and header values arrive as strings (query values may also be
lists when a key repeats).  Before schema validation each value is coerced
towards the type its schema declares: ``"42"`` becomes ``42`` for an
``integer`` parameter, ``"a,b"`` becomes ``["a", "b"]`` for an array.  A
value that cannot be coerced is left as a string, so the schema validator
reports it as a ``TypeMismatch``.

Parameter violations are reported at ``<location>.<name>`` (``query.limit``);
body violations are rooted at the empty path like response bodies, and a
missing required body is reported at ``body``.
"""

from __future__ import annotations

import json
from typing import Any, Mapping, Optional, Union

from specgate.models import (
    ArraySchema,
    ObjectSchema,
    OneOfSchema,
    Operation,
    ParameterLocation,
    ParameterSpec,
    PrimitiveKind,
    PrimitiveSchema,
    SchemaNode,
    ValidationResult,
    Violation,
    ViolationKind,
)
from specgate.validation.schema import SchemaValidator

QueryValue = Union[str, list[str]]

_TRUE = frozenset({"true", "1"})
_FALSE = frozenset({"false", "0"})


def coerce_parameter(raw: Any, schema: SchemaNode) -> Any:
    """Convert a textual parameter value to the type *schema* expects.

    Values that do not convert are returned unchanged.
    """
    if isinstance(schema, ArraySchema):
        if isinstance(raw, list):
            items = raw
        elif isinstance(raw, str):
            items = raw.split(",") if raw else []
        else:
            items = [raw]
        return [coerce_parameter(item, schema.items) for item in items]

    if isinstance(raw, list):
        if not raw:
            return raw
        raw = raw[0]
    if not isinstance(raw, str):
        return raw

    if isinstance(schema, PrimitiveSchema):
        return _coerce_scalar(raw, schema.type)
    if isinstance(schema, OneOfSchema):
        for alternative in schema.alternatives:
            coerced = coerce_parameter(raw, alternative)
            if coerced is not raw:
                return coerced
        return raw
    if isinstance(schema, ObjectSchema):
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return raw
    return raw


def _coerce_scalar(raw: str, kind: Optional[PrimitiveKind]) -> Any:
    if kind == PrimitiveKind.INTEGER:
        try:
            return int(raw)
        except ValueError:
            return raw
    if kind == PrimitiveKind.NUMBER:
        try:
            return int(raw)
        except ValueError:
            pass
        try:
            return float(raw)
        except ValueError:
            return raw
    if kind == PrimitiveKind.BOOLEAN:
        lowered = raw.lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
    return raw


def validate_request(
    operation: Operation,
    path_params: Optional[Mapping[str, str]] = None,
    query: Optional[Mapping[str, QueryValue]] = None,
    headers: Optional[Mapping[str, str]] = None,
    body: Any = None,
    schema_validator: Optional[SchemaValidator] = None,
) -> ValidationResult:
    """Validate one request against *operation*.

    Args:
        operation: The operation the request was matched to.
        path_params: Values bound by the matcher, keyed by placeholder name.
        query: Decoded query parameters.
        headers: Request headers; names are compared case-insensitively.
        body: Decoded JSON body, or ``None`` when the request had none.
        schema_validator: Validator to use; defaults to one that checks
            formats.

    Returns:
        A fresh :class:`~specgate.models.ValidationResult`.
    """
    validator = schema_validator or SchemaValidator()
    violations: list[Violation] = []

    bound = path_params or {}
    for param in operation.parameters_in(ParameterLocation.PATH):
        _check_parameter(param, bound.get(param.name), validator, violations)

    supplied_query = query or {}
    for param in operation.parameters_in(ParameterLocation.QUERY):
        _check_parameter(param, supplied_query.get(param.name), validator, violations)

    lowered = {name.lower(): value for name, value in (headers or {}).items()}
    for param in operation.parameters_in(ParameterLocation.HEADER):
        _check_parameter(param, lowered.get(param.name.lower()), validator, violations)

    if body is None:
        if operation.request_body_required:
            violations.append(
                Violation(
                    path="body",
                    message="request body is required",
                    kind=ViolationKind.MISSING_REQUIRED_FIELD,
                )
            )
    elif operation.request_body_schema is not None:
        violations.extend(validator.validate(body, operation.request_body_schema, ""))

    return ValidationResult.from_violations(violations)


def _check_parameter(
    param: ParameterSpec,
    value: Any,
    validator: SchemaValidator,
    out: list[Violation],
) -> None:
    path = f"{param.location.value}.{param.name}"
    if value is None:
        if param.required:
            out.append(
                Violation(
                    path=path,
                    message=f"missing required {param.location.value} parameter '{param.name}'",
                    kind=ViolationKind.MISSING_REQUIRED_FIELD,
                )
            )
        return
    out.extend(validator.validate(coerce_parameter(value, param.schema_), param.schema_, path))
