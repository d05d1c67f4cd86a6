"""Recursive validation of JSON values against linked schema nodes.

Values are plain decoded JSON: ``None``, ``bool``, ``int``, ``float``,
``str``, ``list`` and ``dict``.  Numbers follow :func:`json.loads`
semantics (IEEE doubles for fractional values); :class:`decimal.Decimal` is
accepted too for callers that decode with ``parse_float=Decimal``; float
bounds and enum members are then compared as decimals.  Because
``bool`` is a subclass of ``int`` in Python, booleans are checked first and
never count as numbers.

Violation paths are rooted at *path_prefix*: object members append
``.name`` and array elements append ``[index]``, so a bad element of a
response's ``users`` array is reported at ``.users[3].email``.

Validation never stops at the first problem: every violation reachable in
the value is collected.  The one exception is ``oneOf``, which reports a
single ``NoMatchingAlternative`` instead of every alternative's failures.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from specgate.models import (
    ArraySchema,
    ObjectSchema,
    OneOfSchema,
    PrimitiveKind,
    PrimitiveSchema,
    RefSchema,
    SchemaNode,
    Violation,
    ViolationKind,
)
from specgate.validation.formats import check_format


class SchemaValidator:
    """Validates decoded JSON values against schema nodes.

    Instances hold options only and are safe to share between threads.

    Args:
        check_formats: Check the ``format`` keyword. When ``False``, formats
            are ignored entirely.

    Example::

        validator = SchemaValidator()
        violations = validator.validate({"name": "x"}, user_schema)
        # [Violation(path='.id', kind=MissingRequiredField, ...)]
    """

    def __init__(self, check_formats: bool = True) -> None:
        self._check_formats = check_formats

    def validate(
        self, value: Any, schema: SchemaNode, path_prefix: str = ""
    ) -> list[Violation]:
        """Return every violation of *schema* found in *value*.

        Args:
            value: The decoded JSON value.
            schema: A linked schema node (no :class:`RefSchema` inside).
            path_prefix: Location of *value* within the enclosing document.

        Returns:
            Violations in discovery order; empty when *value* conforms.
        """
        violations: list[Violation] = []
        self._check(value, schema, path_prefix, violations)
        return violations

    def _check(self, value: Any, schema: SchemaNode, path: str, out: list[Violation]) -> None:
        if value is None and not isinstance(schema, OneOfSchema):
            if _accepts_null(schema):
                return
            # an untyped enum reports null as an enum miss
            if not _is_untyped_enum(schema):
                out.append(
                    Violation(
                        path=path,
                        message=f"expected {_describe(schema)}, got null",
                        kind=ViolationKind.TYPE_MISMATCH,
                    )
                )
                return

        if isinstance(schema, ObjectSchema):
            self._check_object(value, schema, path, out)
        elif isinstance(schema, ArraySchema):
            self._check_array(value, schema, path, out)
        elif isinstance(schema, PrimitiveSchema):
            self._check_primitive(value, schema, path, out)
        elif isinstance(schema, OneOfSchema):
            self._check_one_of(value, schema, path, out)
        elif isinstance(schema, RefSchema):
            raise ValueError(f"Schema at {path or '<root>'} still references {schema.target}")

    def _check_object(
        self, value: Any, schema: ObjectSchema, path: str, out: list[Violation]
    ) -> None:
        if not isinstance(value, dict):
            out.append(_type_mismatch(path, "object", value))
            return

        for name in schema.required:
            if name not in value:
                out.append(
                    Violation(
                        path=f"{path}.{name}",
                        message=f"missing required field '{name}'",
                        kind=ViolationKind.MISSING_REQUIRED_FIELD,
                    )
                )

        for name, item in value.items():
            child = f"{path}.{name}"
            prop = schema.properties.get(name)
            if prop is not None:
                self._check(item, prop, child, out)
            elif schema.additional_properties is not None:
                self._check(item, schema.additional_properties, child, out)
            elif not schema.additional_properties_allowed:
                out.append(
                    Violation(
                        path=child,
                        message=f"unexpected property '{name}'",
                        kind=ViolationKind.TYPE_MISMATCH,
                    )
                )

    def _check_array(
        self, value: Any, schema: ArraySchema, path: str, out: list[Violation]
    ) -> None:
        if not isinstance(value, (list, tuple)):
            out.append(_type_mismatch(path, "array", value))
            return

        if schema.min_items is not None and len(value) < schema.min_items:
            out.append(
                _range(path, f"array has {len(value)} items, fewer than minItems {schema.min_items}")
            )
        if schema.max_items is not None and len(value) > schema.max_items:
            out.append(
                _range(path, f"array has {len(value)} items, more than maxItems {schema.max_items}")
            )

        for index, item in enumerate(value):
            self._check(item, schema.items, f"{path}[{index}]", out)

    def _check_primitive(
        self, value: Any, schema: PrimitiveSchema, path: str, out: list[Violation]
    ) -> None:
        if schema.type is not None and not _matches_kind(value, schema.type):
            out.append(_type_mismatch(path, schema.type.value, value))
            return

        if schema.enum is not None and not any(_json_equal(value, m) for m in schema.enum):
            allowed = ", ".join(repr(m) for m in schema.enum)
            out.append(
                Violation(
                    path=path,
                    message=f"value {value!r} is not one of {allowed}",
                    kind=ViolationKind.ENUM_VIOLATION,
                )
            )

        if _is_number(value):
            self._check_bounds(value, schema, path, out)
        elif isinstance(value, str):
            if schema.min_length is not None and len(value) < schema.min_length:
                out.append(
                    _range(path, f"length {len(value)} is shorter than minLength {schema.min_length}")
                )
            if schema.max_length is not None and len(value) > schema.max_length:
                out.append(
                    _range(path, f"length {len(value)} is longer than maxLength {schema.max_length}")
                )

        if self._check_formats and schema.format:
            problem = check_format(schema.format, value)
            if problem is not None:
                out.append(
                    Violation(path=path, message=problem, kind=ViolationKind.TYPE_MISMATCH)
                )

    @staticmethod
    def _check_bounds(
        value: Any, schema: PrimitiveSchema, path: str, out: list[Violation]
    ) -> None:
        low = _comparable(schema.minimum, value)
        if low is not None:
            if schema.exclusive_minimum and not value > low:
                out.append(_range(path, f"value {value} must be greater than {low}"))
            elif not schema.exclusive_minimum and value < low:
                out.append(_range(path, f"value {value} is less than minimum {low}"))

        high = _comparable(schema.maximum, value)
        if high is not None:
            if schema.exclusive_maximum and not value < high:
                out.append(_range(path, f"value {value} must be less than {high}"))
            elif not schema.exclusive_maximum and value > high:
                out.append(_range(path, f"value {value} is greater than maximum {high}"))

    def _check_one_of(
        self, value: Any, schema: OneOfSchema, path: str, out: list[Violation]
    ) -> None:
        if value is None and schema.nullable:
            return
        for alternative in schema.alternatives:
            if not self.validate(value, alternative, path):
                return
        out.append(
            Violation(
                path=path,
                message=(
                    f"value matches none of the {len(schema.alternatives)} "
                    "declared alternatives"
                ),
                kind=ViolationKind.NO_MATCHING_ALTERNATIVE,
            )
        )


_default_validator = SchemaValidator()


def validate_value(value: Any, schema: SchemaNode, path_prefix: str = "") -> list[Violation]:
    """Validate *value* with a format-checking :class:`SchemaValidator`."""
    return _default_validator.validate(value, schema, path_prefix)


# ------------------------------------------------------------------ #
# Helpers
# ------------------------------------------------------------------ #


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def _matches_kind(value: Any, kind: PrimitiveKind) -> bool:
    if kind == PrimitiveKind.STRING:
        return isinstance(value, str)
    if kind == PrimitiveKind.BOOLEAN:
        return isinstance(value, bool)
    if not _is_number(value):
        return False
    if kind == PrimitiveKind.NUMBER:
        return True
    if isinstance(value, int):
        return True
    if isinstance(value, Decimal):
        return value.is_finite() and value == value.to_integral_value()
    return value.is_integer()


def json_type(value: Any) -> str:
    """Name the JSON type of a decoded value (``"integer"`` for whole ints)."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if _is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _json_equal(left: Any, right: Any) -> bool:
    """JSON equality: ``true`` is not ``1`` and ``1`` equals ``1.0``."""
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if _is_number(left) and _is_number(right):
        return _comparable(left, right) == _comparable(right, left)
    if isinstance(left, dict) and isinstance(right, dict):
        return left.keys() == right.keys() and all(
            _json_equal(left[k], right[k]) for k in left
        )
    if isinstance(left, (list, tuple)) and isinstance(right, (list, tuple)):
        return len(left) == len(right) and all(
            _json_equal(a, b) for a, b in zip(left, right)
        )
    return type(left) is type(right) and left == right


def _comparable(number: Any, other: Any) -> Any:
    """Lift a float to :class:`Decimal` when compared against a Decimal.

    Floats convert through their shortest repr, so the bound ``0.1`` becomes
    ``Decimal("0.1")`` rather than the binary expansion of the double.
    """
    if isinstance(number, float) and isinstance(other, Decimal):
        return Decimal(str(number))
    return number


def _is_untyped_enum(schema: SchemaNode) -> bool:
    return isinstance(schema, PrimitiveSchema) and schema.type is None and schema.enum is not None


def _accepts_null(schema: SchemaNode) -> bool:
    if schema.nullable:
        return True
    if isinstance(schema, PrimitiveSchema) and schema.enum is not None:
        return None in schema.enum
    return False


def _describe(schema: SchemaNode) -> str:
    if isinstance(schema, ObjectSchema):
        return "object"
    if isinstance(schema, ArraySchema):
        return "array"
    if isinstance(schema, PrimitiveSchema) and schema.type is not None:
        return schema.type.value
    return "a value"


def _type_mismatch(path: str, expected: str, value: Any) -> Violation:
    return Violation(
        path=path,
        message=f"expected {expected}, got {json_type(value)}",
        kind=ViolationKind.TYPE_MISMATCH,
    )


def _range(path: str, message: str) -> Violation:
    return Violation(path=path, message=message, kind=ViolationKind.RANGE_VIOLATION)
