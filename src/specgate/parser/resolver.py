"""Parse raw schema dicts into schema nodes and resolve ``$ref`` pointers.

OpenAPI documents use ``$ref`` pointers (e.g.,
``{"$ref": "#/components/schemas/Pet"}``) to avoid repetition.  Resolution
happens in two steps:

1. :func:`parse_schema` turns a raw schema dict into a
   :data:`~specgate.models.SchemaNode` tree, emitting a
   :class:`~specgate.models.RefSchema` wherever a ``$ref`` appears.
2. :class:`SchemaRegistry` links those trees: every ``RefSchema`` is replaced
   by the node it points to.  Each target is parsed and linked exactly once,
   so two references to the same component share one node object.

Only **internal** references (those starting with ``#/``) are supported.
Unlike a plain document walk, cycles are *rejected*: a schema that refers to
itself, directly or transitively, raises
:class:`~specgate.exceptions.SpecLoadError` with kind ``CYCLIC_REF``.  A
linked tree therefore never needs a recursion guard at validation time.

Non-schema references (parameters, responses, request bodies, headers) are
followed structurally with :func:`resolve_object`.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from specgate.exceptions import SpecLoadError, SpecLoadErrorKind
from specgate.models import (
    AnySchema,
    ArraySchema,
    ObjectSchema,
    OneOfSchema,
    PrimitiveKind,
    PrimitiveSchema,
    RefSchema,
    SchemaNode,
)

logger = logging.getLogger(__name__)

_COMPONENT_SCHEMAS = "#/components/schemas/"

_PRIMITIVE_TYPES = frozenset(kind.value for kind in PrimitiveKind)

# Keywords that make an untyped schema a scalar constraint.
_SCALAR_KEYWORDS = (
    "enum",
    "format",
    "minimum",
    "maximum",
    "exclusiveMinimum",
    "exclusiveMaximum",
    "minLength",
    "maxLength",
)


def resolve_pointer(ref: str, root: dict[str, Any]) -> Any:
    """Resolve a single ``$ref`` string against the root spec.

    Parses JSON Pointer references like ``#/components/schemas/Pet`` and
    navigates the root dict to locate the referenced value.  Handles
    RFC 6901 JSON Pointer escaping (``~0`` for ``~``, ``~1`` for ``/``).

    Args:
        ref: The ``$ref`` string (e.g., ``"#/components/schemas/Pet"``).
        root: The root spec dictionary to resolve against.

    Returns:
        The value found at the referenced path.

    Raises:
        SpecLoadError: ``UNRESOLVED_REF`` if the reference is external or any
            segment in the pointer path does not exist in the document.
    """
    if not isinstance(ref, str) or not ref.startswith("#/"):
        raise SpecLoadError(
            f"External $ref not supported: {ref}. "
            "Only internal references (#/...) are handled.",
            kind=SpecLoadErrorKind.UNRESOLVED_REF,
            ref_name=str(ref),
        )

    current: Any = root
    for segment in ref[2:].split("/"):
        segment = segment.replace("~1", "/").replace("~0", "~")

        if isinstance(current, dict):
            if segment not in current:
                raise SpecLoadError(
                    f"Cannot resolve $ref '{ref}': key '{segment}' not found",
                    kind=SpecLoadErrorKind.UNRESOLVED_REF,
                    ref_name=ref,
                )
            current = current[segment]
        elif isinstance(current, list):
            try:
                current = current[int(segment)]
            except (ValueError, IndexError) as exc:
                raise SpecLoadError(
                    f"Cannot resolve $ref '{ref}': invalid array index '{segment}'",
                    kind=SpecLoadErrorKind.UNRESOLVED_REF,
                    ref_name=ref,
                ) from exc
        else:
            raise SpecLoadError(
                f"Cannot resolve $ref '{ref}': "
                f"cannot navigate into {type(current).__name__}",
                kind=SpecLoadErrorKind.UNRESOLVED_REF,
                ref_name=ref,
            )

    return current


def resolve_object(obj: Any, root: dict[str, Any]) -> Any:
    """Follow a chain of ``$ref`` pointers until a concrete object is reached.

    Used for parameters, responses, request bodies and headers, which may
    themselves be references to ``components``.  Only the top-level object
    is dereferenced; nested schemas are handled by :class:`SchemaRegistry`.

    Raises:
        SpecLoadError: ``UNRESOLVED_REF`` for dangling pointers, ``CYCLIC_REF``
            when a reference chain loops back on itself.
    """
    seen: list[str] = []
    while isinstance(obj, dict) and "$ref" in obj:
        ref = obj["$ref"]
        if ref in seen:
            raise SpecLoadError(
                f"Cyclic $ref chain: {' -> '.join(seen + [ref])}",
                kind=SpecLoadErrorKind.CYCLIC_REF,
                ref_name=ref,
            )
        seen.append(ref)
        obj = resolve_pointer(ref, root)
    return obj


def parse_schema(raw: Any, where: str = "#") -> SchemaNode:
    """Convert one raw schema object into an unlinked schema node tree.

    Args:
        raw: The schema as found in the document.
        where: JSON-pointer-ish location used in error messages.

    Returns:
        A schema node; ``$ref`` objects become :class:`RefSchema`.

    Raises:
        SpecLoadError: ``MALFORMED_DOCUMENT`` for non-object schemas, unknown
            types and ill-typed keywords.
    """
    if raw is True:
        return AnySchema()
    if not isinstance(raw, dict):
        raise _malformed(where, f"schema must be an object, got {type(raw).__name__}")

    if "$ref" in raw:
        ref = raw["$ref"]
        if not isinstance(ref, str):
            raise _malformed(where, "$ref must be a string")
        return RefSchema(target=ref)

    nullable = bool(raw.get("nullable", False))
    description = raw.get("description")
    type_value = raw.get("type")

    # OpenAPI 3.1 allows type to be an array (e.g., ["string", "null"])
    if isinstance(type_value, list):
        if "null" in type_value:
            nullable = True
        concrete = [t for t in type_value if t != "null"]
        if len(concrete) > 1:
            alternatives = tuple(
                parse_schema({**raw, "type": t, "nullable": False}, where)
                for t in concrete
            )
            return OneOfSchema(
                alternatives=alternatives, nullable=nullable, description=description
            )
        type_value = concrete[0] if concrete else None

    for keyword in ("oneOf", "anyOf"):
        if keyword in raw:
            options = raw[keyword]
            if not isinstance(options, list) or not options:
                raise _malformed(where, f"{keyword} must be a non-empty list")
            return OneOfSchema(
                alternatives=tuple(
                    parse_schema(option, f"{where}/{keyword}/{index}")
                    for index, option in enumerate(options)
                ),
                nullable=nullable,
                description=description,
            )

    if "allOf" in raw:
        logger.debug("allOf at %s is not validated", where)

    if type_value is not None and not isinstance(type_value, str):
        raise _malformed(where, f"type must be a string, got {type_value!r}")

    if type_value == "object" or (
        type_value is None
        and any(k in raw for k in ("properties", "additionalProperties", "required"))
    ):
        return _parse_object(raw, where, nullable, description)

    if type_value == "array" or (type_value is None and "items" in raw):
        return ArraySchema(
            items=parse_schema(raw.get("items", {}), f"{where}/items"),
            min_items=_optional_int(raw, "minItems", where),
            max_items=_optional_int(raw, "maxItems", where),
            nullable=nullable,
            description=description,
        )

    if type_value is not None and type_value not in _PRIMITIVE_TYPES:
        raise _malformed(where, f"unknown type '{type_value}'")

    if type_value is None and not any(k in raw for k in _SCALAR_KEYWORDS):
        return AnySchema(description=description)

    return _parse_primitive(raw, where, type_value, nullable, description)


def _parse_object(
    raw: dict[str, Any], where: str, nullable: bool, description: Optional[str]
) -> ObjectSchema:
    properties_raw = raw.get("properties", {})
    if not isinstance(properties_raw, dict):
        raise _malformed(where, "properties must be an object")
    properties = {
        name: parse_schema(prop, f"{where}/properties/{name}")
        for name, prop in properties_raw.items()
    }

    required_raw = raw.get("required", [])
    if not isinstance(required_raw, list) or not all(
        isinstance(name, str) for name in required_raw
    ):
        raise _malformed(where, "required must be a list of strings")

    additional = raw.get("additionalProperties", True)
    allowed = additional is not False
    additional_schema: Optional[SchemaNode] = None
    if isinstance(additional, dict):
        additional_schema = parse_schema(additional, f"{where}/additionalProperties")

    return ObjectSchema(
        properties=properties,
        required=tuple(dict.fromkeys(required_raw)),
        additional_properties_allowed=allowed,
        additional_properties=additional_schema,
        nullable=nullable,
        description=description,
    )


def _parse_primitive(
    raw: dict[str, Any],
    where: str,
    type_value: Optional[str],
    nullable: bool,
    description: Optional[str],
) -> PrimitiveSchema:
    enum_raw = raw.get("enum")
    if enum_raw is not None and not isinstance(enum_raw, list):
        raise _malformed(where, "enum must be a list")

    minimum = _optional_number(raw, "minimum", where)
    maximum = _optional_number(raw, "maximum", where)
    exclusive_minimum = False
    exclusive_maximum = False

    # 3.0 uses booleans modifying minimum/maximum, 3.1 uses the bound itself.
    low = raw.get("exclusiveMinimum")
    if isinstance(low, bool):
        exclusive_minimum = low
    elif low is not None:
        minimum = _optional_number(raw, "exclusiveMinimum", where)
        exclusive_minimum = True

    high = raw.get("exclusiveMaximum")
    if isinstance(high, bool):
        exclusive_maximum = high
    elif high is not None:
        maximum = _optional_number(raw, "exclusiveMaximum", where)
        exclusive_maximum = True

    fmt = raw.get("format")
    return PrimitiveSchema(
        type=PrimitiveKind(type_value) if type_value else None,
        format=str(fmt) if fmt is not None else None,
        enum=tuple(enum_raw) if enum_raw is not None else None,
        minimum=minimum,
        maximum=maximum,
        exclusive_minimum=exclusive_minimum,
        exclusive_maximum=exclusive_maximum,
        min_length=_optional_int(raw, "minLength", where),
        max_length=_optional_int(raw, "maxLength", where),
        nullable=nullable,
        description=description,
    )


def _optional_number(raw: dict[str, Any], key: str, where: str) -> int | float | None:
    value = raw.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise _malformed(where, f"{key} must be a number, got {value!r}")
    return value


def _optional_int(raw: dict[str, Any], key: str, where: str) -> Optional[int]:
    value = raw.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise _malformed(where, f"{key} must be a non-negative integer, got {value!r}")
    return value


def _malformed(where: str, detail: str) -> SpecLoadError:
    return SpecLoadError(
        f"Malformed schema at {where}: {detail}",
        kind=SpecLoadErrorKind.MALFORMED_DOCUMENT,
    )


class SchemaRegistry:
    """Parses and links every schema of one OpenAPI document.

    The registry memoises linked targets by ``$ref`` string and keeps the
    stack of references currently being linked.  Meeting a reference that is
    already on the stack means the schema graph has a cycle, which is
    rejected.

    Args:
        root: The raw OpenAPI document.

    Example::

        registry = SchemaRegistry(raw)
        schemas = registry.component_schemas()
        body = registry.compile(raw_body_schema, "#/paths/~1users/post")
    """

    def __init__(self, root: dict[str, Any]) -> None:
        self._root = root
        self._linked: dict[str, SchemaNode] = {}
        self._stack: list[str] = []

    def component_schemas(self) -> dict[str, SchemaNode]:
        """Link every entry of ``components.schemas``, keyed by schema name."""
        components = self._root.get("components") or {}
        if not isinstance(components, dict):
            raise SpecLoadError("'components' must be an object")
        raw_schemas = components.get("schemas") or {}
        if not isinstance(raw_schemas, dict):
            raise _malformed("#/components/schemas", "must be an object")
        return {
            name: self.resolve(f"{_COMPONENT_SCHEMAS}{_escape(name)}")
            for name in raw_schemas
        }

    def compile(self, raw: Any, where: str) -> SchemaNode:
        """Parse *raw* and link all of its references."""
        return self.link(parse_schema(raw, where))

    def link(self, node: SchemaNode) -> SchemaNode:
        """Return *node* with every :class:`RefSchema` replaced by its target."""
        if isinstance(node, RefSchema):
            return self.resolve(node.target)
        if isinstance(node, ObjectSchema):
            return node.model_copy(
                update={
                    "properties": {
                        name: self.link(prop) for name, prop in node.properties.items()
                    },
                    "additional_properties": (
                        self.link(node.additional_properties)
                        if node.additional_properties is not None
                        else None
                    ),
                }
            )
        if isinstance(node, ArraySchema):
            return node.model_copy(update={"items": self.link(node.items)})
        if isinstance(node, OneOfSchema):
            return node.model_copy(
                update={"alternatives": tuple(self.link(alt) for alt in node.alternatives)}
            )
        return node

    def resolve(self, ref: str) -> SchemaNode:
        """Return the linked node for *ref*, parsing it on first use.

        Raises:
            SpecLoadError: ``UNRESOLVED_REF`` for dangling pointers and
                ``CYCLIC_REF`` when *ref* is already being linked.
        """
        if ref in self._linked:
            return self._linked[ref]
        if ref in self._stack:
            chain = self._stack[self._stack.index(ref):] + [ref]
            raise SpecLoadError(
                f"Cyclic schema reference: {' -> '.join(chain)}",
                kind=SpecLoadErrorKind.CYCLIC_REF,
                ref_name=ref,
            )

        self._stack.append(ref)
        try:
            target = resolve_pointer(ref, self._root)
            node = self.link(parse_schema(target, ref))
        finally:
            self._stack.pop()

        self._linked[ref] = node
        return node


def _escape(name: str) -> str:
    """Escape a component name for use as a JSON Pointer segment."""
    return name.replace("~", "~0").replace("/", "~1")
