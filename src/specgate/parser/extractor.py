"""Extract operations, parameters, and responses from raw OpenAPI specs.

This module walks an OpenAPI document and builds a linked
:class:`~specgate.models.SpecDocument` containing every operation,
parameter, request body, response definition, and component schema declared
in the document.

The single public entry point is :func:`extract_document`.  Internally it
delegates to private helpers that each handle one section of the OpenAPI
structure:

* ``_extract_info`` -- the ``info`` object (title, version, description).
* ``_extract_servers`` -- the ``servers`` array.
* ``_extract_operations`` -- the ``paths`` object, iterating over every
  path + HTTP method combination.

Parameter merging follows the OpenAPI specification: path-level parameters
provide defaults, and operation-level parameters override them when they share
the same ``name`` and ``in`` values.  Every ``{placeholder}`` in a path
template must be backed by a path parameter; a template that is not is a
broken contract and fails the load.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

from specgate.exceptions import SpecLoadError
from specgate.models import (
    AnySchema,
    APIInfo,
    HeaderSpec,
    HTTPMethod,
    Operation,
    ParameterLocation,
    ParameterSpec,
    PathSegment,
    ResponseSpec,
    SchemaNode,
    ServerInfo,
    SpecDocument,
)
from specgate.parser.resolver import SchemaRegistry, resolve_object

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"^\{([^{}]+)\}$")

_LOCATIONS = frozenset(loc.value for loc in ParameterLocation)


def extract_document(raw_spec: dict[str, Any], openapi_version: str) -> SpecDocument:
    """Build a :class:`~specgate.models.SpecDocument` from a raw OpenAPI dict.

    Component schemas are linked first so that a broken or cyclic component
    fails the load even when no operation references it.

    Args:
        raw_spec: The raw OpenAPI spec dictionary as returned by
            :func:`~specgate.parser.loader.load_spec`.
        openapi_version: The validated OpenAPI version string, as returned by
            :func:`~specgate.parser.loader.validate_openapi_version`.

    Returns:
        A fully linked, immutable :class:`~specgate.models.SpecDocument`.

    Raises:
        SpecLoadError: On unresolved or cyclic references and on malformed
            paths, parameters, or schemas.

    Example::

        raw = load_spec("users.yaml")
        version = validate_openapi_version(raw)
        document = extract_document(raw, version)
        for op in document.operations:
            print(op.key)
    """
    registry = SchemaRegistry(raw_spec)
    schemas = registry.component_schemas()
    operations = _extract_operations(raw_spec, registry)
    logger.debug(
        "Extracted %d operations and %d component schemas",
        len(operations),
        len(schemas),
    )
    return SpecDocument(
        info=_extract_info(raw_spec),
        openapi_version=openapi_version,
        servers=_extract_servers(raw_spec),
        operations=tuple(operations),
        schemas=schemas,
    )


def _extract_info(spec: dict[str, Any]) -> APIInfo:
    info = _mapping(spec.get("info"), "'info'")
    return APIInfo(
        title=str(info.get("title", "Untitled API")),
        version=str(info.get("version", "0.0.0")),
        description=info.get("description"),
    )


def _extract_servers(spec: dict[str, Any]) -> tuple[ServerInfo, ...]:
    servers = spec.get("servers") or []
    return tuple(
        ServerInfo(url=server.get("url", "/"), description=server.get("description"))
        for server in servers
        if isinstance(server, dict)
    )


def split_template(path: str) -> tuple[PathSegment, ...]:
    """Split a path template into literal and placeholder segments.

    ``/products/{id}`` becomes ``(products, {id})``; the root path ``/``
    has no segments.

    Raises:
        SpecLoadError: If a placeholder shares its segment with literal text
            (``/report.{format}``); such parameters could never be bound.
    """
    segments: list[PathSegment] = []
    for part in path.strip("/").split("/"):
        if not part:
            continue
        match = _PLACEHOLDER.match(part)
        if match:
            segments.append(PathSegment(value=match.group(1), is_placeholder=True))
        elif "{" in part or "}" in part:
            raise SpecLoadError(
                f"Path '{path}' has a placeholder inside segment '{part}'; "
                "only whole-segment placeholders are supported"
            )
        else:
            segments.append(PathSegment(value=part))
    return tuple(segments)


def _extract_operations(
    spec: dict[str, Any], registry: SchemaRegistry
) -> list[Operation]:
    """Extract all operations from the spec's ``paths`` object.

    Iterates over every path and recognised HTTP method.  Path-level
    parameters are merged with operation-level ones; operation-level takes
    precedence for parameters sharing ``name`` and ``in``.
    """
    paths = spec.get("paths") or {}
    if not isinstance(paths, dict):
        raise SpecLoadError("'paths' must be an object")

    operations: list[Operation] = []

    for path, path_item in paths.items():
        if not isinstance(path, str) or not path.startswith("/"):
            raise SpecLoadError(f"Path '{path}' must start with '/'")
        path_item = resolve_object(path_item, spec)
        if not isinstance(path_item, dict):
            continue

        segments = split_template(path)
        placeholders = [s.value for s in segments if s.is_placeholder]
        if len(set(placeholders)) != len(placeholders):
            raise SpecLoadError(f"Path '{path}' repeats a placeholder name")

        path_params = _resolve_parameters(path_item.get("parameters") or [], spec)

        for method in HTTPMethod:
            operation = path_item.get(method.value)
            if operation is None or not isinstance(operation, dict):
                continue

            where = f"#/paths/{_pointer(path)}/{method.value}"
            op_params = _resolve_parameters(operation.get("parameters") or [], spec)
            parameters = _extract_parameters(
                _merge_parameters(path_params, op_params), registry, where
            )
            _check_path_parameters(path, method, placeholders, parameters)

            body_schema, body_required, body_types = _extract_request_body(
                operation.get("requestBody"), spec, registry, where
            )

            operations.append(
                Operation(
                    path=path,
                    method=method,
                    segments=segments,
                    operation_id=operation.get("operationId"),
                    summary=operation.get("summary"),
                    tags=tuple(operation.get("tags") or ()),
                    parameters=tuple(parameters),
                    request_body_schema=body_schema,
                    request_body_required=body_required,
                    request_body_content_types=body_types,
                    responses=_extract_responses(
                        _mapping(operation.get("responses"), f"responses at {where}"),
                        spec,
                        registry,
                        where,
                    ),
                    deprecated=bool(operation.get("deprecated", False)),
                )
            )

    return operations


def _resolve_parameters(params: Any, spec: dict[str, Any]) -> list[dict[str, Any]]:
    if not isinstance(params, list):
        raise SpecLoadError("'parameters' must be a list")
    resolved = [resolve_object(param, spec) for param in params]
    for param in resolved:
        if not isinstance(param, dict) or "name" not in param or "in" not in param:
            raise SpecLoadError(f"Parameter must declare 'name' and 'in': {param!r}")
    return resolved


def _merge_parameters(
    path_params: list[dict[str, Any]],
    op_params: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Merge path-level and operation-level parameters.

    Operation-level parameters override path-level parameters with the same
    name and location (``in`` field), per the OpenAPI spec.
    """
    op_keys = {(param["name"], param["in"]) for param in op_params}
    merged = [p for p in path_params if (p["name"], p["in"]) not in op_keys]
    merged.extend(op_params)
    return merged


def _extract_parameters(
    params_list: list[dict[str, Any]], registry: SchemaRegistry, where: str
) -> list[ParameterSpec]:
    """Convert raw parameter dicts into :class:`~specgate.models.ParameterSpec`.

    Cookie parameters are skipped. Path parameters are always required
    regardless of the ``required`` field in the source.
    """
    parameters: list[ParameterSpec] = []

    for param in params_list:
        name = str(param["name"])
        location_str = param["in"]
        if location_str not in _LOCATIONS:
            logger.debug("Skipping %s parameter '%s' at %s", location_str, name, where)
            continue
        location = ParameterLocation(location_str)

        param_where = f"{where}/parameters/{name}"
        schema: SchemaNode
        if "schema" in param:
            schema = registry.compile(param["schema"], param_where)
        else:
            content_schema = _first_schema(
                _mapping(param.get("content"), f"content at {param_where}")
            )
            schema = (
                registry.compile(content_schema, param_where)
                if content_schema is not None
                else AnySchema()
            )

        required = bool(param.get("required", False))
        if location == ParameterLocation.PATH:
            required = True

        parameters.append(
            ParameterSpec(
                name=name,
                location=location,
                required=required,
                description=param.get("description"),
                schema=schema,
            )
        )

    return parameters


def _check_path_parameters(
    path: str,
    method: HTTPMethod,
    placeholders: list[str],
    parameters: list[ParameterSpec],
) -> None:
    declared = {p.name for p in parameters if p.location == ParameterLocation.PATH}
    for name in placeholders:
        if name not in declared:
            raise SpecLoadError(
                f"{method.value.upper()} {path} has no path parameter for '{{{name}}}'"
            )


def _first_schema(content: dict[str, Any]) -> Optional[Any]:
    """Pick the schema of the JSON media type, else the first one with a schema."""
    candidates = [
        (media_type, info)
        for media_type, info in content.items()
        if isinstance(info, dict) and "schema" in info
    ]
    for media_type, info in candidates:
        if _is_json(media_type):
            return info["schema"]
    return candidates[0][1]["schema"] if candidates else None


def _is_json(media_type: str) -> bool:
    base = media_type.split(";")[0].strip().lower()
    return base == "application/json" or base.endswith("+json") or base == "*/*"


def _extract_request_body(
    body: Any,
    spec: dict[str, Any],
    registry: SchemaRegistry,
    where: str,
) -> tuple[Optional[SchemaNode], bool, tuple[str, ...]]:
    if body is None:
        return None, False, ()
    body = resolve_object(body, spec)
    if not isinstance(body, dict):
        raise SpecLoadError(f"requestBody at {where} must be an object")

    content = _mapping(body.get("content"), f"requestBody content at {where}")
    raw_schema = _first_schema(content)
    schema = (
        registry.compile(raw_schema, f"{where}/requestBody")
        if raw_schema is not None
        else None
    )
    return schema, bool(body.get("required", False)), tuple(content.keys())


def _extract_responses(
    responses: dict[str, Any],
    spec: dict[str, Any],
    registry: SchemaRegistry,
    where: str,
) -> dict[str, ResponseSpec]:
    """Extract response metadata for all declared status codes.

    Keys are normalised to strings (YAML may load ``200`` as an int) and
    range keys to upper case (``2xx`` -> ``2XX``).
    """
    result: dict[str, ResponseSpec] = {}

    for status_code, response in responses.items():
        key = str(status_code).upper() if str(status_code) != "default" else "default"
        response = resolve_object(response, spec)
        if not isinstance(response, dict):
            continue

        response_where = f"{where}/responses/{key}"
        content = _mapping(response.get("content"), f"content at {response_where}")
        raw_schema = _first_schema(content)

        result[key] = ResponseSpec(
            status_code=key,
            description=response.get("description"),
            headers=_extract_headers(
                _mapping(response.get("headers"), f"headers at {response_where}"),
                spec,
                registry,
                response_where,
            ),
            content_types=tuple(content.keys()),
            body_schema=(
                registry.compile(raw_schema, response_where)
                if raw_schema is not None
                else None
            ),
        )

    return result


def _extract_headers(
    headers: dict[str, Any],
    spec: dict[str, Any],
    registry: SchemaRegistry,
    where: str,
) -> dict[str, HeaderSpec]:
    """Extract declared response headers.

    ``Content-Type`` is ignored as the OpenAPI specification requires. A
    header counts as required unless it says ``required: false``.
    """
    result: dict[str, HeaderSpec] = {}
    for name, header in headers.items():
        if name.lower() == "content-type":
            continue
        header = resolve_object(header, spec)
        if not isinstance(header, dict):
            continue
        schema = (
            registry.compile(header["schema"], f"{where}/headers/{name}")
            if "schema" in header
            else None
        )
        result[name] = HeaderSpec(
            name=name,
            required=header.get("required", True) is not False,
            description=header.get("description"),
            schema=schema,
        )
    return result


def _mapping(value: Any, what: str) -> dict[str, Any]:
    """Return *value* as an object section; a missing section is empty."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise SpecLoadError(f"{what} must be an object, got {type(value).__name__}")
    return value


def _pointer(path: str) -> str:
    return path.replace("~", "~0").replace("/", "~1")
