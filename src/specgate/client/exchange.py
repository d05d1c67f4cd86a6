"""Conversion of httpx request/response pairs into recorded exchanges."""

from __future__ import annotations

import json
import logging
from typing import Any, Union

import httpx

from specgate.models import Exchange, RecordedRequest, RecordedResponse

logger = logging.getLogger(__name__)


def exchange_from_httpx(response: httpx.Response, strip_prefix: str = "") -> Exchange:
    """Build an :class:`~specgate.models.Exchange` from a completed response.

    The response body must already be read (event hooks call
    :meth:`httpx.Response.read` first).

    Args:
        response: The httpx response; its ``request`` supplies the request half.
        strip_prefix: Path prefix to drop from the request path, typically
            the path component of the client's base URL.

    Returns:
        The exchange with JSON bodies decoded. Empty bodies become ``None``;
        bodies that are not JSON are kept as text. A streamed request body
        that was never read is recorded as ``None``.
    """
    request = response.request
    raw_path = request.url.raw_path.decode("ascii").split("?", 1)[0]
    prefix = strip_prefix.rstrip("/")
    if prefix and (raw_path == prefix or raw_path.startswith(prefix + "/")):
        raw_path = raw_path[len(prefix):] or "/"

    query: dict[str, Union[str, list[str]]] = {}
    for key, value in request.url.params.multi_items():
        existing = query.get(key)
        if existing is None:
            query[key] = value
        elif isinstance(existing, list):
            existing.append(value)
        else:
            query[key] = [existing, value]

    try:
        request_body = _decode_body(request.content)
    except httpx.RequestNotRead:
        logger.debug("Request body was streamed; not recording it")
        request_body = None

    return Exchange(
        request=RecordedRequest(
            method=request.method,
            path=raw_path,
            query=query,
            headers=dict(request.headers),
            body=request_body,
        ),
        response=RecordedResponse(
            status_code=response.status_code,
            headers=dict(response.headers),
            body=_decode_body(response.content),
        ),
    )


def _decode_body(content: bytes) -> Any:
    if not content:
        return None
    try:
        return json.loads(content)
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.debug("Body is not JSON; keeping it as text")
        return content.decode("utf-8", errors="replace")
