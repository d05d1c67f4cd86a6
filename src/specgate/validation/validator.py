"""High-level entry point tying the matcher and validators together.

:class:`ContractValidator` is what test harnesses, the httpx adapter and the
CLI use: it resolves a concrete method and path to an operation and then
validates the request or response against it.  An exchange that maps to no
documented operation is reported as an ``UnknownOperation`` violation rather
than raised, so callers always get a :class:`ValidationResult` back.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Union
from urllib.parse import parse_qs, urlsplit

from specgate.exceptions import OperationMatchError
from specgate.models import (
    Exchange,
    ExchangeResult,
    MatchResult,
    SpecDocument,
    ValidationConfig,
    ValidationResult,
    Violation,
    ViolationKind,
)
from specgate.validation.matcher import OperationMatcher
from specgate.validation.request import validate_request
from specgate.validation.response import validate_response
from specgate.validation.schema import SchemaValidator

logger = logging.getLogger(__name__)

QueryParams = Mapping[str, Union[str, list[str]]]


def query_from_path(path: str) -> dict[str, Union[str, list[str]]]:
    """Decode the query string of *path*; repeated keys become lists."""
    query = urlsplit(path).query
    parsed = parse_qs(query, keep_blank_values=True)
    return {key: values[0] if len(values) == 1 else values for key, values in parsed.items()}


class ContractValidator:
    """Validates observed exchanges against one loaded document.

    Args:
        document: The loaded contract.
        config: Validation options; defaults to :class:`ValidationConfig`.

    Example::

        validator = ContractValidator(load_document_from("users.yaml"))
        result = validator.validate_response("GET", "/users", 200, body=payload)
        if not result.valid:
            for violation in result.violations:
                print(violation.describe())
    """

    def __init__(
        self, document: SpecDocument, config: Optional[ValidationConfig] = None
    ) -> None:
        self.config = config or ValidationConfig()
        self.document = document
        self._matcher = OperationMatcher(
            document, strip_server_prefix=self.config.strip_server_prefix
        )
        self._schema_validator = SchemaValidator(check_formats=self.config.check_formats)

    def match(self, method: str, path: str) -> MatchResult:
        """Resolve *method* and *path*; see :meth:`OperationMatcher.match`."""
        return self._matcher.match(method, path)

    def validate_request(
        self,
        method: str,
        path: str,
        query: Optional[QueryParams] = None,
        headers: Optional[Mapping[str, str]] = None,
        body: Any = None,
    ) -> ValidationResult:
        """Match and validate a request.

        When *query* is ``None`` it is decoded from *path*'s query string.
        """
        try:
            matched = self._matcher.match(method, path)
        except OperationMatchError as exc:
            return _unknown(exc)
        if query is None:
            query = query_from_path(path)
        return validate_request(
            matched.operation,
            matched.path_params,
            query,
            headers,
            body,
            schema_validator=self._schema_validator,
        )

    def validate_response(
        self,
        method: str,
        path: str,
        status_code: int,
        headers: Optional[Mapping[str, str]] = None,
        body: Any = None,
    ) -> ValidationResult:
        """Match the originating request and validate its response."""
        try:
            matched = self._matcher.match(method, path)
        except OperationMatchError as exc:
            return _unknown(exc)
        return validate_response(
            matched.operation,
            status_code,
            headers,
            body,
            schema_validator=self._schema_validator,
        )

    def validate_exchange(self, exchange: Exchange) -> ExchangeResult:
        """Validate both halves of *exchange* against a single match."""
        request = exchange.request
        response = exchange.response
        try:
            matched = self._matcher.match(request.method, request.path)
        except OperationMatchError as exc:
            unknown = _unknown(exc)
            return ExchangeResult(
                method=request.method.upper(),
                path=request.path,
                request=unknown,
                response=None,
            )

        query = request.query or query_from_path(request.path)
        request_result = validate_request(
            matched.operation,
            matched.path_params,
            query,
            request.headers,
            request.body,
            schema_validator=self._schema_validator,
        )
        response_result = None
        if response is not None:
            response_result = validate_response(
                matched.operation,
                response.status_code,
                response.headers,
                response.body,
                schema_validator=self._schema_validator,
            )

        result = ExchangeResult(
            method=request.method.upper(),
            path=request.path,
            operation=matched.operation.key,
            request=request_result,
            response=response_result,
        )
        logger.debug(
            "%s %s -> %s: %d violation(s)",
            result.method,
            result.path,
            result.operation,
            len(result.violations),
        )
        return result


def _unknown(exc: OperationMatchError) -> ValidationResult:
    return ValidationResult.from_violations(
        [Violation(path="", message=str(exc), kind=ViolationKind.UNKNOWN_OPERATION)]
    )
