"""Operation matching and request/response validation."""

from specgate.validation.matcher import OperationMatcher
from specgate.validation.request import validate_request
from specgate.validation.response import validate_response
from specgate.validation.schema import SchemaValidator, validate_value
from specgate.validation.validator import ContractValidator

__all__ = [
    "ContractValidator",
    "OperationMatcher",
    "SchemaValidator",
    "validate_request",
    "validate_response",
    "validate_value",
]
