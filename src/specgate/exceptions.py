"""Exception hierarchy for specgate.

All exceptions inherit from :class:`SpecgateError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`specgate.exit_codes`.
The top-level error handler in :func:`specgate.app.main` catches
``SpecgateError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Contract violations found while validating an exchange are *not* exceptions:
they are returned as data inside a :class:`~specgate.models.ValidationResult`.
Only broken contract definitions (:class:`SpecLoadError`) and exchanges that
map to no operation (:class:`OperationMatchError`) are raised.

Subclass hierarchy::

    SpecgateError (exit 1)
    +-- InvalidUsageError        (exit 2)
    +-- OperationMatchError      (exit 4)
    |   +-- NoMatchingOperation
    |   +-- AmbiguousMatch
    +-- ConnectionError_         (exit 6)
    +-- SpecLoadError            (exit 7)
    +-- ContractViolationError   (exit 8)
    +-- ConfigError              (exit 1)
"""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING, Optional, Sequence

from specgate.exit_codes import (
    EXIT_CONNECTION_ERROR,
    EXIT_CONTRACT_VIOLATION,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NO_MATCHING_OPERATION,
    EXIT_SPEC_LOAD_ERROR,
)

if TYPE_CHECKING:
    from specgate.models import Violation


class SpecgateError(Exception):
    """Base exception for all specgate errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`specgate.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(SpecgateError):
    """Raised for invalid CLI arguments or malformed exchange input."""

    exit_code = EXIT_INVALID_USAGE


class ConnectionError_(SpecgateError):
    """Raised on network-level failures while fetching a remote spec.

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class SpecLoadErrorKind(str, enum.Enum):
    """Why a specification could not be turned into a SpecDocument."""

    UNRESOLVED_REF = "UnresolvedRef"
    CYCLIC_REF = "CyclicRef"
    MALFORMED_DOCUMENT = "MalformedDocument"


class SpecLoadError(SpecgateError):
    """Raised when the OpenAPI spec cannot be parsed, resolved, or validated.

    Always fatal: callers must not proceed with a partially loaded document.

    Args:
        message: Human-readable error description.
        kind: The failure category.
        ref_name: The offending ``$ref`` string for reference failures.
    """

    exit_code = EXIT_SPEC_LOAD_ERROR

    def __init__(
        self,
        message: str,
        kind: SpecLoadErrorKind = SpecLoadErrorKind.MALFORMED_DOCUMENT,
        ref_name: Optional[str] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.ref_name = ref_name


class OperationMatchError(SpecgateError):
    """Base class for failures to map an exchange onto a documented operation."""

    exit_code = EXIT_NO_MATCHING_OPERATION

    def __init__(self, message: str, method: str, path: str):
        super().__init__(message)
        self.method = method
        self.path = path


class NoMatchingOperation(OperationMatchError):
    """Raised when no operation template matches the method and path."""


class AmbiguousMatch(OperationMatchError):
    """Raised when two templates match with the same number of placeholders."""

    def __init__(self, message: str, method: str, path: str, candidates: Sequence[str]):
        super().__init__(message, method, path)
        self.candidates = list(candidates)


class ContractViolationError(SpecgateError):
    """Raised by :meth:`ValidatingClient.assert_contract` when violations were recorded."""

    exit_code = EXIT_CONTRACT_VIOLATION

    def __init__(self, message: str, violations: Sequence[Violation] = ()):
        super().__init__(message)
        self.violations = list(violations)


class ConfigError(SpecgateError):
    """Raised for configuration problems (invalid JSON, unknown keys)."""

    exit_code = EXIT_GENERIC_FAILURE
