"""An httpx client that checks every exchange against the contract.

Each response passes through an httpx ``response`` event hook that reads the
body, converts the pair with :func:`~specgate.client.exchange.exchange_from_httpx`
and validates it.  Results accumulate on the client; nothing is raised until
:meth:`ValidatingClient.assert_contract` is called, so a test can drive a
whole scenario and then check every exchange at once.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional

import httpx

from specgate.client.exchange import exchange_from_httpx
from specgate.exceptions import ContractViolationError
from specgate.models import ExchangeResult, Violation
from specgate.validation import ContractValidator

logger = logging.getLogger(__name__)


class ValidatingClient:
    """Synchronous HTTP client that validates exchanges as they happen.

    Must be used as a context manager so that the underlying
    :class:`httpx.Client` is opened and closed.

    Args:
        validator: The contract to validate against.
        base_url: Base URL of the provider under test. Its path component is
            stripped from request paths before matching.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (tests use
            :class:`httpx.MockTransport`).
        headers: Default headers sent with every request.

    Example::

        with ValidatingClient(validator, base_url="http://localhost:8080") as client:
            client.get("/users")
            client.assert_contract()
    """

    def __init__(
        self,
        validator: ContractValidator,
        base_url: str = "",
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        self._validator = validator
        self._base_url = base_url
        self._timeout = timeout
        self._transport = transport
        self._headers = headers or {}
        self._client: Optional[httpx.Client] = None
        self._results: list[ExchangeResult] = []
        self._lock = threading.Lock()

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> ValidatingClient:
        self._client = httpx.Client(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
            headers=self._headers,
            event_hooks={"response": [self._record]},
        )
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------ #
    # Requests
    # ------------------------------------------------------------------ #

    def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request; keyword arguments are passed to :meth:`httpx.Client.request`."""
        if self._client is None:
            raise RuntimeError("ValidatingClient must be used as a context manager")
        return self._client.request(method, url, **kwargs)

    def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.request("POST", url, **kwargs)

    def put(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.request("PUT", url, **kwargs)

    def patch(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.request("PATCH", url, **kwargs)

    def delete(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.request("DELETE", url, **kwargs)

    # ------------------------------------------------------------------ #
    # Results
    # ------------------------------------------------------------------ #

    @property
    def results(self) -> list[ExchangeResult]:
        """Results recorded so far, in request order."""
        with self._lock:
            return list(self._results)

    @property
    def violations(self) -> list[Violation]:
        """Every violation across all recorded exchanges."""
        return [v for result in self.results for v in result.violations]

    def clear(self) -> None:
        """Forget all recorded results."""
        with self._lock:
            self._results.clear()

    def assert_contract(self) -> None:
        """Raise if any recorded exchange violated the contract.

        Raises:
            ContractViolationError: Listing every violation, grouped by
                exchange in the message.
        """
        failing = [result for result in self.results if not result.valid]
        if not failing:
            return
        lines = []
        violations: list[Violation] = []
        for result in failing:
            lines.append(f"{result.method} {result.path}:")
            lines.extend(f"  [{v.kind.value}] {v.describe()}" for v in result.violations)
            violations.extend(result.violations)
        raise ContractViolationError(
            f"{len(violations)} contract violation(s) in {len(failing)} exchange(s)\n"
            + "\n".join(lines),
            violations,
        )

    def _record(self, response: httpx.Response) -> None:
        response.read()
        exchange = exchange_from_httpx(response, strip_prefix=httpx.URL(self._base_url).path)
        result = self._validator.validate_exchange(exchange)
        if not result.valid:
            logger.info(
                "%s %s violated the contract (%d violation(s))",
                result.method,
                result.path,
                len(result.violations),
            )
        with self._lock:
            self._results.append(result)
