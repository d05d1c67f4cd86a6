"""httpx integration for contract testing.

:class:`ValidatingClient` wraps :class:`httpx.Client` and validates every
exchange it performs against a loaded contract.  :func:`exchange_from_httpx`
converts a completed httpx response into an :class:`~specgate.models.Exchange`
for callers that drive httpx themselves.

Example::

    from specgate import ContractValidator, load_document_from
    from specgate.client import ValidatingClient

    validator = ContractValidator(load_document_from("users.yaml"))
    with ValidatingClient(validator, base_url="http://localhost:8080") as client:
        client.get("/users", params={"apiVersion": "2"})
        client.assert_contract()
"""

from specgate.client.exchange import exchange_from_httpx
from specgate.client.validating_client import ValidatingClient

__all__ = ["ValidatingClient", "exchange_from_httpx"]
