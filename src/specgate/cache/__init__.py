"""Caching for fetched spec text and loaded documents.

:class:`SpecCache` persists the raw text of specs fetched over HTTP using
:mod:`diskcache`, so repeated CLI runs against the same URL skip the
network until the configured TTL expires.

:class:`DocumentStore` keeps parsed :class:`~specgate.models.SpecDocument`
objects in memory, keyed by source, for long-running consumers such as
test sessions and middleware.
"""

from specgate.cache.cache import SpecCache
from specgate.cache.store import DocumentStore

__all__ = ["DocumentStore", "SpecCache"]
