"""In-memory registry of loaded documents, safe for concurrent readers.

Documents are immutable, so readers never need a lock: :meth:`DocumentStore.get`
returns whatever document is currently published for a source.  Loading
happens at most once per source under a lock, and :meth:`DocumentStore.reload`
builds a fresh document before swapping it in, so a reader sees either the
old document or the new one and never a partial state.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Callable, Optional

from specgate.models import SpecDocument

if TYPE_CHECKING:
    from specgate.cache.cache import SpecCache

logger = logging.getLogger(__name__)

Loader = Callable[[str], SpecDocument]


class DocumentStore:
    """Caches parsed :class:`~specgate.models.SpecDocument` objects by source.

    Args:
        loader: Callable turning a source (path, URL or ``-``) into a
            document.  Defaults to :func:`~specgate.parser.load_document_from`
            using *spec_cache* for remote sources.
        spec_cache: Optional disk cache passed to the default loader.
    """

    def __init__(
        self,
        loader: Optional[Loader] = None,
        spec_cache: Optional[SpecCache] = None,
    ) -> None:
        if loader is None:
            from specgate.parser import load_document_from

            def _load(source: str) -> SpecDocument:
                return load_document_from(source, cache=spec_cache)

            loader = _load

        self._loader = loader
        self._documents: dict[str, SpecDocument] = {}
        self._lock = threading.Lock()

    def get(self, source: str) -> SpecDocument:
        """Return the document for *source*, loading it on first use.

        Raises:
            SpecLoadError: If the first load fails.  Nothing is cached then,
                so a later call retries.
        """
        document = self._documents.get(source)
        if document is not None:
            return document
        with self._lock:
            document = self._documents.get(source)
            if document is None:
                logger.debug("Loading document from %s", source)
                document = self._loader(source)
                self._documents[source] = document
        return document

    def reload(self, source: str) -> SpecDocument:
        """Rebuild the document for *source* and publish it atomically.

        If loading fails the previously published document stays in place.
        """
        document = self._loader(source)
        with self._lock:
            self._documents[source] = document
        logger.info("Reloaded document from %s", source)
        return document

    def evict(self, source: str) -> None:
        """Forget the document for *source*."""
        with self._lock:
            self._documents.pop(source, None)

    def sources(self) -> list[str]:
        """Return the sources currently loaded, sorted."""
        return sorted(self._documents)

    def __contains__(self, source: object) -> bool:
        return source in self._documents

    def __len__(self) -> int:
        return len(self._documents)
