"""Semantic retriever — metadata-aware search over any vector store.

This module is the read-side entry point used by the chat orchestrator.
It is intentionally free of LangChain retriever abstractions so that
non-chat callers (scripts, tests) can use it directly.

Usage::

    from ragchat.retrieval.retriever import SemanticRetriever

    retriever = SemanticRetriever(store)
    chunks = retriever.search("What is the leave policy?", k=4)
    for c in chunks:
        print(c.source, c.score, c.content[:80])
"""

from __future__ import annotations

import logging

from ragchat.retrieval.base import VectorStoreBase
from ragchat.retrieval.models import Chunk, MetadataFilter, SearchRequest

logger = logging.getLogger(__name__)


class SemanticRetriever:
    """High-level retriever that wraps any :class:`VectorStoreBase`.

    Parameters
    ----------
    store:
        A concrete vector-store backend.
    default_k:
        Default number of results returned by :meth:`search`.
    score_threshold:
        Minimum similarity score; results below this are discarded.
        ``None`` keeps every hit the store returns.
    """

    def __init__(
        self,
        store: VectorStoreBase,
        *,
        default_k: int = 4,
        score_threshold: float | None = None,
    ) -> None:
        self._store = store
        self.default_k = default_k
        self.score_threshold = score_threshold

    def search(
        self,
        query: str,
        *,
        k: int | None = None,
        filters: list[MetadataFilter] | None = None,
    ) -> list[Chunk]:
        """Run a semantic search and return chunks ordered by similarity.

        Parameters
        ----------
        query:
            Natural-language query string.
        k:
            Number of results (defaults to ``self.default_k``).
        filters:
            Optional metadata filters forwarded to the vector store.
        """
        request = SearchRequest(query=query, top_k=k or self.default_k, filters=filters or None)
        hits = self._store.similarity_search(request)
        if self.score_threshold is None:
            results = hits
        else:
            results = [h for h in hits if h.score is None or h.score >= self.score_threshold]
        logger.info(
            "Retrieved %d chunk(s) (k=%d, filters=%s, dropped below threshold=%d)",
            len(results),
            request.top_k,
            [f.model_dump() for f in filters] if filters else None,
            len(hits) - len(results),
        )
        return results
