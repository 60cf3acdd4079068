"""
Retrieval — the vector store gateway and semantic search.

This module wraps the vector store behind a clean interface so that
ingestion, chat and retention never need to know which DB is backing it.

Public surface
--------------
- :class:`VectorStoreBase` — abstract backend and sole owner of chunk storage.
- :class:`ChromaVectorStore` — default Chroma backend.
- :class:`SemanticRetriever` — read-side search with score thresholding.
- :class:`Chunk`, :class:`MetadataFilter`, :class:`SearchRequest`, :class:`SourcePage` — data models.
- :func:`parse_filter_expression` — textual filter grammar.
"""

from ragchat.retrieval.base import VectorStoreBase
from ragchat.retrieval.filters import format_equals, parse_filter_expression
from ragchat.retrieval.models import Chunk, MetadataFilter, SearchRequest, SourcePage
from ragchat.retrieval.retriever import SemanticRetriever

__all__ = [
    "ChromaVectorStore",
    "Chunk",
    "MetadataFilter",
    "SearchRequest",
    "SemanticRetriever",
    "SourcePage",
    "VectorStoreBase",
    "format_equals",
    "parse_filter_expression",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import ChromaVectorStore to avoid pulling in chromadb at import time."""
    if name == "ChromaVectorStore":
        from ragchat.retrieval.chroma_store import ChromaVectorStore

        return ChromaVectorStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
