"""Abstract base class for vector-store backends.

Adding a new backend (pgvector, Qdrant …) only requires subclassing
:class:`VectorStoreBase` and implementing the abstract methods.  The
ingestor, the chat orchestrator and the retention sweeper only ever talk
to this interface, and this interface is the only writer of chunk storage.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from ragchat.errors import ValidationError
from ragchat.retrieval.models import INGESTION_TIMESTAMP_KEY, SOURCE_KEY, Chunk, SearchRequest, SourcePage


class VectorStoreBase(ABC):
    """Backend-agnostic vector-store interface.

    Parameters
    ----------
    collection_name:
        Logical name of the collection / index / namespace.
    """

    def __init__(self, collection_name: str) -> None:
        self.collection_name = collection_name

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    def add(self, chunks: Sequence[Chunk]) -> None:
        """Embed and persist *chunks* as one batch.

        Either every chunk becomes visible or the call raises and none do.
        No de-duplication is attempted across calls.
        """
        ...

    @abstractmethod
    def similarity_search(self, request: SearchRequest) -> list[Chunk]:
        """Return at most ``request.top_k`` chunks, most similar first.

        Each returned chunk carries its similarity in ``score`` (higher =
        more similar).  Ties keep insertion order.  No match is an empty
        list, not an error.
        """
        ...

    @abstractmethod
    def delete_all(self) -> int:
        """Remove every chunk and return how many were removed."""
        ...

    @abstractmethod
    def delete_by_metadata(self, key: str, value: str) -> int:
        """Remove chunks whose metadata *key* equals *value*."""
        ...

    @abstractmethod
    def delete_older_than(self, cutoff_epoch_millis: int) -> int:
        """Remove chunks with ``ingestion_timestamp < cutoff_epoch_millis``."""
        ...

    @abstractmethod
    def list_distinct_metadata_values(
        self,
        key: str,
        page: int,
        page_size: int,
        search: str | None = None,
    ) -> SourcePage:
        """Page through the sorted distinct values of metadata *key*.

        *search*, when given, keeps values containing it case-insensitively.
        ``total`` counts all matching distinct values, not just this page.
        """
        ...

    @abstractmethod
    def health_check(self) -> bool:
        """Return ``True`` when the backend is reachable and ready."""
        ...

    # -- shared helpers -------------------------------------------------------

    @staticmethod
    def validate_page(page: int, page_size: int) -> None:
        """Reject negative pages and page sizes below one."""
        if page < 0:
            raise ValidationError("page must be >= 0", field="page", details={"page": page})
        if page_size < 1:
            raise ValidationError("page size must be >= 1", field="size", details={"size": page_size})

    @staticmethod
    def validate_chunks(chunks: Sequence[Chunk]) -> None:
        """Every persisted chunk needs provenance metadata."""
        for chunk in chunks:
            if chunk.source is None or chunk.ingestion_timestamp is None:
                raise ValidationError(
                    f"Chunk {chunk.id} is missing '{SOURCE_KEY}' or '{INGESTION_TIMESTAMP_KEY}' metadata",
                    field="metadata",
                )

    @staticmethod
    def paginate_values(values: set[str], page: int, page_size: int, search: str | None) -> SourcePage:
        """Filter, sort and slice an in-memory set of distinct values."""
        if search:
            needle = search.casefold()
            values = {v for v in values if needle in v.casefold()}
        ordered = sorted(values)
        offset = page * page_size
        return SourcePage(values=ordered[offset : offset + page_size], total=len(ordered))
