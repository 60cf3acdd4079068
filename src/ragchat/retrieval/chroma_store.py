"""Chroma implementation of the vector-store abstraction."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import chromadb
from langchain_core.embeddings import Embeddings

from ragchat.config import Settings, settings as default_settings
from ragchat.errors import VectorStoreError
from ragchat.retrieval.base import VectorStoreBase
from ragchat.retrieval.models import INGESTION_TIMESTAMP_KEY, Chunk, MetadataFilter, SearchRequest, SourcePage

logger = logging.getLogger(__name__)

# Page size used when scanning metadata for distinct values.
_SCAN_BATCH = 1000


def _build_chroma_where(filters: list[MetadataFilter]) -> dict[str, Any] | None:
    """Convert a list of :class:`MetadataFilter` to Chroma ``where`` syntax."""
    if not filters:
        return None

    _OP_MAP = {
        "eq": "$eq",
        "ne": "$ne",
        "gt": "$gt",
        "gte": "$gte",
        "lt": "$lt",
        "lte": "$lte",
        "in": "$in",
        "nin": "$nin",
    }

    clauses: list[dict[str, Any]] = []
    for f in filters:
        chroma_op = _OP_MAP.get(f.operator)
        if chroma_op is None:
            raise ValueError(f"Unsupported filter operator: {f.operator!r}")
        clauses.append({f.field: {chroma_op: f.value}})

    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


def _distance_to_score(distance: float, space: str) -> float:
    """Map a Chroma distance to a similarity where higher is closer."""
    if space == "cosine":
        return 1.0 - distance
    if space == "ip":
        return -distance
    return 1.0 / (1.0 + distance)


class ChromaVectorStore(VectorStoreBase):
    """Chroma-backed vector store.

    Parameters
    ----------
    config:
        Settings providing connection details and batch sizes.
    client:
        An existing Chroma client.  Defaults to ``chromadb.HttpClient`` built
        from *config*; tests pass ``chromadb.EphemeralClient()``.
    embedder:
        LangChain embeddings used for both documents and queries.  Defaults
        to the configured HuggingFace model.
    collection_name:
        Overrides ``config.chroma_collection``.
    """

    def __init__(
        self,
        config: Settings | None = None,
        *,
        client: Any = None,
        embedder: Embeddings | None = None,
        collection_name: str | None = None,
    ) -> None:
        config = config or default_settings
        super().__init__(collection_name or config.chroma_collection)
        self._space = config.chroma_distance
        self._batch_size = config.upsert_batch_size
        if client is None:
            client = chromadb.HttpClient(host=config.chroma_host, port=config.chroma_port)
        self._client = client
        if embedder is None:
            from ragchat.ingestion.embedder import get_embedding_function

            embedder = get_embedding_function(config.embedding_model)
        self._embedder = embedder
        self._collection = self._open_collection()

    # -- VectorStoreBase overrides --------------------------------------------

    def add(self, chunks: Sequence[Chunk]) -> None:
        if not chunks:
            return
        self.validate_chunks(chunks)

        try:
            embeddings = self._embedder.embed_documents([c.content for c in chunks])
        except Exception as exc:
            raise VectorStoreError("Embedding failed", {"chunks": len(chunks)}) from exc

        written: list[str] = []
        try:
            for start in range(0, len(chunks), self._batch_size):
                batch = chunks[start : start + self._batch_size]
                ids = [c.id for c in batch]
                self._collection.add(
                    ids=ids,
                    embeddings=embeddings[start : start + len(batch)],
                    documents=[c.content for c in batch],
                    metadatas=[dict(c.metadata) for c in batch],
                )
                written.extend(ids)
        except Exception as exc:
            if written:
                logger.warning("Rolling back %d chunk(s) after a failed batch write", len(written))
                try:
                    self._collection.delete(ids=written)
                except Exception:
                    logger.exception("Rollback failed; %d orphaned chunk(s) remain", len(written))
            raise VectorStoreError("Failed to write chunks", {"chunks": len(chunks)}) from exc

        logger.info("Stored %d chunk(s) in collection %r", len(chunks), self.collection_name)

    def similarity_search(self, request: SearchRequest) -> list[Chunk]:
        where = _build_chroma_where(request.filters) if request.filters else None
        try:
            available = self._collection.count()
            if available == 0:
                return []
            query_embedding = self._embedder.embed_query(request.query)
            results = self._collection.query(
                query_embeddings=[query_embedding],
                n_results=min(request.top_k, available),
                where=where,
                include=["documents", "metadatas", "distances"],
            )
        except Exception as exc:
            raise VectorStoreError("Similarity search failed", {"query": request.query[:200]}) from exc

        ids = (results.get("ids") or [[]])[0]
        docs = (results.get("documents") or [[]])[0]
        metas = (results.get("metadatas") or [[]])[0]
        distances = (results.get("distances") or [[]])[0]

        hits = [
            Chunk(
                id=doc_id,
                content=content or "",
                metadata=dict(meta or {}),
                score=_distance_to_score(dist, self._space),
            )
            for doc_id, content, meta, dist in zip(ids, docs, metas, distances)
        ]
        # sorted() is stable, so equal scores keep the backend's order.
        hits = sorted(hits, key=lambda c: c.score or 0.0, reverse=True)
        return hits[: request.top_k]

    def delete_all(self) -> int:
        """Remove every chunk in batches, keeping the collection and its configuration."""
        count = 0
        try:
            while True:
                ids = self._collection.get(limit=_SCAN_BATCH, include=[]).get("ids") or []
                if not ids:
                    break
                self._collection.delete(ids=ids)
                count += len(ids)
        except Exception as exc:
            raise VectorStoreError("Failed to clear the vector store") from exc
        logger.info("Cleared collection %r (%d chunk(s))", self.collection_name, count)
        return count

    def delete_by_metadata(self, key: str, value: str) -> int:
        return self._delete_where([MetadataFilter.equals(key, value)])

    def delete_older_than(self, cutoff_epoch_millis: int) -> int:
        return self._delete_where([MetadataFilter.less_than(INGESTION_TIMESTAMP_KEY, cutoff_epoch_millis)])

    def list_distinct_metadata_values(
        self,
        key: str,
        page: int,
        page_size: int,
        search: str | None = None,
    ) -> SourcePage:
        self.validate_page(page, page_size)
        values: set[str] = set()
        offset = 0
        try:
            while True:
                batch = self._collection.get(include=["metadatas"], limit=_SCAN_BATCH, offset=offset)
                metas = batch.get("metadatas") or []
                for meta in metas:
                    value = (meta or {}).get(key)
                    if value is not None:
                        values.add(str(value))
                if len(metas) < _SCAN_BATCH:
                    break
                offset += _SCAN_BATCH
        except Exception as exc:
            raise VectorStoreError("Failed to list metadata values", {"key": key}) from exc
        return self.paginate_values(values, page, page_size, search)

    def health_check(self) -> bool:
        try:
            self._client.heartbeat()
            return True
        except Exception:
            logger.warning("Chroma health-check failed", exc_info=True)
            return False

    # -- internals ------------------------------------------------------------

    def _open_collection(self) -> Any:
        return self._client.get_or_create_collection(
            name=self.collection_name,
            metadata={"hnsw:space": self._space},
        )

    def _delete_where(self, filters: list[MetadataFilter]) -> int:
        where = _build_chroma_where(filters)
        try:
            ids = self._collection.get(where=where, include=["metadatas"]).get("ids") or []
            if ids:
                self._collection.delete(ids=ids)
        except Exception as exc:
            raise VectorStoreError("Failed to delete chunks", {"where": where}) from exc
        logger.info("Deleted %d chunk(s) matching %s", len(ids), where)
        return len(ids)
