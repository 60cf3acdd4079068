"""Document ingestor: extract → tag → split → store.

One call ingests one uploaded file and writes all of its chunks to the
vector store in a single batch, so a document is either fully searchable
or the call fails.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from langchain_core.documents import Document

from ragchat.config import Settings, settings as default_settings
from ragchat.errors import EmptyDocumentError, ValidationError
from ragchat.ingestion.chunker import chunk_documents
from ragchat.ingestion.loader import load_bytes
from ragchat.retrieval.base import VectorStoreBase
from ragchat.retrieval.models import INGESTION_TIMESTAMP_KEY, SOURCE_KEY, Chunk, now_millis

logger = logging.getLogger(__name__)


def _flat_metadata(metadata: dict[str, Any]) -> dict[str, Any]:
    """Vector-store metadata values must be flat str/int/float/bool."""
    return {k: v for k, v in metadata.items() if isinstance(v, (str, int, float, bool))}


class DocumentIngestor:
    """Turns uploaded files into stored chunks.

    Parameters
    ----------
    store:
        Destination vector store.
    config:
        Chunking parameters; defaults to the global settings.
    clock:
        Returns epoch milliseconds; injectable for tests.
    """

    def __init__(
        self,
        store: VectorStoreBase,
        config: Settings | None = None,
        *,
        clock: Callable[[], int] = now_millis,
    ) -> None:
        self._store = store
        self._config = config or default_settings
        self._clock = clock

    def ingest(self, file_content: bytes, file_name: str, chunk_size: int | None = None) -> int:
        """Ingest one file and return the number of chunks written.

        Raises
        ------
        ValidationError
            When *file_name* is blank.
        UnreadableDocumentError
            When the format is unsupported or the file is corrupt.
        EmptyDocumentError
            When no text could be extracted; nothing is written.
        VectorStoreError
            When the batch write fails; nothing is written.
        """
        if not file_name or not file_name.strip():
            raise ValidationError("A file name is required", field="file")

        documents = load_bytes(file_content, file_name)
        documents = [d for d in documents if d.page_content and d.page_content.strip()]
        if not documents:
            raise EmptyDocumentError(f"No text extracted from {file_name}", {"file_name": file_name})

        ingested_at = self._clock()
        for doc in documents:
            doc.metadata = _flat_metadata(doc.metadata)
            doc.metadata[SOURCE_KEY] = file_name
            doc.metadata[INGESTION_TIMESTAMP_KEY] = ingested_at

        size = chunk_size or self._config.chunk_size
        pieces = chunk_documents(
            documents,
            chunk_size=size,
            chunk_overlap=min(self._config.chunk_overlap, size // 2),
            min_chunk_size=self._config.min_chunk_size,
            min_chunk_length_to_embed=self._config.min_chunk_length_to_embed,
            max_num_chunks=self._config.max_num_chunks,
        )
        if not pieces:
            raise EmptyDocumentError(f"No embeddable text in {file_name}", {"file_name": file_name})

        chunks = [self._to_chunk(p) for p in pieces]
        self._store.add(chunks)
        logger.info("Ingested %s: %d unit(s) -> %d chunk(s)", file_name, len(documents), len(chunks))
        return len(chunks)

    @staticmethod
    def _to_chunk(doc: Document) -> Chunk:
        return Chunk(content=doc.page_content, metadata=_flat_metadata(doc.metadata))
