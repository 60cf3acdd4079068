"""Unit tests for the document ingestor."""

from __future__ import annotations

from typing import Any

import pytest

from ragchat.config import Settings
from ragchat.errors import EmptyDocumentError, UnreadableDocumentError, ValidationError, VectorStoreError
from ragchat.ingestion.ingestor import DocumentIngestor, _flat_metadata

FIXED_NOW = 1_700_000_000_000


@pytest.fixture()
def ingestor(memory_store: Any, settings: Settings) -> DocumentIngestor:
    return DocumentIngestor(memory_store, settings, clock=lambda: FIXED_NOW)


class TestDocumentIngestor:
    def test_returns_chunk_count_and_writes_once(self, ingestor: DocumentIngestor, memory_store: Any) -> None:
        count = ingestor.ingest(("All staff may request leave. " * 40).encode(), "leave.txt")
        assert count == len(memory_store.chunks)
        assert count > 1
        assert memory_store.add_calls == 1

    def test_chunks_are_tagged_with_source_and_timestamp(
        self, ingestor: DocumentIngestor, memory_store: Any
    ) -> None:
        ingestor.ingest(b"A short but meaningful note.", "note.md")
        assert all(c.source == "note.md" for c in memory_store.chunks)
        assert all(c.ingestion_timestamp == FIXED_NOW for c in memory_store.chunks)

    def test_pdf_pages_are_ingested(self, ingestor: DocumentIngestor, memory_store: Any, policy_pdf: bytes) -> None:
        assert ingestor.ingest(policy_pdf, "policy.pdf") >= 1
        assert {c.source for c in memory_store.chunks} == {"policy.pdf"}

    def test_chunk_size_override(self, memory_store: Any, settings: Settings) -> None:
        text = ("Word " * 400).encode()
        default = DocumentIngestor(memory_store, settings).ingest(text, "a.txt")
        smaller = DocumentIngestor(memory_store, settings).ingest(text, "b.txt", chunk_size=100)
        assert smaller > default

    def test_blank_file_name_rejected(self, ingestor: DocumentIngestor, memory_store: Any) -> None:
        with pytest.raises(ValidationError):
            ingestor.ingest(b"content", "  ")
        assert memory_store.chunks == []

    def test_whitespace_only_document_is_empty(self, ingestor: DocumentIngestor, memory_store: Any) -> None:
        with pytest.raises(EmptyDocumentError) as excinfo:
            ingestor.ingest(b"   \n\n  \t ", "blank.txt")
        assert excinfo.value.details["file_name"] == "blank.txt"
        assert memory_store.add_calls == 0

    def test_unsupported_format_propagates(self, ingestor: DocumentIngestor) -> None:
        with pytest.raises(UnreadableDocumentError):
            ingestor.ingest(b"MZ\x90\x00", "tool.exe")

    def test_store_failure_propagates(self, ingestor: DocumentIngestor, memory_store: Any) -> None:
        memory_store.fail_with = VectorStoreError("unreachable")
        with pytest.raises(VectorStoreError):
            ingestor.ingest(b"Some text worth keeping.", "a.txt")

    def test_same_file_twice_is_not_deduplicated(self, ingestor: DocumentIngestor, memory_store: Any) -> None:
        first = ingestor.ingest(b"Repeated content here.", "dup.txt")
        second = ingestor.ingest(b"Repeated content here.", "dup.txt")
        assert len(memory_store.chunks) == first + second


def test_flat_metadata_drops_nested_values() -> None:
    assert _flat_metadata({"a": 1, "b": "x", "c": [1, 2], "d": {"k": "v"}, "e": None}) == {"a": 1, "b": "x"}
