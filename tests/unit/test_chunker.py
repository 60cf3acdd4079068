"""Unit tests for the chunker module."""

import pytest
from langchain_core.documents import Document

from ragchat.ingestion.chunker import chunk_documents


def test_chunk_documents_splits_long_text() -> None:
    """A document longer than chunk_size should be split."""
    long_text = "word " * 500  # ~2500 chars
    docs = [Document(page_content=long_text, metadata={"source": "test"})]
    chunks = chunk_documents(docs, chunk_size=256, chunk_overlap=32, min_chunk_size=1)
    assert len(chunks) > 1
    assert all(len(c.page_content) <= 256 for c in chunks)


def test_chunk_documents_preserves_metadata() -> None:
    """Metadata from the source document should be preserved in chunks."""
    docs = [Document(page_content="Short text.", metadata={"source": "test.md", "ingestion_timestamp": 7})]
    chunks = chunk_documents(docs, chunk_size=256, chunk_overlap=0)
    assert all(c.metadata.get("source") == "test.md" for c in chunks)
    assert all(c.metadata.get("ingestion_timestamp") == 7 for c in chunks)


def test_chunk_documents_empty_input() -> None:
    """An empty list should return an empty list."""
    assert chunk_documents([]) == []


def test_chunk_index_restarts_per_document() -> None:
    docs = [
        Document(page_content="alpha " * 100, metadata={"source": "a"}),
        Document(page_content="beta " * 100, metadata={"source": "b"}),
    ]
    chunks = chunk_documents(docs, chunk_size=120, chunk_overlap=0, min_chunk_size=1)
    for source in ("a", "b"):
        indices = [c.metadata["chunk_index"] for c in chunks if c.metadata["source"] == source]
        assert indices == list(range(len(indices)))


def test_overlap_must_be_smaller_than_size() -> None:
    with pytest.raises(ValueError):
        chunk_documents([Document(page_content="x")], chunk_size=100, chunk_overlap=100)


def test_short_trailing_fragment_is_merged() -> None:
    """45 four-letter words split 20/20/5; the 5-word tail joins its predecessor."""
    docs = [Document(page_content="word " * 45, metadata={"source": "s"})]
    chunks = chunk_documents(docs, chunk_size=100, chunk_overlap=0, min_chunk_size=30)
    assert len(chunks) == 2
    assert sum(c.page_content.split().count("word") for c in chunks) == 45


def test_long_enough_tail_is_kept_separate() -> None:
    docs = [Document(page_content="word " * 45, metadata={"source": "s"})]
    chunks = chunk_documents(docs, chunk_size=100, chunk_overlap=0, min_chunk_size=1)
    assert len(chunks) == 3


def test_merge_does_not_duplicate_overlap() -> None:
    text = " ".join(f"w{i:03d}" for i in range(60))
    docs = [Document(page_content=text, metadata={"source": "s"})]
    chunks = chunk_documents(docs, chunk_size=100, chunk_overlap=20, min_chunk_size=60)
    last = chunks[-1].page_content.split()
    assert len(last) == len(set(last))
    assert last[-1] == "w059"


def test_every_word_is_covered() -> None:
    words = [f"token{i}" for i in range(300)]
    docs = [Document(page_content=" ".join(words), metadata={"source": "s"})]
    chunks = chunk_documents(docs, chunk_size=150, chunk_overlap=30, min_chunk_size=40)
    covered = {w for c in chunks for w in c.page_content.split()}
    assert covered == set(words)


def test_tiny_chunks_are_dropped() -> None:
    docs = [Document(page_content="hi", metadata={"source": "s"})]
    assert chunk_documents(docs, chunk_size=100, chunk_overlap=0, min_chunk_length_to_embed=5) == []


def test_max_num_chunks_caps_output() -> None:
    docs = [Document(page_content="word " * 500, metadata={"source": "s"})]
    chunks = chunk_documents(docs, chunk_size=50, chunk_overlap=0, min_chunk_size=1, max_num_chunks=3)
    assert len(chunks) == 3


def test_consecutive_chunks_share_the_configured_overlap() -> None:
    """The tail of each chunk reappears at the head of the next, up to chunk_overlap characters."""
    text = " ".join(f"w{i:03d}" for i in range(60))
    docs = [Document(page_content=text, metadata={"source": "s"})]
    chunks = chunk_documents(docs, chunk_size=100, chunk_overlap=20, min_chunk_size=1)
    assert len(chunks) >= 3

    for prev, nxt in zip(chunks, chunks[1:]):
        prev_end = prev.metadata["start_index"] + len(prev.page_content)
        shared = text[nxt.metadata["start_index"] : prev_end]
        assert 15 <= len(shared) <= 20
        assert prev.page_content.endswith(shared)
        assert nxt.page_content.startswith(shared)
