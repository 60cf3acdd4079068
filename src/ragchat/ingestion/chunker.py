"""Text chunking strategies."""

from __future__ import annotations

import logging

from langchain_core.documents import Document
from langchain_text_splitters import RecursiveCharacterTextSplitter

logger = logging.getLogger(__name__)

START_INDEX_KEY = "start_index"
CHUNK_INDEX_KEY = "chunk_index"


def chunk_documents(
    documents: list[Document],
    chunk_size: int = 800,
    chunk_overlap: int = 100,
    *,
    min_chunk_size: int = 350,
    min_chunk_length_to_embed: int = 5,
    max_num_chunks: int = 10000,
) -> list[Document]:
    """Split *documents* into smaller chunks for embedding.

    Parameters
    ----------
    documents:
        Source documents produced by a loader.
    chunk_size:
        Maximum number of characters per chunk.
    chunk_overlap:
        Number of overlapping characters between consecutive chunks.
    min_chunk_size:
        A trailing fragment shorter than this is folded into the chunk
        before it, so the last chunk may exceed *chunk_size* by at most
        this many characters.
    min_chunk_length_to_embed:
        Chunks whose stripped text is shorter than this are dropped.
    max_num_chunks:
        Upper bound on chunks produced per source document.

    Returns
    -------
    list[Document]
        Chunked documents ready for embedding.  Each keeps its parent's
        metadata plus ``start_index`` (offset in the parent text) and
        ``chunk_index`` (ordinal within the parent).
    """
    if chunk_overlap >= chunk_size:
        raise ValueError(f"chunk_overlap ({chunk_overlap}) must be < chunk_size ({chunk_size})")

    splitter = RecursiveCharacterTextSplitter(
        chunk_size=chunk_size,
        chunk_overlap=chunk_overlap,
        length_function=len,
        separators=["\n\n", "\n", ". ", " ", ""],
        add_start_index=True,
    )

    chunks: list[Document] = []
    for doc in documents:
        pieces = splitter.split_documents([doc])
        pieces = _merge_trailing_fragment(doc.page_content, pieces, min_chunk_size)
        pieces = [p for p in pieces if len(p.page_content.strip()) >= min_chunk_length_to_embed]
        if len(pieces) > max_num_chunks:
            logger.warning(
                "Truncating %s from %d to %d chunks",
                doc.metadata.get("source", "document"),
                len(pieces),
                max_num_chunks,
            )
            pieces = pieces[:max_num_chunks]
        for idx, piece in enumerate(pieces):
            piece.metadata[CHUNK_INDEX_KEY] = idx
        chunks.extend(pieces)
    return chunks


def _merge_trailing_fragment(text: str, pieces: list[Document], min_chunk_size: int) -> list[Document]:
    """Fold a too-short last piece into its predecessor.

    The merged text is cut from the parent using the splitter's start
    offsets so the overlap between the two pieces is not duplicated.
    """
    if len(pieces) < 2 or len(pieces[-1].page_content) >= min_chunk_size:
        return pieces

    prev, tail = pieces[-2], pieces[-1]
    prev_start = prev.metadata.get(START_INDEX_KEY, -1)
    tail_start = tail.metadata.get(START_INDEX_KEY, -1)
    if prev_start >= 0 and tail_start >= 0:
        end = max(prev_start + len(prev.page_content), tail_start + len(tail.page_content))
        merged = text[prev_start:end].strip()
    else:
        merged = f"{prev.page_content} {tail.page_content}"

    return [*pieces[:-2], Document(page_content=merged, metadata=dict(prev.metadata))]
