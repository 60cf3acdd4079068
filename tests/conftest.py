"""Shared pytest configuration and fixtures."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Iterator, Sequence
from typing import Any
from uuid import uuid4

import pytest
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, AIMessageChunk, BaseMessage
from langchain_core.outputs import ChatGeneration, ChatGenerationChunk, ChatResult
from pydantic import Field

from ragchat.config import Settings
from ragchat.retrieval.base import VectorStoreBase
from ragchat.retrieval.models import INGESTION_TIMESTAMP_KEY, Chunk, SearchRequest, SourcePage


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


# ── In-memory vector store ──────────────────────────────────────────────


class InMemoryVectorStore(VectorStoreBase):
    """Keeps chunks in a list; similarity is word overlap with the query."""

    def __init__(self, collection_name: str = "test-collection") -> None:
        super().__init__(collection_name)
        self.chunks: list[Chunk] = []
        self.requests: list[SearchRequest] = []
        self.add_calls = 0
        self.fail_with: Exception | None = None

    def _maybe_fail(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    def add(self, chunks: Sequence[Chunk]) -> None:
        self._maybe_fail()
        self.validate_chunks(chunks)
        self.add_calls += 1
        self.chunks.extend(chunks)

    def similarity_search(self, request: SearchRequest) -> list[Chunk]:
        self._maybe_fail()
        self.requests.append(request)
        query_words = set(request.query.lower().split())
        candidates = [c for c in self.chunks if self._matches(c, request)]
        scored = [
            c.model_copy(update={"score": len(query_words & set(c.content.lower().split())) / (len(query_words) or 1)})
            for c in candidates
        ]
        scored.sort(key=lambda c: c.score, reverse=True)
        return scored[: request.top_k]

    def delete_all(self) -> int:
        self._maybe_fail()
        count = len(self.chunks)
        self.chunks.clear()
        return count

    def delete_by_metadata(self, key: str, value: str) -> int:
        self._maybe_fail()
        before = len(self.chunks)
        self.chunks = [c for c in self.chunks if c.metadata.get(key) != value]
        return before - len(self.chunks)

    def delete_older_than(self, cutoff_epoch_millis: int) -> int:
        self._maybe_fail()
        before = len(self.chunks)
        self.chunks = [c for c in self.chunks if int(c.metadata[INGESTION_TIMESTAMP_KEY]) >= cutoff_epoch_millis]
        return before - len(self.chunks)

    def list_distinct_metadata_values(
        self,
        key: str,
        page: int,
        page_size: int,
        search: str | None = None,
    ) -> SourcePage:
        self.validate_page(page, page_size)
        self._maybe_fail()
        values = {str(c.metadata[key]) for c in self.chunks if key in c.metadata}
        return self.paginate_values(values, page, page_size, search)

    def health_check(self) -> bool:
        return self.fail_with is None

    @staticmethod
    def _matches(chunk: Chunk, request: SearchRequest) -> bool:
        for f in request.filters or []:
            if f.operator == "eq" and chunk.metadata.get(f.field) != f.value:
                return False
        return True


# ── Scripted chat model ─────────────────────────────────────────────────


class ScriptedChatModel(BaseChatModel):
    """Answers every prompt with ``reply`` and records what it was shown.

    When ``fail_after`` is set, streaming raises after that many fragments.
    """

    reply: str = "Employees may work remotely two days a week."
    fail_after: int | None = None
    prompts: list[list[BaseMessage]] = Field(default_factory=list)

    @property
    def _llm_type(self) -> str:
        return "scripted"

    def _generate(
        self,
        messages: list[BaseMessage],
        stop: list[str] | None = None,
        run_manager: Any = None,
        **kwargs: Any,
    ) -> ChatResult:
        self.prompts.append(list(messages))
        if self.fail_after == 0:
            raise RuntimeError("model backend unavailable")
        return ChatResult(generations=[ChatGeneration(message=AIMessage(content=self.reply))])

    async def _astream(
        self,
        messages: list[BaseMessage],
        stop: list[str] | None = None,
        run_manager: Any = None,
        **kwargs: Any,
    ) -> AsyncIterator[ChatGenerationChunk]:
        self.prompts.append(list(messages))
        for index, word in enumerate(self.reply.split(" ")):
            if self.fail_after is not None and index >= self.fail_after:
                raise RuntimeError("model backend dropped the connection")
            text = word if index == 0 else f" {word}"
            yield ChatGenerationChunk(message=AIMessageChunk(content=text))


class EndlessChatModel(BaseChatModel):
    """Streams forever and counts how many fragments it produced."""

    produced: int = 0

    @property
    def _llm_type(self) -> str:
        return "endless"

    def _generate(self, messages: list[BaseMessage], stop: Any = None, run_manager: Any = None, **kwargs: Any) -> ChatResult:
        return ChatResult(generations=[ChatGeneration(message=AIMessage(content="never"))])

    async def _astream(
        self, messages: list[BaseMessage], stop: Any = None, run_manager: Any = None, **kwargs: Any
    ) -> AsyncIterator[ChatGenerationChunk]:
        while True:
            self.produced += 1
            yield ChatGenerationChunk(message=AIMessageChunk(content=f"t{self.produced} "))
            await asyncio.sleep(0)


# ── PDF builder ─────────────────────────────────────────────────────────


def _pdf_escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def build_pdf(lines: list[str]) -> bytes:
    """A single-page PDF with one Helvetica text line per entry."""
    ops = ["BT", "/F1 11 Tf", "14 TL", "72 760 Td"]
    ops.extend(f"({_pdf_escape(line)}) Tj T*" for line in lines)
    ops.append("ET")
    stream = "\n".join(ops).encode("latin-1")

    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        b"/Contents 4 0 R /Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    out = bytearray(b"%PDF-1.4\n")
    offsets: list[int] = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"
    xref_at = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref_at)
    return bytes(out)


POLICY_LINES = [
    f"Section {i}: the remote work policy allows employees to work from home on agreed days."
    for i in range(1, 21)
]


# ── Fixtures ────────────────────────────────────────────────────────────


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        chunk_size=200,
        chunk_overlap=20,
        min_chunk_size=50,
        retention_enabled=False,
        llm_base_url="http://llm.invalid/v1",
    )


@pytest.fixture
def memory_store() -> InMemoryVectorStore:
    return InMemoryVectorStore()


@pytest.fixture
def chat_model() -> ScriptedChatModel:
    return ScriptedChatModel()


@pytest.fixture
def endless_chat_model() -> EndlessChatModel:
    return EndlessChatModel()


@pytest.fixture
def policy_pdf() -> bytes:
    return build_pdf(POLICY_LINES)


@pytest.fixture
def chroma_store_factory(settings: Settings) -> Iterator[Callable[..., Any]]:
    """Build Chroma stores on an in-process client with deterministic embeddings."""
    import chromadb
    from langchain_core.embeddings import DeterministicFakeEmbedding

    from ragchat.retrieval.chroma_store import ChromaVectorStore

    client = chromadb.EphemeralClient()
    created: list[str] = []

    def _make(config: Settings | None = None, **overrides: Any) -> ChromaVectorStore:
        name = f"test-{uuid4().hex}"
        created.append(name)
        return ChromaVectorStore(
            config or settings,
            client=overrides.pop("client", client),
            embedder=overrides.pop("embedder", DeterministicFakeEmbedding(size=32)),
            collection_name=name,
        )

    yield _make

    for name in created:
        try:
            client.delete_collection(name)
        except Exception:
            pass
