"""Application-scoped components shared by every request."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from functools import partial

import anyio
from fastapi import Request
from langchain_core.language_models import BaseChatModel

from ragchat.chat.llm import get_llm, llm_health_check
from ragchat.chat.orchestrator import ChatOrchestrator
from ragchat.config import Settings
from ragchat.ingestion.ingestor import DocumentIngestor
from ragchat.retention import RetentionSweeper
from ragchat.retrieval.base import VectorStoreBase
from ragchat.retrieval.retriever import SemanticRetriever


@dataclass
class Services:
    """Components built once at startup."""

    settings: Settings
    store: VectorStoreBase
    ingestor: DocumentIngestor
    orchestrator: ChatOrchestrator
    sweeper: RetentionSweeper
    limiter: anyio.CapacityLimiter
    llm_health: Callable[[], bool]


def build_services(
    config: Settings,
    *,
    store: VectorStoreBase | None = None,
    llm: BaseChatModel | None = None,
) -> Services:
    """Wire the components; *store* and *llm* default to the configured backends.

    Must be called from inside a running event loop because of the
    capacity limiter.
    """
    if store is None:
        from ragchat.retrieval.chroma_store import ChromaVectorStore

        store = ChromaVectorStore(config)
    if llm is None:
        llm = get_llm(config)

    retriever = SemanticRetriever(store, default_k=config.top_k, score_threshold=config.score_threshold)
    return Services(
        settings=config,
        store=store,
        ingestor=DocumentIngestor(store, config),
        orchestrator=ChatOrchestrator(retriever, llm, config),
        sweeper=RetentionSweeper(store, config),
        limiter=anyio.CapacityLimiter(config.chat_worker_pool_size),
        llm_health=partial(llm_health_check, config),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services
