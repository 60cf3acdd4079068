"""Chat state definition — shared across all graph nodes.

The state flows through every node of the per-request chat graph.  No
state survives the request: each turn starts from
:func:`ragchat.chat.graph.create_initial_state`.
"""

from __future__ import annotations

from enum import Enum
from typing import TypedDict

from langchain_core.messages import BaseMessage

from ragchat.retrieval.models import Chunk, MetadataFilter


class ChatPhase(str, Enum):
    """Lifecycle of one chat request."""

    RECEIVED = "received"
    RETRIEVING = "retrieving"
    PROMPT_ASSEMBLED = "prompt_assembled"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


class ChatState(TypedDict, total=False):
    """Per-request chat state.

    Fields
    ------
    message:
        The user's message.
    source:
        Optional source name restricting retrieval.
    top_k:
        Maximum chunks to retrieve.
    filters:
        Metadata filters derived from ``source``.
    chunks:
        Retrieved chunks, most similar first.
    prompt:
        Messages sent to the model.
    answer:
        The model's full completion (single-shot mode only).
    phase:
        Where the request is in its lifecycle.
    """

    message: str
    source: str | None
    top_k: int
    filters: list[MetadataFilter]
    chunks: list[Chunk]
    prompt: list[BaseMessage]
    answer: str
    phase: ChatPhase
