"""Graph nodes — each function is one step of a chat turn.

Node contract
-------------
* Accepts the :class:`ChatState` dict plus its collaborators as keyword
  arguments (bound in :func:`ragchat.chat.graph.build_graph`).
* Returns a *partial* dict with **only the keys that changed**.
* Raises on failure; nothing downstream runs after a failed node, so a
  retrieval failure never reaches the model.
"""

from __future__ import annotations

import logging
from typing import Any

from langchain_core.language_models import BaseChatModel

from ragchat.chat.prompts import build_rag_prompt
from ragchat.chat.state import ChatPhase, ChatState
from ragchat.errors import GenerationError
from ragchat.retrieval.filters import format_equals, parse_filter_expression
from ragchat.retrieval.models import SOURCE_KEY, MetadataFilter
from ragchat.retrieval.retriever import SemanticRetriever

logger = logging.getLogger(__name__)


def source_filters(source: str | None) -> list[MetadataFilter]:
    """``source == '<value>'`` as filters, or nothing for a blank source."""
    if source is None or not source.strip():
        return []
    return parse_filter_expression(format_equals(SOURCE_KEY, source))


# ── 1. RETRIEVE ───────────────────────────────────────────────────────


def retrieve(state: ChatState, *, retriever: SemanticRetriever) -> dict[str, Any]:
    """Similarity search for the user's message, optionally source-scoped."""
    logger.debug("phase=%s", ChatPhase.RETRIEVING.value)
    filters = source_filters(state.get("source"))
    chunks = retriever.search(state["message"], k=state.get("top_k"), filters=filters)
    return {"filters": filters, "chunks": chunks, "phase": ChatPhase.RETRIEVING}


# ── 2. ASSEMBLE PROMPT ────────────────────────────────────────────────


def assemble_prompt(state: ChatState, *, system_prompt: str) -> dict[str, Any]:
    """System instructions, then context, then the user message."""
    prompt = build_rag_prompt(system_prompt, state.get("chunks", []), state["message"])
    logger.debug("phase=%s (%d context chunk(s))", ChatPhase.PROMPT_ASSEMBLED.value, len(state.get("chunks", [])))
    return {"prompt": prompt, "phase": ChatPhase.PROMPT_ASSEMBLED}


# ── 3. GENERATE ───────────────────────────────────────────────────────


def generate(state: ChatState, *, llm: BaseChatModel) -> dict[str, Any]:
    """Single-shot completion of the assembled prompt."""
    logger.debug("phase=%s", ChatPhase.GENERATING.value)
    try:
        response = llm.invoke(state["prompt"])
    except Exception as exc:
        raise GenerationError("The language model call failed") from exc
    answer = response.content if isinstance(response.content, str) else str(response.content)
    return {"answer": answer, "phase": ChatPhase.COMPLETED}
