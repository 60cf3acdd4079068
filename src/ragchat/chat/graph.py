"""LangGraph graph definition — the per-request chat workflow.

This module wires the nodes defined in :mod:`ragchat.chat.nodes` into a
compiled :class:`StateGraph`::

    START → retrieve → assemble_prompt → generate → END

The streaming path compiles the same graph without ``generate`` and
streams the model itself (see :class:`ragchat.chat.orchestrator.ChatOrchestrator`),
so retrieval and prompt assembly are identical in both modes.
"""

from __future__ import annotations

from typing import Any

from langchain_core.language_models import BaseChatModel
from langgraph.graph import END, START, StateGraph

from ragchat.chat.nodes import assemble_prompt, generate, retrieve
from ragchat.chat.state import ChatPhase, ChatState
from ragchat.retrieval.retriever import SemanticRetriever


def build_graph(
    retriever: SemanticRetriever,
    llm: BaseChatModel | None = None,
    *,
    system_prompt: str,
    include_generation: bool = True,
) -> Any:
    """Construct and return the compiled chat graph.

    Parameters
    ----------
    retriever:
        Read-side access to the vector store.
    llm:
        Chat model; required when *include_generation* is true.
    system_prompt:
        Static system instructions.
    include_generation:
        When false the graph stops after prompt assembly.
    """
    if include_generation and llm is None:
        raise ValueError("llm is required when include_generation=True")

    def _retrieve(state: ChatState) -> dict[str, Any]:
        return retrieve(state, retriever=retriever)

    def _assemble_prompt(state: ChatState) -> dict[str, Any]:
        return assemble_prompt(state, system_prompt=system_prompt)

    workflow = StateGraph(ChatState)
    workflow.add_node("retrieve", _retrieve)
    workflow.add_node("assemble_prompt", _assemble_prompt)
    workflow.add_edge(START, "retrieve")
    workflow.add_edge("retrieve", "assemble_prompt")

    if include_generation:

        def _generate(state: ChatState) -> dict[str, Any]:
            return generate(state, llm=llm)

        workflow.add_node("generate", _generate)
        workflow.add_edge("assemble_prompt", "generate")
        workflow.add_edge("generate", END)
    else:
        workflow.add_edge("assemble_prompt", END)

    return workflow.compile()


def create_initial_state(message: str, source: str | None = None, top_k: int = 4) -> ChatState:
    """Return a fresh state dict for ``graph.invoke()``."""
    return {
        "message": message,
        "source": source,
        "top_k": top_k,
        "filters": [],
        "chunks": [],
        "prompt": [],
        "answer": "",
        "phase": ChatPhase.RECEIVED,
    }
