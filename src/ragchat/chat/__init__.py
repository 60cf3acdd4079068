"""
Chat — retrieval-augmented generation over the vector store.

Public API
----------
- :class:`ChatOrchestrator` — single-shot and streaming chat turns.
- :func:`build_graph` — compile the per-request LangGraph workflow.
- :func:`create_initial_state` — bootstrap the state dict for ``graph.invoke()``.
- :class:`ChatState`, :class:`ChatPhase` — the state flowing through every node.
"""

from ragchat.chat.graph import build_graph, create_initial_state
from ragchat.chat.orchestrator import ChatOrchestrator
from ragchat.chat.state import ChatPhase, ChatState

__all__ = [
    "ChatOrchestrator",
    "ChatPhase",
    "ChatState",
    "build_graph",
    "create_initial_state",
]
