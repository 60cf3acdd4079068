"""Prompt assembly for retrieval-augmented chat.

The layout is fixed: system instructions first, then the retrieved
context, then the user's message.  Keeping it static makes every answer
traceable to exactly the text the model was shown.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from langchain_core.messages import HumanMessage, SystemMessage

if TYPE_CHECKING:
    from langchain_core.messages import BaseMessage

    from ragchat.retrieval.models import Chunk

NO_CONTEXT = "(no relevant documents were found)"

CONTEXT_TEMPLATE = """\
Context information is below, surrounded by ---------------------

---------------------
{context}
---------------------

Given the context information and not prior knowledge, reply to the user
message. If the answer is not in the context, tell the user that you
can't answer the question.

User message: {message}"""


def build_context_block(chunks: list[Chunk]) -> str:
    """Join retrieved chunk contents in retrieval order."""
    if not chunks:
        return NO_CONTEXT
    parts: list[str] = []
    for chunk in chunks:
        source = chunk.source or "unknown"
        parts.append(f"[source: {source}]\n{chunk.content}")
    return "\n\n".join(parts)


def build_rag_prompt(system_prompt: str, chunks: list[Chunk], message: str) -> list[BaseMessage]:
    """Assemble the prompt messages for a retrieval-augmented generation call.

    Parameters
    ----------
    system_prompt:
        Static instructions from configuration.
    chunks:
        Retrieved context chunks, most similar first.
    message:
        The user's message, verbatim.

    Returns
    -------
    list[BaseMessage]
        A list of LangChain message objects ready for ``.invoke()`` / ``.astream()``.
    """
    return [
        SystemMessage(content=system_prompt),
        HumanMessage(content=CONTEXT_TEMPLATE.format(context=build_context_block(chunks), message=message)),
    ]
