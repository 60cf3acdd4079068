"""Retrieval-augmented chat orchestrator.

Two entry points share retrieval and prompt assembly:

* :meth:`ChatOrchestrator.chat` — blocking, returns the full completion.
* :meth:`ChatOrchestrator.stream_chat` — returns an async iterator of text
  fragments fed through a bounded channel.

Streaming model
---------------
A producer task pulls fragments from ``llm.astream()`` and puts them on an
``asyncio.Queue(maxsize=stream_buffer_size)``.  When the consumer is slower
than the model the queue fills and the producer blocks, so nothing is
dropped and nothing is buffered without bound.  Closing or cancelling the
consumer cancels the producer, which in turn abandons the upstream model
call.  An upstream failure is delivered to the consumer as
:class:`~ragchat.errors.GenerationError` after the fragments that were
already produced.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from typing import Any

import anyio
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage

from ragchat.chat.graph import build_graph, create_initial_state
from ragchat.chat.state import ChatPhase
from ragchat.config import Settings, settings as default_settings
from ragchat.errors import GenerationError, ValidationError
from ragchat.retrieval.retriever import SemanticRetriever

logger = logging.getLogger(__name__)

_END = object()


class _StreamFailure:
    __slots__ = ("error",)

    def __init__(self, error: BaseException) -> None:
        self.error = error


def _fragment_text(content: Any) -> str:
    """Normalise chunk content (plain string or list of content blocks)."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(
            item if isinstance(item, str) else str(item.get("text", "")) if isinstance(item, dict) else ""
            for item in content
        )
    return str(content or "")


class ChatOrchestrator:
    """Runs one stateless chat turn per call.

    Parameters
    ----------
    retriever:
        Read-side access to the vector store.
    llm:
        Chat model used for both single-shot and streaming generation.
    config:
        Supplies ``system_prompt``, ``top_k`` and ``stream_buffer_size``.
    """

    def __init__(
        self,
        retriever: SemanticRetriever,
        llm: BaseChatModel,
        config: Settings | None = None,
    ) -> None:
        config = config or default_settings
        self._llm = llm
        self._top_k = config.top_k
        self._buffer_size = max(1, config.stream_buffer_size)
        self._graph = build_graph(retriever, llm, system_prompt=config.system_prompt)
        self._prepare_graph = build_graph(retriever, system_prompt=config.system_prompt, include_generation=False)

    # -- single-shot ----------------------------------------------------------

    def chat(self, message: str, source: str | None = None) -> str:
        """Retrieve, assemble, and return the model's full completion."""
        self._validate(message)
        try:
            result = self._graph.invoke(create_initial_state(message, source, self._top_k))
        except Exception:
            logger.warning("Chat turn %s (source=%r)", ChatPhase.FAILED.value, source)
            raise
        logger.info(
            "Chat turn %s: %d context chunk(s), %d answer chars",
            result["phase"].value,
            len(result.get("chunks", [])),
            len(result["answer"]),
        )
        return result["answer"]

    def prepare(self, message: str, source: str | None = None) -> list[BaseMessage]:
        """Run retrieval and prompt assembly only; return the prompt."""
        self._validate(message)
        try:
            result = self._prepare_graph.invoke(create_initial_state(message, source, self._top_k))
        except Exception:
            logger.warning("Chat turn %s before generation (source=%r)", ChatPhase.FAILED.value, source)
            raise
        return result["prompt"]

    # -- streaming ------------------------------------------------------------

    async def stream_chat(
        self,
        message: str,
        source: str | None = None,
        *,
        limiter: anyio.CapacityLimiter | None = None,
    ) -> AsyncIterator[str]:
        """Prepare the prompt, then return an iterator over model fragments.

        Retrieval runs (on a worker thread drawn from *limiter*) before
        this coroutine returns, so retrieval errors are raised here and no
        model call is made.  Errors during generation surface from the
        returned iterator.
        """
        prompt = await anyio.to_thread.run_sync(self.prepare, message, source, limiter=limiter)
        return self._stream(prompt)

    async def _stream(self, prompt: list[BaseMessage]) -> AsyncIterator[str]:
        channel: asyncio.Queue[Any] = asyncio.Queue(maxsize=self._buffer_size)
        producer = asyncio.create_task(self._produce(prompt, channel))
        emitted = 0
        try:
            while True:
                item = await channel.get()
                if item is _END:
                    logger.info("Stream %s after %d fragment(s)", ChatPhase.COMPLETED.value, emitted)
                    return
                if isinstance(item, _StreamFailure):
                    logger.warning("Stream %s after %d fragment(s)", ChatPhase.FAILED.value, emitted)
                    raise GenerationError(
                        "The language model stream failed",
                        {"fragments_emitted": emitted},
                    ) from item.error
                emitted += 1
                yield item
        finally:
            if not producer.done():
                logger.info("Stream consumer closed after %d fragment(s); cancelling generation", emitted)
                producer.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await producer

    async def _produce(self, prompt: list[BaseMessage], channel: asyncio.Queue[Any]) -> None:
        logger.debug("phase=%s", ChatPhase.GENERATING.value)
        stream = self._llm.astream(prompt)
        try:
            async for chunk in stream:
                text = _fragment_text(chunk.content)
                if text:
                    await channel.put(text)
        except Exception as exc:
            logger.exception("Language model stream failed")
            await channel.put(_StreamFailure(exc))
            return
        finally:
            with contextlib.suppress(Exception):
                await stream.aclose()
        await channel.put(_END)

    # -- internals ------------------------------------------------------------

    @staticmethod
    def _validate(message: str) -> None:
        if not message or not message.strip():
            raise ValidationError("message must not be empty", field="message")
