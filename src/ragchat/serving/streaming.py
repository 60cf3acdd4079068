"""Server-Sent Events framing for streamed chat answers.

Event stream::

    event: token
    data: {"token": "..."}

    event: complete
    data: {"fragments": 12}

    event: error
    data: {"error": "..."}

Every stream ends with exactly one ``complete`` or ``error`` event, so a
client can always tell a finished answer from a truncated one.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import Any

from ragchat.errors import RagChatError
from ragchat.messages import get_message
from ragchat.serving.errors import client_message

logger = logging.getLogger(__name__)

SSE_HEADERS = {"Cache-Control": "no-cache", "X-Accel-Buffering": "no"}


def sse_event(event: str, data: dict[str, Any]) -> str:
    return f"event: {event}\ndata: {json.dumps(data, ensure_ascii=False)}\n\n"


async def sse_events(fragments: AsyncIterator[str], locale: str = "en") -> AsyncIterator[str]:
    """Frame *fragments* as SSE, ending with ``complete`` or ``error``."""
    count = 0
    async with aclosing(fragments):  # type: ignore[type-var]
        try:
            async for fragment in fragments:
                count += 1
                yield sse_event("token", {"token": fragment})
        except RagChatError as exc:
            yield sse_event("error", {"error": client_message(exc, locale), "fragments": count})
            return
        except Exception:
            logger.exception("Unexpected failure while streaming")
            yield sse_event("error", {"error": get_message("error.unexpected", locale), "fragments": count})
            return
    yield sse_event("complete", {"fragments": count})
