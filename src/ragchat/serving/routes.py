"""HTTP routes under ``/api/chat``.

Blocking work (vector-store calls, embedding, single-shot generation) runs
on worker threads drawn from the shared bounded limiter so a slow request
cannot occupy the event loop.
"""

from __future__ import annotations

import logging

import anyio
from fastapi import APIRouter, Depends, File, Query, Request, UploadFile
from fastapi.responses import PlainTextResponse, StreamingResponse

from ragchat.errors import UploadTooLargeError
from ragchat.messages import get_message
from ragchat.retrieval.models import SOURCE_KEY
from ragchat.serving.errors import request_locale
from ragchat.serving.schemas import ChatRequest, ChatResponse, ErrorResponse, SourcesResponse, StatusResponse
from ragchat.serving.services import Services, get_services
from ragchat.serving.streaming import SSE_HEADERS, sse_events

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/chat",
    tags=["chat"],
    responses={code: {"model": ErrorResponse} for code in (400, 413, 422, 500, 502, 503)},
)


def get_locale(request: Request) -> str:
    return request_locale(request)


@router.post("", response_model=ChatResponse)
async def chat(body: ChatRequest, services: Services = Depends(get_services)) -> ChatResponse:
    """Answer a message using retrieved context; blocks until the full answer is ready."""
    answer = await anyio.to_thread.run_sync(
        services.orchestrator.chat, body.message, body.source, limiter=services.limiter
    )
    return ChatResponse(response=answer)


@router.post("/stream")
async def stream_chat(
    body: ChatRequest,
    services: Services = Depends(get_services),
    locale: str = Depends(get_locale),
) -> StreamingResponse:
    """Stream the answer as Server-Sent Events."""
    logger.debug("Streaming chat turn (source=%r)", body.source)
    fragments = await services.orchestrator.stream_chat(body.message, body.source, limiter=services.limiter)
    return StreamingResponse(sse_events(fragments, locale), media_type="text/event-stream", headers=SSE_HEADERS)


@router.delete("/vectorstore", response_model=StatusResponse)
async def clear_vector_store(
    services: Services = Depends(get_services),
    locale: str = Depends(get_locale),
) -> StatusResponse:
    """Delete every stored chunk."""
    deleted = await anyio.to_thread.run_sync(services.store.delete_all, limiter=services.limiter)
    return StatusResponse(message=get_message("vector.store.cleared", locale, count=deleted), deleted=deleted)


@router.delete("/source", response_model=StatusResponse)
async def delete_source(
    source: str = Query(...),
    services: Services = Depends(get_services),
    locale: str = Depends(get_locale),
) -> StatusResponse:
    """Delete every chunk ingested from *source*."""
    deleted = await anyio.to_thread.run_sync(
        services.store.delete_by_metadata, SOURCE_KEY, source, limiter=services.limiter
    )
    return StatusResponse(
        message=get_message("vector.store.deleted.source", locale, count=deleted, source=source),
        deleted=deleted,
    )


@router.post("/ingest", response_model=StatusResponse)
async def ingest(
    file: UploadFile = File(...),
    services: Services = Depends(get_services),
    locale: str = Depends(get_locale),
) -> StatusResponse:
    """Extract, chunk, embed and store one uploaded document."""
    limit = services.settings.max_upload_bytes
    content = await file.read(limit + 1)
    if len(content) > limit:
        raise UploadTooLargeError("Upload exceeds the size limit", {"limit": limit, "file_name": file.filename})

    file_name = file.filename or ""
    chunks = await anyio.to_thread.run_sync(services.ingestor.ingest, content, file_name, limiter=services.limiter)
    return StatusResponse(
        message=get_message("ingest.content.success", locale, source=file_name, chunks=chunks),
        chunks=chunks,
    )


@router.get("/sources", response_model=SourcesResponse)
async def list_sources(
    page: int = 0,
    size: int = 5,
    search: str = "",
    services: Services = Depends(get_services),
) -> SourcesResponse:
    """Page through ingested source names, optionally filtered by substring."""
    result = await anyio.to_thread.run_sync(
        services.store.list_distinct_metadata_values, SOURCE_KEY, page, size, search or None, limiter=services.limiter
    )
    return SourcesResponse(sources=result.values, total=result.total)


@router.get("/ping", response_class=PlainTextResponse)
async def ping() -> str:
    """Liveness check."""
    return "Pong"
