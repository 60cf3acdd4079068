"""Request / response schemas for the HTTP API."""

from __future__ import annotations

from pydantic import BaseModel


class ChatRequest(BaseModel):
    """Incoming chat message, optionally scoped to one source document."""

    message: str
    source: str | None = None


class ChatResponse(BaseModel):
    """Full model answer for the single-shot endpoint."""

    response: str


class StatusResponse(BaseModel):
    """Human-readable outcome of a mutating call."""

    message: str
    deleted: int | None = None
    chunks: int | None = None


class SourcesResponse(BaseModel):
    """One page of ingested source names."""

    sources: list[str]
    total: int


class ErrorResponse(BaseModel):
    """Body of every error response."""

    error: str
