"""Domain models for stored chunks, search requests, and source listings."""

from __future__ import annotations

import time
from typing import Any, Union
from uuid import uuid4

from pydantic import BaseModel, Field

SOURCE_KEY = "source"
INGESTION_TIMESTAMP_KEY = "ingestion_timestamp"

MetadataValue = Union[str, int, float, bool]


def now_millis() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(time.time() * 1000)


class MetadataFilter(BaseModel):
    """Declarative metadata filter for vector-store queries.

    Attributes
    ----------
    field:
        The metadata key to filter on (e.g. ``"source"``).
    operator:
        Comparison operator — one of ``eq``, ``ne``, ``gt``, ``gte``,
        ``lt``, ``lte``, ``in``, ``nin``.
    value:
        The value (or list of values for ``in`` / ``nin``) to compare against.
    """

    field: str
    operator: str = "eq"
    value: Any = None

    @classmethod
    def equals(cls, field: str, value: Any) -> MetadataFilter:
        return cls(field=field, operator="eq", value=value)

    @classmethod
    def less_than(cls, field: str, value: Any) -> MetadataFilter:
        return cls(field=field, operator="lt", value=value)


class Chunk(BaseModel):
    """A bounded piece of source text, the atomic unit of retrieval.

    Chunks are written once and only ever deleted. ``score`` is populated
    on search results and is never persisted.
    """

    id: str = Field(default_factory=lambda: uuid4().hex)
    content: str
    embedding: list[float] | None = None
    metadata: dict[str, MetadataValue] = Field(default_factory=dict)
    score: float | None = None

    @property
    def source(self) -> str | None:
        value = self.metadata.get(SOURCE_KEY)
        return None if value is None else str(value)

    @property
    def ingestion_timestamp(self) -> int | None:
        value = self.metadata.get(INGESTION_TIMESTAMP_KEY)
        return None if value is None else int(value)


class SearchRequest(BaseModel):
    """One similarity query; transient, never persisted."""

    query: str
    top_k: int = Field(default=4, ge=1)
    filters: list[MetadataFilter] | None = None


class SourcePage(BaseModel):
    """A page of distinct metadata values plus the unpaginated total."""

    values: list[str] = Field(default_factory=list)
    total: int = 0
