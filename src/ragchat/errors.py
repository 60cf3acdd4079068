"""Exception hierarchy shared by every component.

Components raise these where the failure is detected; only the serving
layer (:mod:`ragchat.serving.errors`) turns them into HTTP responses.
"""

from __future__ import annotations

from typing import Any


class RagChatError(Exception):
    """Base class for all application errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ValidationError(RagChatError):
    """Raised when request parameters are out of range or malformed."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, details)


class IngestError(RagChatError):
    """Base class for document ingestion failures."""


class UnreadableDocumentError(IngestError):
    """The uploaded content could not be parsed into text."""


class EmptyDocumentError(IngestError):
    """Text extraction succeeded but produced nothing worth embedding."""


class UploadTooLargeError(IngestError):
    """The uploaded file exceeds ``max_upload_bytes``."""


class VectorStoreError(RagChatError):
    """The vector-store backend failed or is unreachable."""


class GenerationError(RagChatError):
    """The language-model call failed."""
