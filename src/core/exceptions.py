"""
Exception Hierarchy

Collaborator-level errors shared by services, repositories and routers.
Every exception carries a message and an optional details dict so routers
can log and report context without parsing strings.
"""

from typing import Any


class LexStudyError(Exception):
    """Base exception for all LexStudy errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# --- Extraction ---


class ExtractionError(LexStudyError):
    """Base exception for text extraction failures."""


class UnsupportedFormatError(ExtractionError):
    """Raised when no extractor is registered for a file extension."""

    def __init__(self, extension: str, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["extension"] = extension
        self.extension = extension
        super().__init__(f"Unsupported file format: {extension or '<none>'}", details)


class ExtractionFailedError(ExtractionError):
    """Raised when a source is corrupt, empty or contains no readable text."""


# --- Embedding / indexing ---


class EmbeddingError(LexStudyError):
    """Raised when the embedding model fails to encode a batch."""


class VectorStoreError(LexStudyError):
    """Raised when a vector store operation fails."""


class IndexingError(LexStudyError):
    """Raised when a chunk cannot be handed to the vector store.

    Chunks before ``chunk_index`` are already indexed and are not rolled back.

    Attributes:
        chunk_index: Index of the chunk that failed.
        indexed_ids: Fragment ids stored before the failure, in chunk order.
    """

    def __init__(
        self,
        message: str,
        chunk_index: int,
        indexed_ids: list[str],
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        details["chunk_index"] = chunk_index
        details["indexed"] = len(indexed_ids)
        self.chunk_index = chunk_index
        self.indexed_ids = list(indexed_ids)
        super().__init__(message, details)


# --- Completion ---


class CompletionError(LexStudyError):
    """Raised when the completion provider is unreachable or keeps failing."""


class MalformedCompletionError(CompletionError):
    """Raised when a completion cannot be parsed into the expected JSON shape.

    Distinct from a well-formed response that simply contains zero items.
    """

    def __init__(self, message: str, raw: str = "", details: dict[str, Any] | None = None) -> None:
        details = details or {}
        if raw:
            details["raw_preview"] = raw[:200]
        self.raw = raw
        super().__init__(message, details)
