"""
Collaborator Protocols

Structural interfaces for the capabilities the ingestion and RAG services
depend on. Concrete implementations live in services/, repositories/ and
clients/; tests substitute mocks that satisfy the same shape.
"""

from typing import Any, Protocol, runtime_checkable

from src.schemas.search import SearchResult


@runtime_checkable
class TextExtractor(Protocol):
    """Turns raw file bytes into plain text."""

    def extract(self, file_bytes: bytes, file_extension: str) -> str:
        """Extract text, raising UnsupportedFormatError or ExtractionFailedError."""
        ...


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Encodes text into dense vectors."""

    @property
    def dimension(self) -> int:
        """Return the embedding dimension."""
        ...

    def embed_text(self, text: str) -> list[float]:
        """Embed a single text."""
        ...

    async def embed_batched(self, texts: list[str]) -> list[list[float]]:
        """Embed texts in fixed-size batches with an inter-batch delay."""
        ...


@runtime_checkable
class VectorStore(Protocol):
    """Stores fragment vectors and answers similarity queries."""

    async def upsert(self, fragment_id: str, vector: list[float], payload: dict[str, Any]) -> str:
        """Insert or replace a fragment; returns its id."""
        ...

    async def search(
        self, query_vector: list[float], limit: int, document_id: str | None = None
    ) -> list[SearchResult]:
        """Return fragments ordered by descending similarity."""
        ...

    async def delete(self, fragment_id: str) -> bool:
        """Delete a fragment; True if it existed."""
        ...

    async def collection_exists(self) -> bool:
        """Whether the backing collection is ready to use."""
        ...


@runtime_checkable
class CompletionProvider(Protocol):
    """Produces free-form or JSON completions from a chat model."""

    async def complete(
        self,
        prompt: str | list[dict[str, str]],
        system: str | None = None,
    ) -> str:
        """Return the assistant's reply text."""
        ...
