"""
Chunking Schemas

Typed per-chunk metadata, chunk output and the size report produced by the
chunk validator. The weakly-typed payload map only exists at the vector
store boundary (see ChunkMetadata.to_payload).
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.models.document import DifficultyLevel, DocumentType


def chunk_id_for(document_id: str, chunk_index: int) -> str:
    """Deterministic chunk id for a (document, index) pair."""
    return f"{document_id}_chunk_{chunk_index}"


def _split_list(value: Any) -> list[str]:
    if isinstance(value, list):
        return [str(v) for v in value]
    return [part.strip() for part in str(value or "").split(",") if part.strip()]


class ChunkMetadata(BaseModel):
    """Metadata attached to every chunk of a document.

    Attributes:
        title: Document title.
        document_type: DocumentType of the source.
        legal_areas: Areas of law covered.
        key_concepts: Main concepts.
        difficulty: DifficultyLevel.
        articles: Article references.
        cases: Case references.
        source: "Upload" or "Manual".
        created_at: Ingestion timestamp.
        document_id: Parent document id.
        chunk_index: 0-based position of the chunk.
        chunk_id: "{document_id}_chunk_{chunk_index}".
        total_chunks: Number of chunks of the document.
        file_name: Original file name.
        file_size: Size in bytes (characters for manual text).
        mime_type: MIME type of the upload.
    """

    model_config = ConfigDict(frozen=True)

    title: str
    document_type: DocumentType = DocumentType.STUDY_MATERIAL
    legal_areas: list[str] = Field(default_factory=list)
    key_concepts: list[str] = Field(default_factory=list)
    difficulty: DifficultyLevel = DifficultyLevel.INTERMEDIATE
    articles: list[str] = Field(default_factory=list)
    cases: list[str] = Field(default_factory=list)
    source: str = "Upload"
    created_at: datetime
    document_id: str
    chunk_index: int = Field(..., ge=0)
    chunk_id: str
    total_chunks: int = Field(..., ge=1)
    file_name: str = ""
    file_size: int = 0
    mime_type: str = "text/plain"

    def to_payload(self) -> dict[str, Any]:
        """Render the boundary map stored next to the vector.

        Lists are comma-joined and the timestamp is ISO-8601, so the payload
        stays flat and JSON-safe. ``category`` mirrors the document type for
        context headers.
        """
        return {
            "title": self.title,
            "document_type": self.document_type.value,
            "category": self.document_type.value,
            "legal_areas": ",".join(self.legal_areas),
            "key_concepts": ",".join(self.key_concepts),
            "difficulty": self.difficulty.value,
            "articles": ",".join(self.articles),
            "cases": ",".join(self.cases),
            "source": self.source,
            "created_at": self.created_at.isoformat(),
            "document_id": self.document_id,
            "chunk_index": self.chunk_index,
            "chunk_id": self.chunk_id,
            "total_chunks": self.total_chunks,
            "file_name": self.file_name,
            "file_size": self.file_size,
            "mime_type": self.mime_type,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ChunkMetadata":
        """Rebuild typed metadata from a stored payload map."""
        return cls(
            title=str(payload.get("title", "")),
            document_type=payload.get("document_type", DocumentType.STUDY_MATERIAL),
            legal_areas=_split_list(payload.get("legal_areas")),
            key_concepts=_split_list(payload.get("key_concepts")),
            difficulty=payload.get("difficulty", DifficultyLevel.INTERMEDIATE),
            articles=_split_list(payload.get("articles")),
            cases=_split_list(payload.get("cases")),
            source=str(payload.get("source", "Upload")),
            created_at=payload.get("created_at") or datetime.min,
            document_id=str(payload.get("document_id", "")),
            chunk_index=int(payload.get("chunk_index", 0)),
            chunk_id=str(payload.get("chunk_id", "")),
            total_chunks=int(payload.get("total_chunks", 1)),
            file_name=str(payload.get("file_name", "")),
            file_size=int(payload.get("file_size", 0)),
            mime_type=str(payload.get("mime_type", "text/plain")),
        )


class ChunkData(BaseModel):
    """Output of the chunking process for a single chunk.

    Attributes:
        text: Chunk text, at most max_chunk_size characters.
        chunk_index: 0-based position within the document.
        total_chunks: Number of chunks produced for the document.
        metadata: Typed metadata.
    """

    model_config = ConfigDict(frozen=True)

    text: str = Field(..., min_length=1)
    chunk_index: int = Field(..., ge=0)
    total_chunks: int = Field(..., ge=1)
    metadata: ChunkMetadata


class ChunkReport(BaseModel):
    """Advisory size report for a chunk sequence.

    Attributes:
        count: Number of chunks.
        average_size: Mean chunk length in characters.
        max_size: Longest chunk in characters.
        oversized_count: Chunks above the soft warning threshold.
        oversized_max: Longest of those chunks (0 when none).
        threshold: Soft warning threshold used.
        estimated_tokens: cl100k_base token count across all chunks.
    """

    count: int
    average_size: float
    max_size: int
    oversized_count: int
    oversized_max: int
    threshold: int
    estimated_tokens: int = 0
