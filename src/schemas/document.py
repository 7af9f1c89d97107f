"""
Document Schemas

Pydantic schemas for document upload, analysis profile, listing and deletion.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from src.models.document import DifficultyLevel, DocumentType
from src.schemas.chunking import ChunkData


class DocumentProfile(BaseModel):
    """Analysis of a document's content, produced before chunking.

    Attributes:
        title: Inferred or supplied title.
        document_type: Inferred or supplied type.
        legal_areas: Areas of law (at least "General").
        key_concepts: Main concepts.
        difficulty: Study difficulty.
        articles: Article references.
        cases: Case references.
    """

    title: str = "Documento Legal"
    document_type: DocumentType = DocumentType.STUDY_MATERIAL
    legal_areas: list[str] = Field(default_factory=lambda: ["General"])
    key_concepts: list[str] = Field(default_factory=list)
    difficulty: DifficultyLevel = DifficultyLevel.INTERMEDIATE
    articles: list[str] = Field(default_factory=list)
    cases: list[str] = Field(default_factory=list)


class FileInfo(BaseModel):
    """Where a document's text came from.

    Attributes:
        file_name: Original file name.
        file_size: Size in bytes (characters for manual text).
        mime_type: MIME type.
        source: "Upload" or "Manual".
    """

    file_name: str
    file_size: int = 0
    mime_type: str = "text/plain"
    source: str = "Upload"


class IngestionResult(BaseModel):
    """Outcome of running one document through the ingestion pipeline.

    Attributes:
        document_id: Parent document id.
        chunks: Chunks produced, in order.
        fragment_ids: Ids returned by the vector store, one per chunk.
    """

    document_id: str
    chunks: list[ChunkData] = Field(default_factory=list)
    fragment_ids: list[str] = Field(default_factory=list)

    @property
    def chunk_count(self) -> int:
        """Number of chunks indexed."""
        return len(self.fragment_ids)


class TextUploadRequest(BaseModel):
    """Request body for manual text upload.

    Attributes:
        content: Raw document text.
        title: Optional title (inferred when omitted).
        document_type: Optional type (inferred when omitted).
        file_name: Name to record for the text.
        generate_questions: Whether to generate study questions after ingestion.
        question_count: How many questions to generate.
    """

    content: str = Field(..., min_length=1)
    title: str | None = Field(None, max_length=500)
    document_type: DocumentType | None = None
    file_name: str = "documento_manual.txt"
    generate_questions: bool = True
    question_count: int = Field(5, ge=1, le=20)


class UploadResponse(BaseModel):
    """Response after a document is ingested.

    Attributes:
        document_id: UUID of the created document.
        title: Document title.
        document_type: Document type.
        legal_areas: Areas of law.
        difficulty: Difficulty level.
        chunks_created: Number of indexed fragments.
        fragment_ids: Ids of the indexed fragments, in chunk order.
        questions_generated: Number of questions generated alongside.
        message: Human-readable status message.
    """

    document_id: uuid.UUID
    title: str
    document_type: DocumentType
    legal_areas: list[str]
    difficulty: DifficultyLevel
    chunks_created: int
    fragment_ids: list[str] = Field(default_factory=list)
    questions_generated: int = 0
    message: str


class DocumentResponse(BaseModel):
    """Detailed document representation."""

    id: uuid.UUID
    title: str
    document_type: DocumentType
    legal_areas: list[str]
    key_concepts: list[str]
    difficulty: DifficultyLevel
    articles: list[str]
    cases: list[str]
    source: str
    file_name: str
    file_size: int
    mime_type: str
    processed: bool
    created_at: datetime
    num_chunks: int = 0


class DocumentListResponse(BaseModel):
    """Response for listing documents."""

    documents: list[DocumentResponse]
    total: int


class DeleteResponse(BaseModel):
    """Outcome of deleting a document's fragments.

    Attributes:
        document_id: UUID of the document.
        deleted: Fragments removed.
        total: Fragments the document had.
        message: "x/y" summary.
    """

    document_id: uuid.UUID
    deleted: int
    total: int
    message: str


class VectorStoreStatus(BaseModel):
    """Readiness of the fragment store."""

    ready: bool
    message: str
