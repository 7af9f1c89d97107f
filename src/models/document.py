"""
Document Model

Represents an ingested legal document (law, code, ruling, study material).
"""

import enum
import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Boolean, Enum, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base


class DocumentType(enum.StrEnum):
    """Kind of legal source."""

    LAW = "Law"
    DECREE = "Decree"
    JURISPRUDENCE = "Jurisprudence"
    DOCTRINE = "Doctrine"
    CONSTITUTION = "Constitution"
    CODE = "Code"
    STUDY_MATERIAL = "StudyMaterial"
    CASE_STUDY = "CaseStudy"
    REGULATION = "Regulation"


class DifficultyLevel(enum.StrEnum):
    """Study difficulty of a document or question."""

    BASIC = "Basic"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class Document(Base):
    """
    Ingested legal document.

    Fields:
        id: Unique identifier
        title: Title (given by the uploader or inferred by the analyzer)
        document_type: DocumentType
        legal_areas: Areas of law covered (e.g. "Derecho Civil")
        key_concepts: Main legal concepts
        difficulty: DifficultyLevel
        articles: Article references found in the text
        cases: Case references found in the text
        source: "Upload" or "Manual"
        file_name / file_size / mime_type: Upload details
        total_characters: Length of the extracted text
        processed: Whether chunking/embedding completed
        created_at: Record creation timestamp
    """

    __tablename__ = "documents"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    document_type: Mapped[DocumentType] = mapped_column(
        Enum(DocumentType), nullable=False, default=DocumentType.STUDY_MATERIAL
    )
    legal_areas: Mapped[list[Any]] = mapped_column(JSONB, nullable=False, default=list)
    key_concepts: Mapped[list[Any]] = mapped_column(JSONB, nullable=False, default=list)
    difficulty: Mapped[DifficultyLevel] = mapped_column(
        Enum(DifficultyLevel), nullable=False, default=DifficultyLevel.INTERMEDIATE
    )
    articles: Mapped[list[Any]] = mapped_column(JSONB, nullable=False, default=list)
    cases: Mapped[list[Any]] = mapped_column(JSONB, nullable=False, default=list)
    source: Mapped[str] = mapped_column(String(50), nullable=False, default="Upload")
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False, default="text/plain")
    total_characters: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    processed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        nullable=False, default=lambda: datetime.now(UTC).replace(tzinfo=None)
    )

    # Relationships
    chunks: Mapped[list["Chunk"]] = relationship(  # type: ignore[name-defined]  # noqa: F821
        "Chunk", back_populates="document", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<Document {self.title!r} ({self.document_type}) id={self.id}>"
