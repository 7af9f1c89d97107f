"""
Chunk Model

A stored fragment of a document: its text, embedding and boundary payload.
"""

import uuid
from datetime import UTC, datetime
from typing import Any

from pgvector.sqlalchemy import Vector
from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.config import settings
from src.models.base import Base


class Chunk(Base):
    """
    Indexed document fragment.

    Fields:
        id: Deterministic fragment id (uuid5 of chunk_id)
        document_id: Foreign key to Document
        chunk_id: "{document_id}_chunk_{chunk_index}"
        content: Fragment text (never longer than the configured chunk size)
        embedding: Vector embedding
        chunk_index: 0-based position within the document
        metadata: Payload map (title, legal_areas, difficulty, ...)
        created_at: Record creation timestamp
    """

    __tablename__ = "chunks"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False
    )
    chunk_id: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    embedding: Mapped[Any] = mapped_column(Vector(settings.EMBEDDING_DIMENSION), nullable=False)
    chunk_index: Mapped[int] = mapped_column(Integer, nullable=False)
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSONB, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        nullable=False, default=lambda: datetime.now(UTC).replace(tzinfo=None)
    )

    # Relationships
    document: Mapped["Document"] = relationship(  # type: ignore[name-defined]  # noqa: F821
        "Document", back_populates="chunks"
    )

    def __repr__(self) -> str:
        return f"<Chunk #{self.chunk_index} {self.chunk_id} id={self.id}>"
