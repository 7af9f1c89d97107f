"""
Question Model

Generated study question (multiple-choice or true/false).
"""

import enum
import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Enum, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base
from src.models.document import DifficultyLevel


class QuestionType(enum.StrEnum):
    """Exam question format."""

    MULTIPLE_CHOICE = "MultipleChoice"
    TRUE_FALSE = "TrueFalse"


class Question(Base):
    """
    Persisted study question.

    Fields:
        id: Unique identifier
        question_text: Statement shown to the student
        question_type: MultipleChoice or TrueFalse
        options: [{"id", "text", "is_correct"}]
        correct_answer: Option letter, or "True"/"False"
        explanation: Why the answer is correct
        legal_area: Comma-joined legal areas of the source
        related_concepts: Concepts the question exercises
        difficulty: DifficultyLevel
        source_document_id: Document the question was generated from (optional)
        created_at: Record creation timestamp
    """

    __tablename__ = "questions"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    question_text: Mapped[str] = mapped_column(Text, nullable=False)
    question_type: Mapped[QuestionType] = mapped_column(Enum(QuestionType), nullable=False)
    options: Mapped[list[Any]] = mapped_column(JSONB, nullable=False, default=list)
    correct_answer: Mapped[str] = mapped_column(Text, nullable=False)
    explanation: Mapped[str] = mapped_column(Text, nullable=False, default="")
    legal_area: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    related_concepts: Mapped[list[Any]] = mapped_column(JSONB, nullable=False, default=list)
    difficulty: Mapped[DifficultyLevel] = mapped_column(
        Enum(DifficultyLevel), nullable=False, default=DifficultyLevel.INTERMEDIATE
    )
    source_document_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("documents.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        nullable=False, default=lambda: datetime.now(UTC).replace(tzinfo=None)
    )

    def __repr__(self) -> str:
        return f"<Question {self.question_type} id={self.id}>"
