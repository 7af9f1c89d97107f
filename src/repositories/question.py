"""
Question Repository

Persists generated study questions.
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.question import Question
from src.schemas.question import StudyQuestionData

logger = logging.getLogger(__name__)


class QuestionRepository:
    """Repository for generated questions.

    Args:
        session: Async SQLAlchemy session (injected per request).
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_many(self, questions: list[StudyQuestionData]) -> list[Question]:
        """Store generated questions.

        Returns:
            The ORM rows, tracked by the session (not committed).
        """
        rows = [
            Question(
                id=question.id,
                question_text=question.question_text,
                question_type=question.question_type,
                options=[option.model_dump() for option in question.options],
                correct_answer=question.correct_answer,
                explanation=question.explanation,
                legal_area=question.legal_area,
                related_concepts=question.related_concepts,
                difficulty=question.difficulty,
                source_document_id=question.source_document_id,
                created_at=question.created_at,
            )
            for question in questions
        ]
        self._session.add_all(rows)
        await self._session.flush()
        logger.info("Stored %d questions", len(rows))
        return rows

    async def get_by_document_id(self, document_id: uuid.UUID) -> list[Question]:
        """Questions generated from a document, oldest first."""
        stmt = (
            select(Question)
            .where(Question.source_document_id == document_id)
            .order_by(Question.created_at)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())
