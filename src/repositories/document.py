"""
Document Repository

Database access layer for document CRUD operations.
All SQL operations go through this repository, never in services or routers.
"""

import logging
import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.chunk import Chunk  # noqa: F401  # registers the relationship target
from src.models.document import DifficultyLevel, Document, DocumentType

logger = logging.getLogger(__name__)


class DocumentRepository:
    """Repository for Document CRUD operations.

    Args:
        session: Async SQLAlchemy session (injected per request).
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, document: Document) -> Document:
        """Insert a new document and flush so its id is usable."""
        self._session.add(document)
        await self._session.flush()
        logger.info("Created document %s (%r)", document.id, document.title)
        return document

    async def get_by_id(self, document_id: uuid.UUID) -> Document | None:
        """Fetch a document by ID.

        Returns:
            Document if found, None otherwise.
        """
        stmt = select(Document).where(Document.id == document_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_all(
        self,
        document_type: DocumentType | None = None,
        legal_area: str | None = None,
        difficulty: DifficultyLevel | None = None,
    ) -> list[Document]:
        """List documents, newest first, with optional filters.

        Args:
            document_type: Keep only this type.
            legal_area: Keep documents whose legal_areas contain this
                value (case-insensitive).
            difficulty: Keep only this difficulty.
        """
        stmt = select(Document).order_by(Document.created_at.desc())
        if document_type is not None:
            stmt = stmt.where(Document.document_type == document_type)
        if difficulty is not None:
            stmt = stmt.where(Document.difficulty == difficulty)

        result = await self._session.execute(stmt)
        documents = list(result.scalars().all())

        if legal_area:
            needle = legal_area.strip().lower()
            documents = [
                doc for doc in documents if any(needle in area.lower() for area in doc.legal_areas)
            ]
        return documents

    async def update_processed(self, document_id: uuid.UUID, processed: bool) -> None:
        """Update the processed flag for a document."""
        stmt = update(Document).where(Document.id == document_id).values(processed=processed)
        await self._session.execute(stmt)
        logger.info("Updated document %s processed=%s", document_id, processed)

    async def delete(self, document: Document) -> None:
        """Delete a document row (its chunks cascade)."""
        await self._session.delete(document)
        await self._session.flush()
        logger.info("Deleted document %s", document.id)
