"""
Chunk Repository

pgvector-backed fragment store: upsert, cosine similarity search and
deletion. All SQL for chunks goes through this repository, never in
services or routers.
"""

import logging
import uuid
from typing import Any

from sqlalchemy import delete, func, select, text
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import VectorStoreError
from src.models.chunk import Chunk
from src.schemas.search import SearchResult

logger = logging.getLogger(__name__)

_SEARCH_SQL = """
    SELECT id, content, metadata AS payload, (1 - (embedding <=> :embedding)) AS similarity
    FROM chunks
    WHERE embedding IS NOT NULL {document_filter}
    ORDER BY embedding <=> :embedding
    LIMIT :limit
"""


class ChunkRepository:
    """Vector store over the ``chunks`` table.

    Args:
        session: Async SQLAlchemy session (injected per request).
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def upsert(self, fragment_id: str, vector: list[float], payload: dict[str, Any]) -> str:
        """Insert a fragment, replacing any existing row with the same id.

        Args:
            fragment_id: Fragment UUID as a string.
            vector: Embedding vector.
            payload: Boundary map; must carry ``content``, ``document_id``,
                ``chunk_id`` and ``chunk_index``.

        Returns:
            The fragment id.

        Raises:
            VectorStoreError: On database errors or an incomplete payload.
        """
        try:
            metadata = {key: value for key, value in payload.items() if key != "content"}
            values = {
                "id": uuid.UUID(fragment_id),
                "document_id": uuid.UUID(str(payload["document_id"])),
                "chunk_id": str(payload["chunk_id"]),
                "chunk_index": int(payload["chunk_index"]),
                "content": str(payload["content"]),
                "embedding": vector,
                "metadata": metadata,
            }
        except (KeyError, ValueError) as exc:
            raise VectorStoreError(
                f"Invalid fragment payload: {exc}", {"fragment_id": fragment_id}
            ) from exc

        stmt = insert(Chunk.__table__).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["id"],
            set_={
                "content": stmt.excluded["content"],
                "embedding": stmt.excluded["embedding"],
                "metadata": stmt.excluded["metadata"],
            },
        )

        # Savepoint: a failed fragment must not poison fragments already written.
        try:
            async with self._session.begin_nested():
                await self._session.execute(stmt)
        except SQLAlchemyError as exc:
            raise VectorStoreError(
                f"Failed to upsert fragment: {exc}", {"fragment_id": fragment_id}
            ) from exc

        logger.debug("Upserted fragment %s", fragment_id)
        return fragment_id

    async def search(
        self,
        query_vector: list[float],
        limit: int,
        document_id: str | None = None,
    ) -> list[SearchResult]:
        """Find the most similar fragments using cosine distance.

        Uses pgvector's <=> operator (cosine distance); similarity = 1 - distance.

        Args:
            query_vector: Query embedding.
            limit: Number of results to return.
            document_id: Optional filter to restrict search to a document.

        Returns:
            SearchResults, highest similarity first.

        Raises:
            VectorStoreError: On database errors.
        """
        params: dict[str, object] = {
            "embedding": f"[{','.join(str(v) for v in query_vector)}]",
            "limit": limit,
        }
        document_filter = ""
        if document_id is not None:
            document_filter = "AND document_id = :doc_id"
            params["doc_id"] = str(document_id)

        try:
            result = await self._session.execute(
                text(_SEARCH_SQL.format(document_filter=document_filter)), params
            )
            rows = result.fetchall()
        except SQLAlchemyError as exc:
            raise VectorStoreError(f"Similarity search failed: {exc}") from exc

        return [
            SearchResult(
                id=str(row.id),
                content=row.content,
                score=float(row.similarity),
                metadata=dict(row.payload or {}),
            )
            for row in rows
        ]

    async def delete(self, fragment_id: str) -> bool:
        """Delete one fragment.

        Returns:
            True if a row was deleted.

        Raises:
            VectorStoreError: On database errors.
        """
        try:
            stmt = delete(Chunk).where(Chunk.id == uuid.UUID(fragment_id))
            cursor = await self._session.execute(stmt)
        except (SQLAlchemyError, ValueError) as exc:
            raise VectorStoreError(
                f"Failed to delete fragment: {exc}", {"fragment_id": fragment_id}
            ) from exc
        return int(cursor.rowcount) > 0  # type: ignore[attr-defined]

    async def collection_exists(self) -> bool:
        """Whether the chunks table exists (migrations applied)."""
        try:
            result = await self._session.execute(text("SELECT to_regclass('public.chunks')"))
        except SQLAlchemyError as exc:
            raise VectorStoreError(f"Failed to inspect vector store: {exc}") from exc
        return result.scalar() is not None

    async def get_ids_by_document_id(self, document_id: uuid.UUID) -> list[str]:
        """Fragment ids of a document, in chunk order."""
        stmt = (
            select(Chunk.id).where(Chunk.document_id == document_id).order_by(Chunk.chunk_index)
        )
        result = await self._session.execute(stmt)
        return [str(fragment_id) for fragment_id in result.scalars().all()]

    async def count_by_document_ids(self, document_ids: list[uuid.UUID]) -> dict[uuid.UUID, int]:
        """Number of fragments per document."""
        if not document_ids:
            return {}
        stmt = (
            select(Chunk.document_id, func.count(Chunk.id))
            .where(Chunk.document_id.in_(document_ids))
            .group_by(Chunk.document_id)
        )
        result = await self._session.execute(stmt)
        return {row[0]: int(row[1]) for row in result.all()}
