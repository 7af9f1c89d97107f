"""
Ingestion Service

Orchestrates document ingestion:
extract → analyze → chunk → validate → embed → index.

DocumentIngestionPipeline holds the chunk-to-fragment hand-off and only
talks to collaborator protocols; IngestionService adds extraction,
analysis and the relational document record.
"""

import logging
import uuid
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import settings
from src.core.exceptions import IndexingError, UnsupportedFormatError, VectorStoreError
from src.core.protocols import CompletionProvider, EmbeddingProvider, TextExtractor, VectorStore
from src.models.document import Document, DocumentType
from src.repositories.chunk import ChunkRepository
from src.repositories.document import DocumentRepository
from src.schemas.document import DocumentProfile, FileInfo, IngestionResult
from src.services.analysis import DocumentAnalyzer
from src.services.chunking import DocumentChunker
from src.services.extraction import MIME_TYPES, DocumentTextExtractor, normalize_extension

logger = logging.getLogger(__name__)


class IngestionError(Exception):
    """Base exception for ingestion service errors."""


def fragment_id_for(chunk_id: str) -> str:
    """Deterministic fragment UUID for a chunk id."""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, chunk_id))


class DocumentIngestionPipeline:
    """Chunks one document and hands every chunk to the vector store.

    Chunk boundaries and metadata are fixed before any side effect. Fragments
    are written in chunk order and never updated or deleted here, so a
    failure leaves the earlier fragments in place (reported, not rolled back).

    Args:
        embedder: Embedding provider (batched).
        store: Vector store receiving the fragments.
        chunker: DocumentChunker; a default one is created when omitted.
    """

    def __init__(
        self,
        embedder: EmbeddingProvider,
        store: VectorStore,
        chunker: DocumentChunker | None = None,
    ) -> None:
        self._embedder = embedder
        self._store = store
        self._chunker = chunker or DocumentChunker()

    async def ingest(
        self,
        text: str,
        profile: DocumentProfile,
        file_info: FileInfo,
        document_id: str,
        max_chunk_size: int,
        overlap: int,
        created_at: datetime | None = None,
    ) -> IngestionResult:
        """Run chunk → embed → index for one document.

        Args:
            text: Extracted document text.
            profile: Document analysis copied into every chunk's metadata.
            file_info: Upload details copied into every chunk's metadata.
            document_id: Parent document id.
            max_chunk_size: Hard chunk size limit in characters.
            overlap: Overlap budget in characters.
            created_at: Timestamp recorded in metadata (defaults to now, UTC).

        Returns:
            IngestionResult with the chunks and their fragment ids, in order.

        Raises:
            EmbeddingError: If the chunks cannot be embedded (nothing indexed).
            IndexingError: If the store rejects a chunk; carries the failing
                chunk index and the ids already indexed.
        """
        created_at = created_at or datetime.now(UTC).replace(tzinfo=None)
        chunks = self._chunker.chunk_document(
            text=text,
            profile=profile,
            file_info=file_info,
            document_id=document_id,
            created_at=created_at,
            max_chunk_size=max_chunk_size,
            overlap=overlap,
        )
        if not chunks:
            return IngestionResult(document_id=document_id)

        vectors = await self._embedder.embed_batched([chunk.text for chunk in chunks])

        fragment_ids: list[str] = []
        for chunk, vector in zip(chunks, vectors, strict=True):
            payload = {**chunk.metadata.to_payload(), "content": chunk.text}
            try:
                fragment_id = await self._store.upsert(
                    fragment_id_for(chunk.metadata.chunk_id), vector, payload
                )
            except VectorStoreError as exc:
                logger.error(
                    "Indexing failed at chunk %d/%d of document %s (%d already indexed)",
                    chunk.chunk_index + 1,
                    len(chunks),
                    document_id,
                    len(fragment_ids),
                )
                raise IndexingError(
                    f"Failed to index chunk {chunk.chunk_index}: {exc.message}",
                    chunk_index=chunk.chunk_index,
                    indexed_ids=fragment_ids,
                ) from exc
            fragment_ids.append(fragment_id)

        logger.info("Indexed %d fragments for document %s", len(fragment_ids), document_id)
        return IngestionResult(document_id=document_id, chunks=chunks, fragment_ids=fragment_ids)


class IngestionService:
    """End-to-end ingestion of uploaded files and manual text.

    Pipeline steps:
        1. Extract text (files only)
        2. Analyze the document (title, type, areas, difficulty, references)
        3. Create the Document record
        4. Chunk, embed and index via DocumentIngestionPipeline
        5. Mark the document as processed and commit

    Args:
        embedding_service: Pre-initialized embedding provider (model loaded once).
        completion: Chat model used by the analyzer.
        extractor: Text extractor; defaults to DocumentTextExtractor.
        chunker: DocumentChunker; defaults to a new one.
    """

    def __init__(
        self,
        embedding_service: EmbeddingProvider,
        completion: CompletionProvider,
        extractor: TextExtractor | None = None,
        chunker: DocumentChunker | None = None,
    ) -> None:
        self._embedding_service = embedding_service
        self._extractor = extractor or DocumentTextExtractor()
        self._analyzer = DocumentAnalyzer(completion)
        self._chunker = chunker or DocumentChunker()

    async def ingest_file(
        self,
        file_name: str,
        data: bytes,
        session: AsyncSession,
        mime_type: str | None = None,
    ) -> tuple[Document, IngestionResult]:
        """Ingest an uploaded file.

        Args:
            file_name: Original file name (its extension selects the extractor).
            data: File content.
            session: Async DB session for the transaction.
            mime_type: Content type reported by the client.

        Returns:
            Tuple of (Document, IngestionResult).

        Raises:
            UnsupportedFormatError: If the extension is not allowed.
            ExtractionFailedError: If no text could be extracted.
            EmbeddingError / IndexingError: On collaborator failures.
        """
        extension = normalize_extension(file_name)
        if extension not in settings.ALLOWED_EXTENSIONS:
            raise UnsupportedFormatError(
                extension, {"allowed": ", ".join(settings.ALLOWED_EXTENSIONS)}
            )

        text = self._extractor.extract(data, extension)
        file_info = FileInfo(
            file_name=file_name,
            file_size=len(data),
            mime_type=mime_type or MIME_TYPES.get(extension, "application/octet-stream"),
            source="Upload",
        )
        return await self._ingest(
            text,
            file_info,
            session,
            max_chunk_size=settings.FILE_CHUNK_SIZE,
            overlap=settings.FILE_CHUNK_OVERLAP,
        )

    async def ingest_text(
        self,
        content: str,
        session: AsyncSession,
        title: str | None = None,
        document_type: DocumentType | None = None,
        file_name: str = "documento_manual.txt",
    ) -> tuple[Document, IngestionResult]:
        """Ingest manually submitted text.

        Raises:
            IngestionError: If the content is blank.
            EmbeddingError / IndexingError: On collaborator failures.
        """
        if not content.strip():
            raise IngestionError("Content is empty")

        file_info = FileInfo(
            file_name=file_name,
            file_size=len(content),
            mime_type="text/plain",
            source="Manual",
        )
        return await self._ingest(
            content,
            file_info,
            session,
            max_chunk_size=settings.TEXT_CHUNK_SIZE,
            overlap=settings.TEXT_CHUNK_OVERLAP,
            title=title,
            document_type=document_type,
        )

    async def _ingest(
        self,
        text: str,
        file_info: FileInfo,
        session: AsyncSession,
        max_chunk_size: int,
        overlap: int,
        title: str | None = None,
        document_type: DocumentType | None = None,
    ) -> tuple[Document, IngestionResult]:
        profile = await self._analyzer.profile(
            text, file_info.file_name, title=title, document_type=document_type
        )

        doc_repo = DocumentRepository(session)
        document = Document(
            title=profile.title,
            document_type=profile.document_type,
            legal_areas=profile.legal_areas,
            key_concepts=profile.key_concepts,
            difficulty=profile.difficulty,
            articles=profile.articles,
            cases=profile.cases,
            source=file_info.source,
            file_name=file_info.file_name,
            file_size=file_info.file_size,
            mime_type=file_info.mime_type,
            total_characters=len(text),
            content=text,
            processed=False,
        )
        await doc_repo.create(document)

        pipeline = DocumentIngestionPipeline(
            embedder=self._embedding_service,
            store=ChunkRepository(session),
            chunker=self._chunker,
        )
        try:
            result = await pipeline.ingest(
                text=text,
                profile=profile,
                file_info=file_info,
                document_id=str(document.id),
                max_chunk_size=max_chunk_size,
                overlap=overlap,
                created_at=document.created_at,
            )
        except IndexingError:
            # Keep the fragments written so far; the document stays unprocessed.
            await session.commit()
            raise

        await doc_repo.update_processed(document.id, True)
        document.processed = True
        await session.commit()

        logger.info(
            "Ingestion complete: %r → %d chunks stored (doc_id=%s)",
            document.title,
            result.chunk_count,
            document.id,
        )
        return document, result
