"""
Document Router

Endpoints for document upload (file or text), listing, detail, semantic
search and deletion.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_ingestion_service, get_question_generator, get_retriever
from src.api.errors import to_http_exception
from src.core.config import settings
from src.core.database import get_db
from src.core.exceptions import CompletionError, LexStudyError
from src.models.document import DifficultyLevel, Document, DocumentType
from src.repositories.chunk import ChunkRepository
from src.repositories.document import DocumentRepository
from src.repositories.question import QuestionRepository
from src.schemas.document import (
    DeleteResponse,
    DocumentListResponse,
    DocumentResponse,
    IngestionResult,
    TextUploadRequest,
    UploadResponse,
    VectorStoreStatus,
)
from src.schemas.question import QuestionSource
from src.schemas.search import SearchRequest, SearchResponse
from src.services.ingestion import IngestionError, IngestionService
from src.services.questions import QuestionGenerator
from src.services.retrieval import SemanticRetriever

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/documents")


def _build_document_response(doc: Document, num_chunks: int = 0) -> DocumentResponse:
    """Build a DocumentResponse from a Document row."""
    return DocumentResponse(
        id=doc.id,
        title=doc.title,
        document_type=doc.document_type,
        legal_areas=doc.legal_areas,
        key_concepts=doc.key_concepts,
        difficulty=doc.difficulty,
        articles=doc.articles,
        cases=doc.cases,
        source=doc.source,
        file_name=doc.file_name,
        file_size=doc.file_size,
        mime_type=doc.mime_type,
        processed=doc.processed,
        created_at=doc.created_at,
        num_chunks=num_chunks,
    )


async def _generate_questions(
    document: Document,
    generator: QuestionGenerator,
    session: AsyncSession,
    count: int,
) -> int:
    """Generate and store questions for a freshly ingested document.

    The upload already succeeded, so model failures only skip this step.
    """
    source = QuestionSource(
        id=document.id,
        title=document.title,
        content=document.content or "",
        legal_areas=document.legal_areas,
        difficulty=document.difficulty,
        persisted=True,
    )
    try:
        questions = await generator.generate_from_document(source, count)
    except CompletionError as exc:
        logger.warning("Question generation skipped for %s: %s", document.id, exc)
        return 0

    await QuestionRepository(session).create_many(questions)
    await session.commit()
    return len(questions)


def _upload_response(
    document: Document, result: IngestionResult, questions_generated: int
) -> UploadResponse:
    return UploadResponse(
        document_id=document.id,
        title=document.title,
        document_type=document.document_type,
        legal_areas=document.legal_areas,
        difficulty=document.difficulty,
        chunks_created=result.chunk_count,
        fragment_ids=result.fragment_ids,
        questions_generated=questions_generated,
        message=f"Documento procesado: {result.chunk_count} fragmentos indexados",
    )


@router.post("/upload", response_model=UploadResponse)
async def upload_document(
    file: UploadFile = File(...),
    generate_questions: bool = Form(True),
    question_count: int = Form(settings.QUESTION_DEFAULT_COUNT, ge=1, le=20),
    session: AsyncSession = Depends(get_db),
    ingestion_svc: IngestionService = Depends(get_ingestion_service),
    generator: QuestionGenerator = Depends(get_question_generator),
) -> UploadResponse:
    """Upload a legal document (txt, md, pdf, docx, html) and index it.

    Runs: extract → analyze → chunk → embed → store, then optionally
    generates study questions from the content.
    """
    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")

    try:
        document, result = await ingestion_svc.ingest_file(
            file_name=file.filename or "documento",
            data=data,
            session=session,
            mime_type=file.content_type,
        )
    except LexStudyError as exc:
        raise to_http_exception(exc) from exc

    questions_generated = 0
    if generate_questions:
        questions_generated = await _generate_questions(
            document, generator, session, question_count
        )
    return _upload_response(document, result, questions_generated)


@router.post("/upload-text", response_model=UploadResponse)
async def upload_text(
    request: TextUploadRequest,
    session: AsyncSession = Depends(get_db),
    ingestion_svc: IngestionService = Depends(get_ingestion_service),
    generator: QuestionGenerator = Depends(get_question_generator),
) -> UploadResponse:
    """Index manually submitted text."""
    try:
        document, result = await ingestion_svc.ingest_text(
            content=request.content,
            session=session,
            title=request.title,
            document_type=request.document_type,
            file_name=request.file_name,
        )
    except IngestionError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except LexStudyError as exc:
        raise to_http_exception(exc) from exc

    questions_generated = 0
    if request.generate_questions:
        questions_generated = await _generate_questions(
            document, generator, session, request.question_count
        )
    return _upload_response(document, result, questions_generated)


@router.get("/status", response_model=VectorStoreStatus)
async def vector_store_status(
    session: AsyncSession = Depends(get_db),
) -> VectorStoreStatus:
    """Whether the fragment store is ready to accept documents."""
    try:
        ready = await ChunkRepository(session).collection_exists()
    except LexStudyError as exc:
        logger.warning("Vector store status check failed: %s", exc)
        return VectorStoreStatus(ready=False, message=exc.message)
    message = "Vector store ready" if ready else "Vector store not initialized"
    return VectorStoreStatus(ready=ready, message=message)


@router.get("", response_model=DocumentListResponse)
async def list_documents(
    document_type: DocumentType | None = None,
    legal_area: str | None = None,
    difficulty: DifficultyLevel | None = None,
    session: AsyncSession = Depends(get_db),
) -> DocumentListResponse:
    """List documents, newest first, with optional filters."""
    documents = await DocumentRepository(session).get_all(
        document_type=document_type, legal_area=legal_area, difficulty=difficulty
    )
    counts = await ChunkRepository(session).count_by_document_ids([doc.id for doc in documents])
    return DocumentListResponse(
        documents=[_build_document_response(doc, counts.get(doc.id, 0)) for doc in documents],
        total=len(documents),
    )


@router.post("/search", response_model=SearchResponse)
async def search_documents(
    request: SearchRequest,
    retriever: SemanticRetriever = Depends(get_retriever),
) -> SearchResponse:
    """Semantic search over indexed fragments."""
    try:
        results = await retriever.search(request.query, request.limit)
    except LexStudyError as exc:
        raise to_http_exception(exc) from exc
    return SearchResponse(query=request.query, results=results, total=len(results))


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: uuid.UUID,
    session: AsyncSession = Depends(get_db),
) -> DocumentResponse:
    """Get details for a specific document."""
    document = await DocumentRepository(session).get_by_id(document_id)
    if document is None:
        raise HTTPException(status_code=404, detail=f"Document {document_id} not found")

    counts = await ChunkRepository(session).count_by_document_ids([document.id])
    return _build_document_response(document, counts.get(document.id, 0))


@router.delete("/{document_id}", response_model=DeleteResponse)
async def delete_document(
    document_id: uuid.UUID,
    session: AsyncSession = Depends(get_db),
) -> DeleteResponse:
    """Delete a document and every fragment indexed for it."""
    doc_repo = DocumentRepository(session)
    document = await doc_repo.get_by_id(document_id)
    if document is None:
        raise HTTPException(status_code=404, detail=f"Document {document_id} not found")

    chunk_repo = ChunkRepository(session)
    fragment_ids = await chunk_repo.get_ids_by_document_id(document_id)
    deleted = 0
    try:
        for fragment_id in fragment_ids:
            if await chunk_repo.delete(fragment_id):
                deleted += 1
        await doc_repo.delete(document)
        await session.commit()
    except LexStudyError as exc:
        await session.rollback()
        raise to_http_exception(exc) from exc

    logger.info("Deleted document %s (%d/%d fragments)", document_id, deleted, len(fragment_ids))
    return DeleteResponse(
        document_id=document_id,
        deleted=deleted,
        total=len(fragment_ids),
        message=f"{deleted}/{len(fragment_ids)} fragmentos eliminados",
    )
