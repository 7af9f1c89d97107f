"""
Questions Router

Endpoints for generating study questions, follow-ups, answer grading and
tutor explanations.
"""

import logging
import uuid
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_question_generator, get_study_assistant
from src.api.errors import to_http_exception
from src.core.database import get_db
from src.core.exceptions import LexStudyError
from src.repositories.document import DocumentRepository
from src.repositories.question import QuestionRepository
from src.schemas.question import (
    DocumentQuestionsRequest,
    ExplainAnswerRequest,
    ExplanationResponse,
    FollowUpRequest,
    GenerateQuestionsRequest,
    QuestionListResponse,
    QuestionOption,
    QuestionSource,
    StudyQuestionData,
    SubmitAnswerRequest,
    SubmitAnswerResponse,
)
from src.services.questions import FALLBACK_EXPLANATION, QuestionGenerator, grade_answer
from src.services.tutor import StudyAssistant

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/questions")


@router.post("/generate", response_model=QuestionListResponse)
async def generate_questions(
    request: GenerateQuestionsRequest,
    generator: QuestionGenerator = Depends(get_question_generator),
) -> QuestionListResponse:
    """Generate questions from indexed material.

    With ``query``, from the fragments most similar to it; otherwise from
    fragments retrieved for each legal area.
    """
    try:
        if request.query and request.query.strip():
            questions = await generator.generate_from_search(
                request.query, request.legal_areas, request.difficulty, request.count
            )
        else:
            questions = await generator.generate_for_areas(
                request.legal_areas, request.difficulty, request.count
            )
    except LexStudyError as exc:
        raise to_http_exception(exc) from exc

    return QuestionListResponse(questions=questions, total=len(questions))


@router.post("/documents/{document_id}", response_model=QuestionListResponse)
async def generate_document_questions(
    document_id: uuid.UUID,
    request: DocumentQuestionsRequest,
    session: AsyncSession = Depends(get_db),
    generator: QuestionGenerator = Depends(get_question_generator),
) -> QuestionListResponse:
    """Generate and store questions from one stored document."""
    document = await DocumentRepository(session).get_by_id(document_id)
    if document is None:
        raise HTTPException(status_code=404, detail=f"Document {document_id} not found")
    if not document.content:
        raise HTTPException(status_code=400, detail="Document has no stored content")

    source = QuestionSource(
        id=document.id,
        title=document.title,
        content=document.content,
        legal_areas=document.legal_areas,
        difficulty=document.difficulty,
        persisted=True,
    )
    try:
        questions = await generator.generate_from_document(source, request.count)
    except LexStudyError as exc:
        raise to_http_exception(exc) from exc

    await QuestionRepository(session).create_many(questions)
    await session.commit()
    return QuestionListResponse(questions=questions, total=len(questions))


@router.get("/documents/{document_id}", response_model=QuestionListResponse)
async def list_document_questions(
    document_id: uuid.UUID,
    session: AsyncSession = Depends(get_db),
) -> QuestionListResponse:
    """Questions previously stored for a document, oldest first."""
    rows = await QuestionRepository(session).get_by_document_id(document_id)
    questions = [
        StudyQuestionData(
            id=row.id,
            question_text=row.question_text,
            question_type=row.question_type,
            options=[QuestionOption(**option) for option in row.options],
            correct_answer=row.correct_answer,
            explanation=row.explanation,
            legal_area=row.legal_area,
            related_concepts=row.related_concepts,
            difficulty=row.difficulty,
            source_document_id=row.source_document_id,
            created_at=row.created_at,
        )
        for row in rows
    ]
    return QuestionListResponse(questions=questions, total=len(questions))


@router.post("/follow-up", response_model=StudyQuestionData)
async def follow_up_question(
    request: FollowUpRequest,
    generator: QuestionGenerator = Depends(get_question_generator),
) -> StudyQuestionData:
    """Generate a deeper or simpler follow-up to an answered question."""
    try:
        return await generator.generate_follow_up(request.question, request.was_correct)
    except LexStudyError as exc:
        raise to_http_exception(exc) from exc


@router.post("/explain", response_model=ExplanationResponse)
async def explain_answer(
    request: ExplainAnswerRequest,
    assistant: StudyAssistant = Depends(get_study_assistant),
) -> ExplanationResponse:
    """Tutor explanation of why an answer was right or wrong."""
    try:
        explanation = await assistant.explain_answer(
            request.question_text,
            request.chosen_answer,
            request.correct_answer,
            request.was_correct,
        )
    except LexStudyError as exc:
        raise to_http_exception(exc) from exc
    return ExplanationResponse(explanation=explanation)


@router.post("/submit-answer", response_model=SubmitAnswerResponse)
async def submit_answer(request: SubmitAnswerRequest) -> SubmitAnswerResponse:
    """Grade an answer (trimmed, case-insensitive)."""
    return SubmitAnswerResponse(
        is_correct=grade_answer(request.user_answer, request.correct_answer),
        correct_answer=request.correct_answer,
        explanation=request.explanation or FALLBACK_EXPLANATION,
        timestamp=datetime.now(UTC),
    )
