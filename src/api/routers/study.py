"""
Study Router

RAG chat and study-assistant endpoints.
"""

import logging
import uuid
from datetime import UTC, datetime

from fastapi import APIRouter, Depends

from src.api.dependencies import get_study_assistant
from src.api.errors import to_http_exception
from src.core.exceptions import LexStudyError
from src.schemas.study import (
    ChatRequest,
    ChatResponse,
    ConceptRequest,
    PracticeQuestionsRequest,
    PracticeQuestionsResponse,
    StudyPlanRequest,
    TextResponse,
)
from src.services.tutor import StudyAssistant

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/study")


async def _chat(
    request: ChatRequest, assistant: StudyAssistant, use_retrieval: bool
) -> ChatResponse:
    try:
        reply, sources = await assistant.answer(
            request.message, request.history, use_retrieval=use_retrieval
        )
    except LexStudyError as exc:
        raise to_http_exception(exc) from exc
    return ChatResponse(
        response=reply,
        session_id=request.session_id or uuid.uuid4(),
        sources_used=sources,
        timestamp=datetime.now(UTC),
    )


@router.post("/chat", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    assistant: StudyAssistant = Depends(get_study_assistant),
) -> ChatResponse:
    """Answer a question grounded in the indexed material."""
    return await _chat(request, assistant, use_retrieval=True)


@router.post("/chat-simple", response_model=ChatResponse)
async def chat_simple(
    request: ChatRequest,
    assistant: StudyAssistant = Depends(get_study_assistant),
) -> ChatResponse:
    """Answer a question without retrieval."""
    return await _chat(request, assistant, use_retrieval=False)


@router.post("/study-plan", response_model=TextResponse)
async def study_plan(
    request: StudyPlanRequest,
    assistant: StudyAssistant = Depends(get_study_assistant),
) -> TextResponse:
    """Study plan for a topic."""
    try:
        content, sources = await assistant.study_plan(request.topic, request.timeframe)
    except LexStudyError as exc:
        raise to_http_exception(exc) from exc
    return TextResponse(content=content, sources_used=sources)


@router.post("/explain-concept", response_model=TextResponse)
async def explain_concept(
    request: ConceptRequest,
    assistant: StudyAssistant = Depends(get_study_assistant),
) -> TextResponse:
    """Explanation of a legal concept."""
    try:
        content, sources = await assistant.explain_concept(request.concept)
    except LexStudyError as exc:
        raise to_http_exception(exc) from exc
    return TextResponse(content=content, sources_used=sources)


@router.post("/practice-questions", response_model=PracticeQuestionsResponse)
async def practice_questions(
    request: PracticeQuestionsRequest,
    assistant: StudyAssistant = Depends(get_study_assistant),
) -> PracticeQuestionsResponse:
    """Free-text practice questions on a topic."""
    try:
        questions = await assistant.practice_questions(request.topic, request.count)
    except LexStudyError as exc:
        raise to_http_exception(exc) from exc
    return PracticeQuestionsResponse(questions=questions, total=len(questions))
