"""
Study Schemas

Pydantic schemas for the RAG chat and study-assistant endpoints.
"""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    """One turn of a conversation."""

    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    """Request body for the chat endpoints.

    Attributes:
        message: Student question.
        session_id: Existing session, or None to start one.
        history: Previous turns (only the most recent are sent to the model).
    """

    message: str = Field(..., min_length=1, max_length=4000)
    session_id: uuid.UUID | None = None
    history: list[ChatMessage] = Field(default_factory=list)


class ChatResponse(BaseModel):
    """Assistant reply.

    Attributes:
        response: Reply text.
        session_id: Session the reply belongs to.
        sources_used: Fragments injected as context.
        timestamp: Reply time (UTC).
    """

    response: str
    session_id: uuid.UUID
    sources_used: int = 0
    timestamp: datetime


class StudyPlanRequest(BaseModel):
    """Request body for a study plan."""

    topic: str = Field(..., min_length=1, max_length=500)
    timeframe: str = Field("intermediate", max_length=100)


class ConceptRequest(BaseModel):
    """Request body for a concept explanation."""

    concept: str = Field(..., min_length=1, max_length=500)


class PracticeQuestionsRequest(BaseModel):
    """Request body for free-text practice questions."""

    topic: str = Field(..., min_length=1, max_length=500)
    count: int = Field(5, ge=1, le=20)


class TextResponse(BaseModel):
    """Free-text result (study plan, concept explanation)."""

    content: str
    sources_used: int = 0


class PracticeQuestionsResponse(BaseModel):
    """Practice questions as text blocks."""

    questions: list[str]
    total: int
