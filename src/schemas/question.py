"""
Question Schemas

Study questions, the camelCase JSON shapes the LLM is asked to return, and
the question endpoint contracts.
"""

import uuid
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.models.document import DifficultyLevel
from src.models.question import QuestionType


class QuestionOption(BaseModel):
    """One answer option.

    Attributes:
        id: Option label ("A".."D", or "True"/"False").
        text: Option text.
        is_correct: Whether this is the right answer.
    """

    id: str
    text: str
    is_correct: bool = False


class StudyQuestionData(BaseModel):
    """A generated study question.

    Attributes:
        id: Question UUID.
        question_text: Statement.
        question_type: MultipleChoice or TrueFalse.
        options: Answer options.
        correct_answer: Correct option id, or "True"/"False".
        explanation: Why the answer is correct.
        legal_area: Comma-joined legal areas of the source.
        related_concepts: Concepts exercised.
        difficulty: DifficultyLevel.
        source_document_id: Source document, if any.
        created_at: Generation timestamp.
    """

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    question_text: str
    question_type: QuestionType
    options: list[QuestionOption] = Field(default_factory=list)
    correct_answer: str
    explanation: str = ""
    legal_area: str = ""
    related_concepts: list[str] = Field(default_factory=list)
    difficulty: DifficultyLevel = DifficultyLevel.INTERMEDIATE
    source_document_id: uuid.UUID | None = None
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC).replace(tzinfo=None)
    )


class QuestionSource(BaseModel):
    """Material questions are generated from.

    Either a stored document or a temporary one assembled from search results.
    """

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    title: str
    content: str
    legal_areas: list[str] = Field(default_factory=lambda: ["General"])
    difficulty: DifficultyLevel = DifficultyLevel.INTERMEDIATE
    persisted: bool = False


# --- LLM response shapes (camelCase on the wire) ---


class _CompletionModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class GeneratedOption(_CompletionModel):
    id: str = ""
    text: str = ""
    is_correct: bool = False


class GeneratedMultipleChoice(_CompletionModel):
    question_text: str
    options: list[GeneratedOption] = Field(default_factory=list)
    explanation: str = ""
    related_concepts: list[str] = Field(default_factory=list)
    difficulty: str = ""


class GeneratedTrueFalse(_CompletionModel):
    question_text: str
    is_true: bool
    explanation: str = ""
    related_concepts: list[str] = Field(default_factory=list)
    difficulty: str = ""


class MultipleChoiceBatch(_CompletionModel):
    questions: list[GeneratedMultipleChoice] = Field(default_factory=list)


class TrueFalseBatch(_CompletionModel):
    questions: list[GeneratedTrueFalse] = Field(default_factory=list)


class GeneratedFollowUp(_CompletionModel):
    question_text: str
    options: list[GeneratedOption] | None = None
    correct_answer: str = ""
    explanation: str = ""


# --- Endpoint contracts ---


class GenerateQuestionsRequest(BaseModel):
    """Request body for question generation.

    Without ``query`` questions are drawn from fragments of each legal area;
    with it, from the fragments most similar to the query.
    """

    legal_areas: list[str] = Field(..., min_length=1, examples=[["Derecho Civil"]])
    difficulty: DifficultyLevel = DifficultyLevel.INTERMEDIATE
    count: int = Field(5, ge=1, le=20)
    query: str | None = Field(None, max_length=500)


class DocumentQuestionsRequest(BaseModel):
    """Request body for generating questions from one stored document."""

    count: int = Field(10, ge=1, le=20)


class QuestionListResponse(BaseModel):
    """Generated questions."""

    questions: list[StudyQuestionData]
    total: int


class FollowUpRequest(BaseModel):
    """Request body for a follow-up question."""

    question: StudyQuestionData
    was_correct: bool


class SubmitAnswerRequest(BaseModel):
    """A student's answer to grade."""

    user_answer: str = ""
    correct_answer: str = ""
    explanation: str | None = None


class SubmitAnswerResponse(BaseModel):
    """Grading outcome."""

    is_correct: bool
    correct_answer: str
    explanation: str
    timestamp: datetime


class ExplainAnswerRequest(BaseModel):
    """Request body for a tutor explanation of an answer."""

    question_text: str = Field(..., min_length=1)
    chosen_answer: str
    correct_answer: str
    was_correct: bool


class ExplanationResponse(BaseModel):
    """Free-text explanation."""

    explanation: str
