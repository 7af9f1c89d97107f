"""
Unit tests for QuestionGenerator and answer grading.

The chat model and retriever are mocks; prompts are inspected to check the
requested counts.
"""

import json
import re
import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.core.exceptions import CompletionError, MalformedCompletionError
from src.models.document import DifficultyLevel
from src.models.question import QuestionType
from src.schemas.question import QuestionOption, QuestionSource, StudyQuestionData
from src.schemas.search import SearchResult
from src.services.questions import QuestionGenerator, grade_answer, split_content


def _mc_json(count: int) -> str:
    return json.dumps(
        {
            "questions": [
                {
                    "questionText": f"¿Pregunta {i}?",
                    "options": [
                        {"id": "A", "text": "Uno", "isCorrect": False},
                        {"id": "B", "text": "Dos", "isCorrect": True},
                        {"id": "C", "text": "Tres", "isCorrect": False},
                        {"id": "D", "text": "Cuatro", "isCorrect": False},
                    ],
                    "explanation": "Porque sí.",
                    "relatedConcepts": ["contrato"],
                    "difficulty": "Intermediate",
                }
                for i in range(count)
            ]
        }
    )


def _tf_json(count: int) -> str:
    return json.dumps(
        {
            "questions": [
                {"questionText": f"Afirmación {i}.", "isTrue": i % 2 == 0, "explanation": "."}
                for i in range(count)
            ]
        }
    )


def _requested(prompt: str) -> int:
    match = re.search(r"Genera exactamente (\d+)", prompt)
    assert match is not None
    return int(match.group(1))


def _well_behaved_model(prompt: str, system: str | None = None) -> str:
    """Answers exactly as many questions as the prompt asks for."""
    if "selección múltiple" in prompt:
        return "Aquí tienes:\n" + _mc_json(_requested(prompt))
    return _tf_json(_requested(prompt))


@pytest.fixture()
def retriever() -> MagicMock:
    mock = MagicMock()
    mock.search = AsyncMock(
        return_value=[
            SearchResult(id="1", content="El contrato es ley para las partes.", score=0.9),
            SearchResult(id="2", content="La nulidad puede ser absoluta o relativa.", score=0.8),
        ]
    )
    return mock


@pytest.fixture()
def completion() -> AsyncMock:
    mock = AsyncMock()
    mock.complete = AsyncMock(side_effect=_well_behaved_model)
    return mock


@pytest.fixture()
def generator(completion: AsyncMock, retriever: MagicMock) -> QuestionGenerator:
    return QuestionGenerator(completion, retriever, chunk_size=1000, max_chunks=3)


def _source(content: str) -> QuestionSource:
    return QuestionSource(
        title="Contratos",
        content=content,
        legal_areas=["Derecho Civil"],
        difficulty=DifficultyLevel.BASIC,
        persisted=True,
    )


# --- Helpers ---


def test_split_content_packs_sentences() -> None:
    content = "Primera frase. Segunda frase. Tercera frase."
    assert split_content(content, 1000) == ["Primera frase.  Segunda frase.  Tercera frase."]


def test_split_content_respects_size() -> None:
    content = ". ".join("x" * 40 for _ in range(10))
    chunks = split_content(content, 100)
    assert len(chunks) == 5
    assert all(len(chunk) <= 100 for chunk in chunks)


def test_split_content_empty() -> None:
    assert split_content("", 1000) == []


@pytest.mark.parametrize(
    ("user", "correct", "expected"),
    [
        ("B", "B", True),
        ("  true ", "True", True),
        ("verdadero", "True", False),
        ("", "", False),
        ("A", "   ", False),
    ],
)
def test_grade_answer(user: str, correct: str, expected: bool) -> None:
    assert grade_answer(user, correct) is expected


# --- generate_from_document ---


class TestGenerateFromDocument:
    """Tests for QuestionGenerator.generate_from_document()."""

    @pytest.mark.asyncio(loop_scope="session")
    async def test_mix_of_multiple_choice_and_true_false(
        self, generator: QuestionGenerator, completion: AsyncMock
    ) -> None:
        """One piece, count 10 → asks for 8 multiple choice then 3 true/false."""
        source = _source("El contrato es ley para las partes. Se perfecciona por consentimiento.")
        questions = await generator.generate_from_document(source, count=10)

        prompts = [call.args[0] for call in completion.complete.await_args_list]
        assert [_requested(p) for p in prompts] == [8, 3]
        assert len(questions) == 10

        mc = [q for q in questions if q.question_type == QuestionType.MULTIPLE_CHOICE]
        tf = [q for q in questions if q.question_type == QuestionType.TRUE_FALSE]
        assert len(mc) == 8
        assert len(tf) == 2
        assert mc[0].correct_answer == "B"
        assert mc[0].legal_area == "Derecho Civil"
        assert mc[0].difficulty == DifficultyLevel.BASIC
        assert mc[0].source_document_id == source.id
        assert tf[0].correct_answer == "True"
        assert [o.text for o in tf[0].options] == ["Verdadero", "Falso"]
        assert tf[1].correct_answer == "False"

    @pytest.mark.asyncio(loop_scope="session")
    async def test_uses_at_most_three_pieces(
        self, generator: QuestionGenerator, completion: AsyncMock
    ) -> None:
        completion.complete = AsyncMock(return_value='{"questions": []}')
        content = ". ".join("y" * 600 for _ in range(8))

        questions = await generator.generate_from_document(_source(content), count=5)

        assert questions == []
        # Two prompts (MC + TF) per piece, three pieces
        assert completion.complete.await_count == 6

    @pytest.mark.asyncio(loop_scope="session")
    async def test_malformed_everywhere_raises(
        self, generator: QuestionGenerator, completion: AsyncMock
    ) -> None:
        completion.complete = AsyncMock(return_value="No puedo generar preguntas.")

        with pytest.raises(MalformedCompletionError):
            await generator.generate_from_document(_source("Texto de prueba suficiente."), 5)

    @pytest.mark.asyncio(loop_scope="session")
    async def test_malformed_piece_is_skipped(
        self, generator: QuestionGenerator, completion: AsyncMock
    ) -> None:
        replies = iter(["basura", _mc_json(2), _tf_json(0)])
        completion.complete = AsyncMock(side_effect=lambda prompt, system=None: next(replies))
        content = "z" * 900 + ". " + "w" * 900 + "."

        questions = await generator.generate_from_document(_source(content), count=2)

        assert len(questions) == 2

    @pytest.mark.asyncio(loop_scope="session")
    async def test_malformed_true_false_keeps_multiple_choice(
        self, generator: QuestionGenerator, completion: AsyncMock
    ) -> None:
        replies = iter([_mc_json(8), "Lo siento, no puedo."])
        completion.complete = AsyncMock(side_effect=lambda prompt, system=None: next(replies))

        questions = await generator.generate_from_document(
            _source("El contrato es ley para las partes."), count=10
        )

        assert len(questions) == 8
        assert all(q.question_type == QuestionType.MULTIPLE_CHOICE for q in questions)

    @pytest.mark.asyncio(loop_scope="session")
    async def test_malformed_true_false_without_multiple_choice_raises(
        self, generator: QuestionGenerator, completion: AsyncMock
    ) -> None:
        replies = iter(['{"questions": []}', "Lo siento, no puedo."])
        completion.complete = AsyncMock(side_effect=lambda prompt, system=None: next(replies))

        with pytest.raises(MalformedCompletionError):
            await generator.generate_from_document(_source("Texto de prueba suficiente."), 5)

    @pytest.mark.asyncio(loop_scope="session")
    async def test_wrong_shape_is_malformed(
        self, generator: QuestionGenerator, completion: AsyncMock
    ) -> None:
        completion.complete = AsyncMock(return_value='{"questions": [{"options": []}]}')

        with pytest.raises(MalformedCompletionError):
            await generator.generate_from_document(_source("Texto de prueba suficiente."), 5)

    @pytest.mark.asyncio(loop_scope="session")
    async def test_model_unavailable_propagates(
        self, generator: QuestionGenerator, completion: AsyncMock
    ) -> None:
        completion.complete = AsyncMock(side_effect=CompletionError("offline"))

        with pytest.raises(CompletionError):
            await generator.generate_from_document(_source("Texto de prueba suficiente."), 5)


# --- Retrieval-based generation ---


class TestRetrievalGeneration:
    """Tests for generate_for_areas() and generate_from_search()."""

    @pytest.mark.asyncio(loop_scope="session")
    async def test_generate_for_areas(
        self, generator: QuestionGenerator, retriever: MagicMock
    ) -> None:
        questions = await generator.generate_for_areas(
            ["Derecho Civil", "Derecho Penal"], DifficultyLevel.ADVANCED, count=4
        )

        assert len(questions) == 4
        queries = [call.args for call in retriever.search.await_args_list]
        assert queries == [("Derecho Civil", 2), ("Derecho Penal", 2)]
        assert {q.legal_area for q in questions} == {"Derecho Civil", "Derecho Penal"}
        assert all(q.difficulty == DifficultyLevel.ADVANCED for q in questions)
        # Temporary sources are not stored documents
        assert all(q.source_document_id is None for q in questions)

    @pytest.mark.asyncio(loop_scope="session")
    async def test_area_without_material_is_skipped(
        self, generator: QuestionGenerator, retriever: MagicMock
    ) -> None:
        retriever.search = AsyncMock(return_value=[])
        assert await generator.generate_for_areas(["Derecho Minero"], count=3) == []

    @pytest.mark.asyncio(loop_scope="session")
    async def test_generate_from_search(
        self, generator: QuestionGenerator, retriever: MagicMock, completion: AsyncMock
    ) -> None:
        questions = await generator.generate_from_search(
            "nulidad absoluta", ["Derecho Civil"], count=3
        )

        retriever.search.assert_awaited_once_with("nulidad absoluta", 3)
        first_prompt = completion.complete.await_args_list[0].args[0]
        assert "La nulidad puede ser absoluta o relativa." in first_prompt
        assert "Generado desde texto libre (Derecho Civil)" in first_prompt
        assert len(questions) == 3


# --- Follow-up ---


class TestFollowUp:
    """Tests for generate_follow_up()."""

    @staticmethod
    def _question(question_type: QuestionType) -> StudyQuestionData:
        return StudyQuestionData(
            question_text="¿Qué es el dolo?",
            question_type=question_type,
            options=[QuestionOption(id="A", text="Intención", is_correct=True)],
            correct_answer="A",
            explanation="El dolo es la intención positiva de inferir injuria.",
            legal_area="Derecho Civil",
            difficulty=DifficultyLevel.INTERMEDIATE,
            source_document_id=uuid.uuid4(),
        )

    @pytest.mark.asyncio(loop_scope="session")
    async def test_follow_up_after_miss_asks_for_simpler(
        self, generator: QuestionGenerator, completion: AsyncMock
    ) -> None:
        completion.complete = AsyncMock(
            return_value=json.dumps(
                {
                    "questionText": "¿El dolo requiere intención?",
                    "options": [{"id": "A", "text": "Sí"}, {"id": "B", "text": "No"}],
                    "correctAnswer": "A",
                    "explanation": "Sí, requiere intención.",
                }
            )
        )
        original = self._question(QuestionType.MULTIPLE_CHOICE)

        follow_up = await generator.generate_follow_up(original, was_correct=False)

        prompt = completion.complete.await_args.args[0]
        assert "FALLÓ" in prompt
        assert "Refuerce el concepto básico" in prompt
        assert follow_up.question_text == "¿El dolo requiere intención?"
        assert follow_up.correct_answer == "A"
        assert follow_up.options[0].is_correct is True
        assert follow_up.options[1].is_correct is False
        assert follow_up.source_document_id == original.source_document_id
        assert follow_up.id != original.id

    @pytest.mark.asyncio(loop_scope="session")
    async def test_true_false_follow_up(
        self, generator: QuestionGenerator, completion: AsyncMock
    ) -> None:
        completion.complete = AsyncMock(
            return_value='{"questionText": "El dolo se presume.", "correctAnswer": "Falso"}'
        )

        follow_up = await generator.generate_follow_up(
            self._question(QuestionType.TRUE_FALSE), was_correct=True
        )

        assert "ACERTÓ" in completion.complete.await_args.args[0]
        assert follow_up.correct_answer == "False"
        assert [o.id for o in follow_up.options] == ["True", "False"]

    @pytest.mark.asyncio(loop_scope="session")
    async def test_malformed_follow_up_raises(
        self, generator: QuestionGenerator, completion: AsyncMock
    ) -> None:
        completion.complete = AsyncMock(return_value="No sé.")

        with pytest.raises(MalformedCompletionError):
            await generator.generate_follow_up(
                self._question(QuestionType.MULTIPLE_CHOICE), was_correct=True
            )
