"""
Question Generation Service

Generates multiple-choice and true/false study questions from document
content or from fragments retrieved for a legal area or a query, plus
follow-up questions and answer grading.

Flow:
    split content (~1000 chars, max 3 pieces) → per piece: 70% multiple
    choice + remainder true/false → stop once ``count`` is reached
"""

import logging
import math

from pydantic import ValidationError

from src.clients.ollama import extract_json_object
from src.core.config import settings
from src.core.exceptions import MalformedCompletionError
from src.core.protocols import CompletionProvider
from src.models.document import DifficultyLevel
from src.models.question import QuestionType
from src.schemas.question import (
    GeneratedFollowUp,
    MultipleChoiceBatch,
    QuestionOption,
    QuestionSource,
    StudyQuestionData,
    TrueFalseBatch,
)
from src.services.retrieval import SemanticRetriever

logger = logging.getLogger(__name__)

_MULTIPLE_CHOICE_SHARE = 0.7
_AREA_FRAGMENTS = 2
_SEARCH_FRAGMENTS = 3
_OPTION_LABELS = "ABCDEFGH"

_MULTIPLE_CHOICE_PROMPT = """TAREA: Genera exactamente {count} preguntas de selección múltiple para examen de grado de derecho chileno.

CONTENIDO A ANALIZAR:
{content}

CONTEXTO:
- Título: {title}
- Áreas legales: {areas}
- Dificultad: {difficulty}

INSTRUCCIONES ESPECÍFICAS:
1. Cada pregunta debe tener exactamente 4 opciones (A, B, C, D)
2. Solo UNA opción es correcta
3. Las opciones incorrectas deben ser plausibles pero claramente erróneas
4. Incluye explicación clara de por qué la respuesta es correcta
5. Enfócate en conceptos, aplicaciones y análisis del contenido dado

FORMATO DE RESPUESTA - DEVUELVE SOLO JSON VÁLIDO:
{{
  "questions": [
    {{
      "questionText": "¿Cuál de las siguientes afirmaciones sobre [concepto] es correcta?",
      "options": [
        {{"id": "A", "text": "Primera opción", "isCorrect": false}},
        {{"id": "B", "text": "Segunda opción (correcta)", "isCorrect": true}},
        {{"id": "C", "text": "Tercera opción", "isCorrect": false}},
        {{"id": "D", "text": "Cuarta opción", "isCorrect": false}}
      ],
      "explanation": "La respuesta correcta es B porque...",
      "relatedConcepts": ["concepto1", "concepto2"],
      "difficulty": "{difficulty}"
    }}
  ]
}}"""

_TRUE_FALSE_PROMPT = """TAREA: Genera exactamente {count} preguntas de verdadero/falso para examen de grado de derecho chileno.

CONTENIDO A ANALIZAR:
{content}

CONTEXTO:
- Título: {title}
- Áreas legales: {areas}
- Dificultad: {difficulty}

INSTRUCCIONES:
1. Crea afirmaciones que sean claramente verdaderas o falsas según el contenido
2. Evita ambigüedades
3. Incluye explicación detallada
4. Varía entre afirmaciones verdaderas y falsas

FORMATO DE RESPUESTA - DEVUELVE SOLO JSON VÁLIDO:
{{
  "questions": [
    {{
      "questionText": "El artículo X establece que...",
      "isTrue": false,
      "explanation": "Falso. El artículo X en realidad establece que...",
      "relatedConcepts": ["concepto1", "concepto2"],
      "difficulty": "{difficulty}"
    }}
  ]
}}"""

_FOLLOW_UP_PROMPT = """El estudiante {outcome} esta pregunta:

PREGUNTA: {question}
RESPUESTA CORRECTA: {correct_answer}
EXPLICACIÓN: {explanation}

Genera UNA pregunta de seguimiento que:
{guidance}

FORMATO - DEVUELVE SOLO JSON:
{{
  "questionText": "Nueva pregunta...",
  "type": "{question_type}",
  "options": [...],
  "correctAnswer": "respuesta",
  "explanation": "explicación...",
  "difficulty": "{difficulty}"
}}"""

_DEEPER_GUIDANCE = (
    "- Profundice en el concepto con mayor complejidad\n"
    "- Explore aplicaciones prácticas del concepto"
)
_SIMPLER_GUIDANCE = (
    "- Refuerce el concepto básico de manera más simple\n- Aclare posibles confusiones"
)

FALLBACK_EXPLANATION = "Explicación no disponible"


def split_content(content: str, max_chunk_size: int) -> list[str]:
    """Greedy sentence packing used to feed question prompts.

    Splits on ``.``, drops empty pieces, re-appends ``". "`` to every piece
    and starts a new chunk when the next piece would push the current one
    past ``max_chunk_size``.
    """
    chunks: list[str] = []
    current = ""
    for sentence in (part for part in content.split(".") if part):
        if current and len(current) + len(sentence) > max_chunk_size:
            chunks.append(current.strip())
            current = ""
        current += sentence + ". "
    if current.strip():
        chunks.append(current.strip())
    return chunks


def grade_answer(user_answer: str, correct_answer: str) -> bool:
    """Trimmed, case-insensitive comparison; blank answers never match."""
    user = user_answer.strip()
    correct = correct_answer.strip()
    if not user or not correct:
        return False
    return user.casefold() == correct.casefold()


def _parse_batch(reply: str, model: type[MultipleChoiceBatch] | type[TrueFalseBatch]):
    try:
        return model.model_validate(extract_json_object(reply))
    except ValidationError as exc:
        raise MalformedCompletionError(
            f"Question JSON does not match the expected shape: {exc.error_count()} errors",
            raw=reply,
        ) from exc


def parse_multiple_choice(reply: str, source: QuestionSource) -> list[StudyQuestionData]:
    """Turn a multiple-choice completion into questions.

    Raises:
        MalformedCompletionError: If the reply is not the expected JSON.
    """
    batch = _parse_batch(reply, MultipleChoiceBatch)
    questions = []
    for generated in batch.questions:
        options = [
            QuestionOption(
                id=option.id or _OPTION_LABELS[index % len(_OPTION_LABELS)],
                text=option.text,
                is_correct=option.is_correct,
            )
            for index, option in enumerate(generated.options)
        ]
        correct = next((option.id for option in options if option.is_correct), "")
        questions.append(
            StudyQuestionData(
                question_text=generated.question_text,
                question_type=QuestionType.MULTIPLE_CHOICE,
                options=options,
                correct_answer=correct,
                explanation=generated.explanation,
                legal_area=", ".join(source.legal_areas),
                related_concepts=generated.related_concepts,
                difficulty=source.difficulty,
                source_document_id=source.id if source.persisted else None,
            )
        )
    return questions


def _true_false_options(is_true: bool) -> list[QuestionOption]:
    return [
        QuestionOption(id="True", text="Verdadero", is_correct=is_true),
        QuestionOption(id="False", text="Falso", is_correct=not is_true),
    ]


def parse_true_false(reply: str, source: QuestionSource) -> list[StudyQuestionData]:
    """Turn a true/false completion into questions.

    Raises:
        MalformedCompletionError: If the reply is not the expected JSON.
    """
    batch = _parse_batch(reply, TrueFalseBatch)
    return [
        StudyQuestionData(
            question_text=generated.question_text,
            question_type=QuestionType.TRUE_FALSE,
            options=_true_false_options(generated.is_true),
            correct_answer="True" if generated.is_true else "False",
            explanation=generated.explanation,
            legal_area=", ".join(source.legal_areas),
            related_concepts=generated.related_concepts,
            difficulty=source.difficulty,
            source_document_id=source.id if source.persisted else None,
        )
        for generated in batch.questions
    ]


class QuestionGenerator:
    """Generates study questions with the chat model.

    Args:
        completion: Chat model.
        retriever: Semantic retriever for area- and query-based generation.
        chunk_size: Size of the content pieces sent per prompt.
        max_chunks: Maximum pieces used per source.
    """

    def __init__(
        self,
        completion: CompletionProvider,
        retriever: SemanticRetriever,
        chunk_size: int | None = None,
        max_chunks: int | None = None,
    ) -> None:
        self._completion = completion
        self._retriever = retriever
        self._chunk_size = chunk_size or settings.QUESTION_CHUNK_SIZE
        self._max_chunks = max_chunks or settings.QUESTION_MAX_CHUNKS

    async def generate_from_document(
        self, source: QuestionSource, count: int = 10
    ) -> list[StudyQuestionData]:
        """Generate up to ``count`` questions from a source's content.

        Pieces whose completion is malformed are skipped.

        Raises:
            MalformedCompletionError: If no piece produced a parseable reply.
            CompletionError: If the model is unavailable.
        """
        chunks = split_content(source.content, self._chunk_size)
        if not chunks:
            return []

        per_chunk = count // len(chunks) + 1
        questions: list[StudyQuestionData] = []
        parsed_any = False
        last_error: MalformedCompletionError | None = None

        for chunk in chunks[: self._max_chunks]:
            try:
                questions.extend(await self._generate_from_chunk(chunk, source, per_chunk))
                parsed_any = True
            except MalformedCompletionError as exc:
                logger.warning("Skipping piece of %r: %s", source.title, exc.message)
                last_error = exc
            if len(questions) >= count:
                break

        if not parsed_any and last_error is not None:
            raise last_error

        logger.info("Generated %d questions from %r", min(len(questions), count), source.title)
        return questions[:count]

    async def generate_for_areas(
        self,
        legal_areas: list[str],
        difficulty: DifficultyLevel = DifficultyLevel.INTERMEDIATE,
        count: int = 5,
    ) -> list[StudyQuestionData]:
        """Generate questions from the fragments closest to each legal area.

        Areas with no indexed material contribute nothing.

        Raises:
            MalformedCompletionError: If every area with material failed to parse.
        """
        if not legal_areas:
            return []

        per_area = max(1, count // len(legal_areas))
        questions: list[StudyQuestionData] = []
        parsed_any = False
        last_error: MalformedCompletionError | None = None

        for area in legal_areas:
            results = await self._retriever.search(area, _AREA_FRAGMENTS)
            if not results:
                logger.info("No material indexed for area %r", area)
                continue
            source = QuestionSource(
                title=f"Material sobre {area}",
                content="\n\n".join(result.content for result in results),
                legal_areas=[area],
                difficulty=difficulty,
            )
            try:
                questions.extend(await self.generate_from_document(source, per_area))
                parsed_any = True
            except MalformedCompletionError as exc:
                logger.warning("Skipping area %r: %s", area, exc.message)
                last_error = exc

        if not parsed_any and last_error is not None:
            raise last_error
        return questions[:count]

    async def generate_from_search(
        self,
        query: str,
        legal_areas: list[str],
        difficulty: DifficultyLevel = DifficultyLevel.INTERMEDIATE,
        count: int = 5,
    ) -> list[StudyQuestionData]:
        """Generate questions from the fragments most similar to ``query``."""
        results = await self._retriever.search(query, _SEARCH_FRAGMENTS)
        if not results:
            return []
        source = QuestionSource(
            title=f"Generado desde texto libre ({', '.join(legal_areas)})",
            content="\n\n".join(result.content for result in results),
            legal_areas=legal_areas,
            difficulty=difficulty,
        )
        return await self.generate_from_document(source, count)

    async def generate_follow_up(
        self, question: StudyQuestionData, was_correct: bool
    ) -> StudyQuestionData:
        """Generate one deeper (after a hit) or simpler (after a miss) question.

        Raises:
            MalformedCompletionError: If the reply is not the expected JSON.
            CompletionError: If the model is unavailable.
        """
        prompt = _FOLLOW_UP_PROMPT.format(
            outcome="ACERTÓ" if was_correct else "FALLÓ",
            question=question.question_text,
            correct_answer=question.correct_answer,
            explanation=question.explanation,
            guidance=_DEEPER_GUIDANCE if was_correct else _SIMPLER_GUIDANCE,
            question_type=question.question_type.value,
            difficulty=question.difficulty.value,
        )
        reply = await self._completion.complete(prompt)
        try:
            generated = GeneratedFollowUp.model_validate(extract_json_object(reply))
        except ValidationError as exc:
            raise MalformedCompletionError(
                "Follow-up JSON does not match the expected shape", raw=reply
            ) from exc

        correct = generated.correct_answer.strip()
        if question.question_type == QuestionType.TRUE_FALSE:
            is_true = correct.casefold() in ("true", "verdadero")
            options = _true_false_options(is_true)
            correct = "True" if is_true else "False"
        else:
            options = [
                QuestionOption(
                    id=option.id or _OPTION_LABELS[index % len(_OPTION_LABELS)],
                    text=option.text,
                    is_correct=option.is_correct or option.id == correct,
                )
                for index, option in enumerate(generated.options or [])
            ]
            if not correct:
                correct = next((option.id for option in options if option.is_correct), "")

        return StudyQuestionData(
            question_text=generated.question_text,
            question_type=question.question_type,
            options=options,
            correct_answer=correct,
            explanation=generated.explanation,
            legal_area=question.legal_area,
            related_concepts=question.related_concepts,
            difficulty=question.difficulty,
            source_document_id=question.source_document_id,
        )

    async def _generate_from_chunk(
        self, content: str, source: QuestionSource, count: int
    ) -> list[StudyQuestionData]:
        fields = {
            "content": content,
            "title": source.title,
            "areas": ", ".join(source.legal_areas),
            "difficulty": source.difficulty.value,
        }
        multiple_choice_count = max(1, math.ceil(count * _MULTIPLE_CHOICE_SHARE))
        reply = await self._completion.complete(
            _MULTIPLE_CHOICE_PROMPT.format(count=multiple_choice_count, **fields)
        )
        questions = parse_multiple_choice(reply, source)

        true_false_count = count - len(questions)
        if true_false_count > 0:
            reply = await self._completion.complete(
                _TRUE_FALSE_PROMPT.format(count=true_false_count, **fields)
            )
            try:
                questions.extend(parse_true_false(reply, source))
            except MalformedCompletionError as exc:
                # Multiple-choice questions already parsed for this piece are kept.
                if not questions:
                    raise
                logger.warning("Dropping true/false reply for %r: %s", source.title, exc.message)
        return questions
