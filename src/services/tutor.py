"""
Study Assistant

Retrieval-augmented tutoring: chat answers grounded in indexed material,
study plans, concept explanations, practice questions and explanations of
graded answers.
"""

import logging

from src.core.config import settings
from src.core.protocols import CompletionProvider
from src.schemas.search import SearchResult
from src.schemas.study import ChatMessage
from src.services.context import ContextAssembler
from src.services.retrieval import SemanticRetriever

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "Eres un asistente especializado en Derecho chileno. "
    "Proporciona respuestas precisas y bien fundamentadas."
)

_STUDY_PLAN_PROMPT = """Crea un plan de estudio detallado para el tema: {topic}
Plazo disponible: {timeframe}

El plan debe incluir:
1. Objetivos de aprendizaje específicos
2. División temporal por etapas
3. Recursos recomendados
4. Métodos de estudio sugeridos
5. Evaluaciones intermedias
6. Cronograma semanal detallado

Enfócate en Derecho chileno y examen de grado.
Formato de respuesta: texto estructurado (no JSON)."""

_CONCEPT_PROMPT = """Explica el concepto jurídico: {concept}

Incluye:
1. Definición clara y precisa
2. Marco normativo aplicable (leyes, códigos relevantes)
3. Aplicación práctica en el derecho chileno
4. Ejemplos concretos
5. Relación con otros conceptos importantes
6. Jurisprudencia relevante si aplica

Respuesta dirigida a estudiantes de derecho chileno."""

_PRACTICE_PROMPT = """Genera {count} preguntas de práctica sobre: {topic}

Incluye:
- Preguntas de selección múltiple (60%)
- Preguntas de verdadero/falso (40%)
- Mezcla diferentes niveles de dificultad
- Respuestas correctas al final
- Breve explicación para cada respuesta

Formato: texto estructurado legible (no JSON).
Enfoque: Derecho chileno, nivel examen de grado."""

_EXPLAIN_ANSWER_PROMPT = """Actúa como tutor de Derecho chileno.
Pregunta: {question}
Respuesta del estudiante: {chosen}
Respuesta correcta: {correct}
El estudiante {outcome}.

Explica de forma breve y clara:
1) Por qué la respuesta {verdict}
2) Fundamento conceptual (y, si aplica, referencia normativa del material)
3) Consejo para recordar

Devuelve SOLO el texto de la explicación (sin JSON)."""


def split_practice_questions(response: str, count: int) -> list[str]:
    """Cut a free-text reply into question blocks.

    Blocks are separated by blank lines or the word ``Pregunta``; only blocks
    containing ``?`` are kept. Falls back to the whole reply.
    """
    blocks: list[str] = []
    for paragraph in response.split("\n\n"):
        blocks.extend(paragraph.split("Pregunta "))
    questions = [block for block in blocks if block.strip() and "?" in block][:count]
    return questions or [response]


class StudyAssistant:
    """Tutor backed by the chat model and semantic retrieval.

    Args:
        completion: Chat model.
        retriever: Semantic retriever over indexed fragments.
        context_assembler: Renders fragments into prompt context.
    """

    def __init__(
        self,
        completion: CompletionProvider,
        retriever: SemanticRetriever,
        context_assembler: ContextAssembler | None = None,
    ) -> None:
        self._completion = completion
        self._retriever = retriever
        self._context = context_assembler or ContextAssembler()

    async def answer(
        self,
        message: str,
        history: list[ChatMessage] | None = None,
        use_retrieval: bool = True,
    ) -> tuple[str, int]:
        """Answer a student message.

        Args:
            message: The student's question.
            history: Previous turns; only the most recent ones are sent.
            use_retrieval: Whether to ground the answer in indexed material.

        Returns:
            Tuple of (reply, number of fragments used as context).

        Raises:
            CompletionError: If the model is unavailable.
        """
        fragments: list[SearchResult] = []
        prompt = message
        if use_retrieval:
            fragments = await self._retriever.search(message, settings.CHAT_TOP_K)
            prompt = self._context.build_enriched_prompt(
                message, self._context.build_context(fragments)
            )

        messages = [
            {"role": turn.role, "content": turn.content}
            for turn in (history or [])[-settings.CHAT_HISTORY_LIMIT :]
        ]
        messages.append({"role": "user", "content": prompt})

        reply = await self._completion.complete(messages, system=SYSTEM_PROMPT)
        logger.info("Answered chat message with %d context fragments", len(fragments))
        return reply, len(fragments)

    async def study_plan(self, topic: str, timeframe: str) -> tuple[str, int]:
        """Study plan for a topic, informed by the top indexed material."""
        fragments = await self._retriever.search(topic, settings.STUDY_PLAN_TOP_K)
        enriched_topic = self._context.build_topic_prompt(
            "Tema", topic, self._context.build_context(fragments)
        )
        reply = await self._completion.complete(
            _STUDY_PLAN_PROMPT.format(topic=enriched_topic, timeframe=timeframe)
        )
        return reply, len(fragments)

    async def explain_concept(self, concept: str) -> tuple[str, int]:
        """Explanation of a legal concept with reference material."""
        fragments = await self._retriever.search(concept, settings.CHAT_TOP_K)
        enriched = self._context.build_topic_prompt(
            "Concepto",
            concept,
            self._context.build_context(fragments),
            heading="Información de referencia",
        )
        reply = await self._completion.complete(_CONCEPT_PROMPT.format(concept=enriched))
        return reply, len(fragments)

    async def practice_questions(self, topic: str, count: int = 5) -> list[str]:
        """Free-text practice questions on a topic."""
        fragments = await self._retriever.search(topic, settings.STUDY_PLAN_TOP_K)
        enriched = self._context.build_topic_prompt(
            "Tema",
            topic,
            self._context.build_context(fragments),
            heading="Material de referencia",
        )
        reply = await self._completion.complete(
            _PRACTICE_PROMPT.format(count=count, topic=enriched)
        )
        return split_practice_questions(reply, count)

    async def explain_answer(
        self, question: str, chosen: str, correct: str, was_correct: bool
    ) -> str:
        """Tutor feedback on a graded answer."""
        return await self._completion.complete(
            _EXPLAIN_ANSWER_PROMPT.format(
                question=question,
                chosen=chosen,
                correct=correct,
                outcome="ACERTÓ" if was_correct else "FALLÓ",
                verdict="es correcta" if was_correct else "no es correcta",
            )
        )
