"""
Context Assembly

Renders retrieved fragments into a prompt-ready context block and wraps it
with the student's query and the answering instructions.
"""

from src.schemas.search import SearchResult

NO_CONTEXT_MESSAGE = "No se encontró información específica en la base de datos."

CONTEXT_HEADER = "INFORMACIÓN DE REFERENCIA:"
SEPARATOR = "-" * 50

_ENRICHED_PROMPT = """CONTEXTO DE REFERENCIA:
{context}

CONSULTA DEL ESTUDIANTE:
{message}

INSTRUCCIONES:
- Responde basándote PRINCIPALMENTE en la información de referencia proporcionada arriba
- Si la información de referencia no es suficiente, indícalo claramente
- Mantén un tono académico apropiado para estudiantes de derecho
- Cita las fuentes cuando sea relevante
- Si hay múltiples documentos, sintetiza la información de manera coherente"""


class ContextAssembler:
    """Builds context blocks and enriched prompts from search results.

    Stateless; every method is a pure function of its arguments.
    """

    def build_context(self, fragments: list[SearchResult]) -> str:
        """Render fragments, in the given order, into one context block.

        Each fragment gets a 1-based label with its score to two decimals,
        ``Título``/``Categoría`` lines only when the metadata carries
        ``title``/``category``, its full content and a separator line.

        Args:
            fragments: Retrieved fragments, most relevant first.

        Returns:
            The context block, or NO_CONTEXT_MESSAGE when there are none.
        """
        if not fragments:
            return NO_CONTEXT_MESSAGE

        lines = [CONTEXT_HEADER]
        for number, fragment in enumerate(fragments, start=1):
            lines.append(f"\n[Documento {number}] (Relevancia: {fragment.score:.2f})")
            if "title" in fragment.metadata:
                lines.append(f"Título: {fragment.metadata['title']}")
            if "category" in fragment.metadata:
                lines.append(f"Categoría: {fragment.metadata['category']}")
            lines.append(f"Contenido: {fragment.content}")
            lines.append(SEPARATOR)

        return "\n".join(lines) + "\n"

    def build_enriched_prompt(self, user_message: str, context_block: str) -> str:
        """Wrap a context block and a query with the answering instructions."""
        return _ENRICHED_PROMPT.format(context=context_block, message=user_message)

    def build_topic_prompt(
        self,
        label: str,
        topic: str,
        context_block: str,
        heading: str = "Material disponible",
    ) -> str:
        """Prefix a topic (or concept) with the retrieved material.

        >>> ContextAssembler().build_topic_prompt("Tema", "Contratos", "...")
        'Tema: Contratos\\n\\nMaterial disponible:\\n...'
        """
        return f"{label}: {topic}\n\n{heading}:\n{context_block}"
