"""
Document Analysis Service

Builds a DocumentProfile (title, type, legal areas, key concepts, difficulty,
article and case references) by asking the chat model about the opening of a
document. Facets run concurrently; each falls back to its default when the
model is unavailable or answers with malformed JSON.
"""

import asyncio
import logging
import re

from src.clients.ollama import extract_json_list, extract_json_object
from src.core.exceptions import CompletionError
from src.core.protocols import CompletionProvider
from src.models.document import DifficultyLevel, DocumentType
from src.schemas.document import DocumentProfile

logger = logging.getLogger(__name__)

_ARTICLE_PATTERN = re.compile(
    r"\bart(?:[íi]culo)?\.?\s*(\d+(?:\.\d+)*(?:\s*(?:bis|ter|quater|quinquies)\b)?)",
    re.IGNORECASE,
)
_MAX_ARTICLES = 20
_MIN_REGEX_ARTICLES = 3

_TITLE_TYPE_PROMPT = """Analiza el siguiente documento jurídico chileno y extrae:
1. Un título descriptivo apropiado
2. El tipo de documento legal

Contenido: {content}...

Responde en formato JSON:
{{
    "title": "título extraído o generado",
    "type": "Law|Decree|Jurisprudence|Doctrine|Constitution|Code|StudyMaterial|CaseStudy|Regulation"
}}"""

_KEY_CONCEPTS_PROMPT = """Identifica los conceptos jurídicos clave en este documento de derecho chileno.
Enfócate en términos técnicos, instituciones, principios legales y conceptos fundamentales.

Contenido: {content}...

Responde con una lista JSON de conceptos:
["concepto1", "concepto2", "concepto3"]"""

_LEGAL_AREAS_PROMPT = """Identifica las áreas del derecho chileno que abarca este documento.
Considera: Derecho Civil, Penal, Constitucional, Administrativo, Laboral, Comercial, Procesal, etc.

Contenido: {content}...

Responde con una lista JSON de áreas:
["area1", "area2", "area3"]"""

_DIFFICULTY_PROMPT = """Evalúa la dificultad de este contenido jurídico para estudiantes de derecho:
- Basic: Conceptos fundamentales, definiciones básicas
- Intermediate: Aplicación de conceptos, casos prácticos
- Advanced: Análisis complejo, jurisprudencia especializada

Contenido: {content}...

Responde solo con: Basic, Intermediate o Advanced"""

_ARTICLES_PROMPT = """Identifica todas las referencias a artículos de leyes, códigos o reglamentos en este texto jurídico chileno.

Contenido: {content}...

Responde con una lista JSON de números de artículos:
["1", "25", "156 bis", "300 ter"]"""

_CASES_PROMPT = """Identifica referencias a casos judiciales, sentencias o jurisprudencia en este documento jurídico chileno.
Busca nombres de casos, números de rol, referencias a tribunales.

Contenido: {content}...

Responde con una lista JSON de referencias:
["caso1", "sentencia2", "rol3"]"""


def find_article_references(content: str) -> list[str]:
    """Distinct article numbers cited in the text, in order of appearance (max 20)."""
    articles: list[str] = []
    for match in _ARTICLE_PATTERN.finditer(content):
        reference = " ".join(match.group(1).split())
        if reference not in articles:
            articles.append(reference)
        if len(articles) == _MAX_ARTICLES:
            break
    return articles


def parse_difficulty(text: str) -> DifficultyLevel:
    """Map a one-word model answer to a DifficultyLevel (Intermediate if unclear)."""
    answer = text.strip().strip(".").lower()
    for level in DifficultyLevel:
        if answer == level.value.lower():
            return level
    return DifficultyLevel.INTERMEDIATE


def parse_document_type(value: object, fallback: DocumentType) -> DocumentType:
    """Map a model-provided type name to a DocumentType, or return fallback."""
    try:
        return DocumentType(str(value).strip())
    except ValueError:
        return fallback


def _as_strings(items: list[object]) -> list[str]:
    return [str(item).strip() for item in items if str(item).strip()]


class DocumentAnalyzer:
    """Infers a DocumentProfile from document content.

    Args:
        completion: Chat model used for every facet.
    """

    def __init__(self, completion: CompletionProvider) -> None:
        self._completion = completion

    async def profile(
        self,
        content: str,
        file_name: str,
        title: str | None = None,
        document_type: DocumentType | None = None,
    ) -> DocumentProfile:
        """Analyze a document.

        A supplied title or type wins over the inferred one. Never raises for
        model failures: each facet degrades to its default.

        Args:
            content: Full document text.
            file_name: Used as the title when none can be inferred.
            title: Title given by the uploader.
            document_type: Type given by the uploader.

        Returns:
            DocumentProfile with every facet filled.
        """
        (
            (inferred_title, inferred_type),
            key_concepts,
            legal_areas,
            difficulty,
            articles,
            cases,
        ) = await asyncio.gather(
            self._title_and_type(content, file_name, document_type),
            self._key_concepts(content),
            self._legal_areas(content),
            self._difficulty(content),
            self._articles(content),
            self._cases(content),
        )

        profile = DocumentProfile(
            title=title or inferred_title,
            document_type=document_type or inferred_type,
            legal_areas=legal_areas,
            key_concepts=key_concepts,
            difficulty=difficulty,
            articles=articles,
            cases=cases,
        )
        logger.info(
            "Profiled %s: type=%s, areas=%s, difficulty=%s, %d articles",
            file_name,
            profile.document_type,
            profile.legal_areas,
            profile.difficulty,
            len(profile.articles),
        )
        return profile

    async def _title_and_type(
        self, content: str, file_name: str, suggested: DocumentType | None
    ) -> tuple[str, DocumentType]:
        fallback_type = suggested or DocumentType.STUDY_MATERIAL
        try:
            reply = await self._completion.complete(
                _TITLE_TYPE_PROMPT.format(content=content[:1500])
            )
            data = extract_json_object(reply)
        except CompletionError as exc:
            logger.warning("Title/type inference failed, using file name: %s", exc)
            return file_name, fallback_type

        title = str(data.get("title") or "").strip() or file_name
        return title, parse_document_type(data.get("type"), fallback_type)

    async def _key_concepts(self, content: str) -> list[str]:
        return await self._ask_list(_KEY_CONCEPTS_PROMPT, content[:2000], "key concepts", [])

    async def _legal_areas(self, content: str) -> list[str]:
        areas = await self._ask_list(
            _LEGAL_AREAS_PROMPT, content[:1500], "legal areas", ["General"]
        )
        return areas or ["General"]

    async def _difficulty(self, content: str) -> DifficultyLevel:
        try:
            reply = await self._completion.complete(
                _DIFFICULTY_PROMPT.format(content=content[:1000])
            )
        except CompletionError as exc:
            logger.warning("Difficulty assessment failed: %s", exc)
            return DifficultyLevel.INTERMEDIATE
        return parse_difficulty(reply)

    async def _articles(self, content: str) -> list[str]:
        articles = find_article_references(content)
        if len(articles) < _MIN_REGEX_ARTICLES:
            suggested = await self._ask_list(_ARTICLES_PROMPT, content[:1500], "articles", [])
            articles.extend(a for a in suggested if a not in articles)
        return articles

    async def _cases(self, content: str) -> list[str]:
        return await self._ask_list(_CASES_PROMPT, content[:1500], "case references", [])

    async def _ask_list(
        self, template: str, excerpt: str, facet: str, default: list[str]
    ) -> list[str]:
        try:
            reply = await self._completion.complete(template.format(content=excerpt))
            return _as_strings(extract_json_list(reply))
        except CompletionError as exc:
            logger.warning("Could not infer %s: %s", facet, exc)
            return list(default)
