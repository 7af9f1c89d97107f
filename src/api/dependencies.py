"""
API Dependencies

Process-wide singletons (embedding model, Ollama client) and per-request
service factories for FastAPI's ``Depends``.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.clients.ollama import OllamaClient
from src.core.database import get_db
from src.repositories.chunk import ChunkRepository
from src.services.embedding import EmbeddingService
from src.services.ingestion import IngestionService
from src.services.questions import QuestionGenerator
from src.services.retrieval import SemanticRetriever
from src.services.tutor import StudyAssistant

# Module-level singletons: model loaded once, reused across requests
_embedding_service: EmbeddingService | None = None
_ollama_client: OllamaClient | None = None


def get_embedding_service() -> EmbeddingService:
    """Lazy-init singleton for the embedding service."""
    global _embedding_service  # noqa: PLW0603
    if _embedding_service is None:
        _embedding_service = EmbeddingService()
    return _embedding_service


def get_ollama_client() -> OllamaClient:
    """Lazy-init singleton for the Ollama client."""
    global _ollama_client  # noqa: PLW0603
    if _ollama_client is None:
        _ollama_client = OllamaClient()
    return _ollama_client


async def close_clients() -> None:
    """Release the shared HTTP client (called on shutdown)."""
    global _ollama_client  # noqa: PLW0603
    if _ollama_client is not None:
        await _ollama_client.close()
        _ollama_client = None


def get_retriever(
    session: AsyncSession = Depends(get_db),
    embedder: EmbeddingService = Depends(get_embedding_service),
) -> SemanticRetriever:
    """Retriever bound to the request session."""
    return SemanticRetriever(embedder, ChunkRepository(session))


def get_ingestion_service(
    embedder: EmbeddingService = Depends(get_embedding_service),
    completion: OllamaClient = Depends(get_ollama_client),
) -> IngestionService:
    """Ingestion service sharing the process-wide model and client."""
    return IngestionService(embedding_service=embedder, completion=completion)


def get_question_generator(
    retriever: SemanticRetriever = Depends(get_retriever),
    completion: OllamaClient = Depends(get_ollama_client),
) -> QuestionGenerator:
    """Question generator for the request."""
    return QuestionGenerator(completion, retriever)


def get_study_assistant(
    retriever: SemanticRetriever = Depends(get_retriever),
    completion: OllamaClient = Depends(get_ollama_client),
) -> StudyAssistant:
    """Study assistant for the request."""
    return StudyAssistant(completion, retriever)
