"""
Health Check Router

Provides system health status and dependency checks.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_ollama_client
from src.clients.ollama import OllamaClient
from src.core.database import get_db
from src.core.exceptions import VectorStoreError
from src.repositories.chunk import ChunkRepository
from src.schemas.health import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(
    session: AsyncSession = Depends(get_db),
    ollama: OllamaClient = Depends(get_ollama_client),
) -> HealthResponse:
    """Health check endpoint.

    Verifies database connectivity via a lightweight ``SELECT 1`` query,
    whether the fragment table exists, and whether Ollama answers.

    Returns:
        HealthResponse: System status with dependency availability.
    """
    db_ok = False
    store_ok = False
    try:
        await session.execute(text("SELECT 1"))
        db_ok = True
        store_ok = await ChunkRepository(session).collection_exists()
    except (SQLAlchemyError, OSError, VectorStoreError):
        logger.warning("Database health check failed", exc_info=True)

    ollama_ok = await ollama.is_available()

    return HealthResponse(
        status="ok" if db_ok and ollama_ok else "degraded",
        ollama_available=ollama_ok,
        database_available=db_ok,
        vector_store_ready=store_ok,
    )
