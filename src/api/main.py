"""
FastAPI Application Entry Point

Main application factory with router registration and startup/shutdown events.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.api.dependencies import close_clients
from src.api.routers import document, health, questions, study
from src.core.config import settings
from src.core.database import init_db
from src.core.logging import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Handles:
    - Startup: Logging setup, database initialization
    - Shutdown: Close the shared Ollama HTTP client
    """
    # Startup
    setup_logging()
    await init_db()
    yield
    # Shutdown
    await close_clients()


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Chilean law study assistant: document RAG, question generation and tutoring",
    version="0.1.0",
    lifespan=lifespan,
)

# Register routers
app.include_router(health.router, tags=["Health"])
app.include_router(document.router, tags=["Documents"])
app.include_router(questions.router, tags=["Questions"])
app.include_router(study.router, tags=["Study"])


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": f"Welcome to {settings.PROJECT_NAME}"}
