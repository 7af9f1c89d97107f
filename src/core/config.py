"""
Application Configuration

Centralized settings management using Pydantic BaseSettings.
All values are loaded from environment variables or .env file.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings with environment variable binding.

    Required env vars (no defaults):
        POSTGRES_USER, POSTGRES_PASSWORD, POSTGRES_HOST, POSTGRES_DB

    Optional env vars:
        POSTGRES_PORT (5432), LOG_LEVEL (INFO), OLLAMA_BASE_URL,
        OLLAMA_MODEL (mistral), EMBEDDING_MODEL, chunking and retrieval knobs
    """

    PROJECT_NAME: str = "LexStudy"

    # Database
    POSTGRES_USER: str
    POSTGRES_PASSWORD: str
    POSTGRES_HOST: str
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str

    # Ollama LLM
    OLLAMA_BASE_URL: str = "http://localhost:11434"
    OLLAMA_MODEL: str = "mistral"
    OLLAMA_TIMEOUT: float = 120.0
    OLLAMA_TEMPERATURE: float = 0.7

    # Embedding Model (multilingual: the corpus is Spanish)
    EMBEDDING_MODEL: str = "paraphrase-multilingual-MiniLM-L12-v2"
    EMBEDDING_DIMENSION: int = 384
    EMBEDDING_BATCH_SIZE: int = 5
    EMBEDDING_BATCH_DELAY: float = 0.1  # seconds between batches

    # Chunking (characters, ~4 chars per token)
    FILE_CHUNK_SIZE: int = 500
    FILE_CHUNK_OVERLAP: int = 100
    TEXT_CHUNK_SIZE: int = 1000
    TEXT_CHUNK_OVERLAP: int = 200
    CHUNK_SIZE_WARNING: int = 400

    # Question generation
    QUESTION_CHUNK_SIZE: int = 1000
    QUESTION_MAX_CHUNKS: int = 3
    QUESTION_DEFAULT_COUNT: int = 5

    # Retrieval
    CHAT_TOP_K: int = 3
    STUDY_PLAN_TOP_K: int = 5
    SEARCH_DEFAULT_LIMIT: int = 10
    CHAT_HISTORY_LIMIT: int = 10

    # Uploads
    ALLOWED_EXTENSIONS: list[str] = [".txt", ".md", ".pdf", ".docx", ".html"]

    # Logging
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",  # Silently ignore unknown env vars
    )

    @property
    def DATABASE_URL(self) -> str:
        """Async PostgreSQL connection string using asyncpg driver."""
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )


settings = Settings()  # type: ignore[call-arg]
