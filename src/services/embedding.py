"""
Embedding Service

Generates embeddings with sentence-transformers. The model is loaded once and
reused; batched encoding runs in a worker thread with a short pause between
batches so ingestion never monopolizes the model.
"""

import asyncio
import logging

from sentence_transformers import SentenceTransformer

from src.core.config import settings
from src.core.exceptions import EmbeddingError

logger = logging.getLogger(__name__)


class EmbeddingService:
    """Encodes text into normalized dense vectors.

    Args:
        model_name: HuggingFace model identifier.
            Defaults to settings.EMBEDDING_MODEL.
        batch_size: Number of texts per batch.
            Defaults to settings.EMBEDDING_BATCH_SIZE.
        batch_delay: Seconds to wait between batches in embed_batched.
            Defaults to settings.EMBEDDING_BATCH_DELAY.
    """

    def __init__(
        self,
        model_name: str | None = None,
        batch_size: int | None = None,
        batch_delay: float | None = None,
    ) -> None:
        self._model_name = model_name or settings.EMBEDDING_MODEL
        self._batch_size = batch_size or settings.EMBEDDING_BATCH_SIZE
        self._batch_delay = (
            batch_delay if batch_delay is not None else settings.EMBEDDING_BATCH_DELAY
        )
        self._model = SentenceTransformer(self._model_name)
        self._dimension = settings.EMBEDDING_DIMENSION

        logger.info(
            "EmbeddingService initialized: model=%s, dimension=%d, batch_size=%d",
            self._model_name,
            self._dimension,
            self._batch_size,
        )

    @property
    def model_name(self) -> str:
        """Name of the loaded embedding model."""
        return self._model_name

    @property
    def dimension(self) -> int:
        """Dimension of the output embeddings."""
        return self._dimension

    @property
    def batch_size(self) -> int:
        """Number of texts encoded per batch."""
        return self._batch_size

    def embed_text(self, text: str) -> list[float]:
        """Embed a single text.

        Raises:
            ValueError: If text is blank.
            EmbeddingError: If the model fails.
        """
        if not text.strip():
            raise ValueError("Cannot embed blank text")
        return self._encode([text])[0]

    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for a list of texts, batch_size at a time.

        Args:
            texts: List of text strings to embed.

        Returns:
            List of embedding vectors, each of length self.dimension.

        Raises:
            ValueError: If texts is empty.
            EmbeddingError: If the model fails.
        """
        if not texts:
            raise ValueError("Cannot embed an empty list of texts")

        all_embeddings: list[list[float]] = []
        for i in range(0, len(texts), self._batch_size):
            all_embeddings.extend(self._encode(texts[i : i + self._batch_size]))

        logger.info("Generated %d embeddings (dim=%d)", len(all_embeddings), self._dimension)
        return all_embeddings

    async def embed_batched(self, texts: list[str]) -> list[list[float]]:
        """Embed texts off the event loop, pausing batch_delay between batches.

        Returns:
            One vector per text, in input order. Empty for empty input.

        Raises:
            EmbeddingError: If the model fails on any batch.
        """
        embeddings: list[list[float]] = []
        total_batches = (len(texts) + self._batch_size - 1) // self._batch_size

        for batch_num, start in enumerate(range(0, len(texts), self._batch_size), start=1):
            batch = texts[start : start + self._batch_size]
            embeddings.extend(await asyncio.to_thread(self._encode, batch))
            logger.debug("Embedded batch %d/%d", batch_num, total_batches)
            if batch_num < total_batches and self._batch_delay > 0:
                await asyncio.sleep(self._batch_delay)

        return embeddings

    def _encode(self, batch: list[str]) -> list[list[float]]:
        try:
            vectors = self._model.encode(
                batch,
                show_progress_bar=False,
                normalize_embeddings=True,
            )
        except Exception as exc:
            raise EmbeddingError(
                f"Embedding model failed: {exc}",
                {"model": self._model_name, "batch_size": len(batch)},
            ) from exc
        return vectors.tolist()
