"""
Semantic Retrieval

Embeds a query and asks the vector store for the closest fragments.
"""

import logging

from src.core.protocols import EmbeddingProvider, VectorStore
from src.schemas.search import SearchResult

logger = logging.getLogger(__name__)

# Used when the caller searches with a blank query (e.g. "list everything").
DEFAULT_QUERY = "documento legal"


class SemanticRetriever:
    """Query-time retrieval over indexed fragments.

    Args:
        embedder: Embedding provider used for the query vector.
        store: Vector store holding the fragments.
    """

    def __init__(self, embedder: EmbeddingProvider, store: VectorStore) -> None:
        self._embedder = embedder
        self._store = store

    async def search(
        self, query: str, limit: int, document_id: str | None = None
    ) -> list[SearchResult]:
        """Return up to ``limit`` fragments by descending similarity.

        Args:
            query: Natural-language query; blank falls back to DEFAULT_QUERY.
            limit: Maximum number of fragments.
            document_id: Optional restriction to one document.

        Raises:
            EmbeddingError: If the query cannot be embedded.
            VectorStoreError: If the store query fails.
        """
        query = query.strip() or DEFAULT_QUERY
        vector = self._embedder.embed_text(query)
        results = await self._store.search(vector, limit, document_id=document_id)
        logger.info("Retrieved %d fragments for query %r", len(results), query[:60])
        return results
