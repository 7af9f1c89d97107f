"""
Search Schemas

Retrieved fragments and the semantic search endpoint contract.
"""

from typing import Any

from pydantic import BaseModel, Field


class SearchResult(BaseModel):
    """A fragment returned by the vector store.

    Attributes:
        id: Fragment id.
        content: Fragment text.
        score: Similarity score, higher is more relevant.
        metadata: Payload map stored with the fragment.
    """

    id: str
    content: str
    score: float
    metadata: dict[str, Any] = Field(default_factory=dict)


class SearchRequest(BaseModel):
    """Request body for semantic search."""

    query: str = Field("", max_length=2000, examples=["contrato de compraventa"])
    limit: int = Field(10, ge=1, le=50)


class SearchResponse(BaseModel):
    """Search results in descending relevance."""

    query: str
    results: list[SearchResult]
    total: int
