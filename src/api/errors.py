"""
HTTP Error Mapping

Translates domain exceptions into HTTPException responses.
"""

import logging

from fastapi import HTTPException

from src.core.exceptions import (
    CompletionError,
    EmbeddingError,
    ExtractionError,
    IndexingError,
    LexStudyError,
    MalformedCompletionError,
    UnsupportedFormatError,
    VectorStoreError,
)

logger = logging.getLogger(__name__)


def to_http_exception(exc: LexStudyError) -> HTTPException:
    """Map a domain error to a status code and JSON-friendly detail.

    UnsupportedFormatError → 415, other extraction errors → 400,
    MalformedCompletionError → 502, CompletionError → 503, indexing,
    embedding and vector store errors → 500.
    """
    if isinstance(exc, UnsupportedFormatError):
        return HTTPException(status_code=415, detail=exc.message)
    if isinstance(exc, ExtractionError):
        return HTTPException(status_code=400, detail=exc.message)
    if isinstance(exc, MalformedCompletionError):
        logger.warning("Malformed model output: %s", exc.message)
        return HTTPException(status_code=502, detail=exc.message)
    if isinstance(exc, CompletionError):
        logger.error("Language model unavailable: %s", exc)
        return HTTPException(status_code=503, detail=exc.message)
    if isinstance(exc, IndexingError):
        logger.error("Indexing failed: %s", exc)
        return HTTPException(
            status_code=500,
            detail={
                "message": exc.message,
                "chunk_index": exc.chunk_index,
                "indexed_ids": exc.indexed_ids,
            },
        )
    if isinstance(exc, (EmbeddingError, VectorStoreError)):
        logger.error("Storage pipeline failed: %s", exc, exc_info=True)
        return HTTPException(status_code=500, detail=exc.message)

    logger.error("Unhandled domain error: %s", exc, exc_info=True)
    return HTTPException(status_code=500, detail=exc.message)
