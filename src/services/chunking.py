"""
Paragraph-First Chunking

Splits extracted document text into bounded, overlapping chunks:

    SentenceSplitter  punctuation-based sentence units
    ChunkAssembler    greedy paragraph/sentence packing with word-tail overlap
    ChunkValidator    hard size guarantee (force-split on spaces) + size report
    DocumentChunker   assemble + validate + per-chunk metadata

Sizes are measured in characters (~4 characters per token for the
embedding and LLM budgets).
"""

import logging
import re
from datetime import datetime

import tiktoken

from src.core.config import settings
from src.schemas.chunking import ChunkData, ChunkMetadata, ChunkReport, chunk_id_for
from src.schemas.document import DocumentProfile, FileInfo

logger = logging.getLogger(__name__)

# Split point sits after the punctuation; the whitespace run is consumed.
_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")

# Any newline run (LF or CRLF) separates paragraphs.
_PARAGRAPH_BREAK = re.compile(r"(?:\r?\n)+")

# Fragments this short or shorter are abbreviation/punctuation artifacts.
_MIN_SENTENCE_LENGTH = 10

_TAIL_MAX_WORDS = 20
_TAIL_WORD_DIVISOR = 4

# Only used for the token estimate in chunk reports.
_ENCODER = tiktoken.get_encoding("cl100k_base")


def count_tokens(text: str) -> int:
    """Count tokens with the shared cl100k_base encoder."""
    return len(_ENCODER.encode(text))


def _check_bounds(max_chunk_size: int, overlap: int) -> None:
    if max_chunk_size <= 0:
        raise ValueError(f"max_chunk_size must be positive, got {max_chunk_size}")
    if overlap < 0:
        raise ValueError(f"overlap must be non-negative, got {overlap}")


def overlap_tail(text: str, overlap: int) -> str:
    """Return the text carried from the end of a chunk into the next one.

    Text no longer than ``overlap`` is carried whole. Otherwise the last
    ``min(20, word_count // 4)`` whitespace-separated words are carried,
    joined by single spaces. This word-count heuristic is intentionally
    coarse and is not a character-exact overlap.

    Args:
        text: The flushed chunk.
        overlap: Configured overlap in characters.

    Returns:
        Tail text, possibly empty.
    """
    if len(text) <= overlap:
        return text
    words = text.split()
    count = min(_TAIL_MAX_WORDS, len(words) // _TAIL_WORD_DIVISOR)
    if count == 0:
        return ""
    return " ".join(words[-count:])


class SentenceSplitter:
    """Splits a paragraph into sentence-like units on ``.``, ``!`` and ``?``."""

    def split(self, paragraph: str) -> list[str]:
        """Split into trimmed sentences, dropping fragments of 10 chars or fewer.

        Never returns an empty list: when every fragment is filtered out the
        paragraph itself is returned unchanged.

        Args:
            paragraph: Text to split.

        Returns:
            Sentences in original order.
        """
        sentences = [
            piece.strip()
            for piece in _SENTENCE_BOUNDARY.split(paragraph)
            if len(piece.strip()) > _MIN_SENTENCE_LENGTH
        ]
        return sentences or [paragraph]

    def segment(self, paragraph: str) -> list[str]:
        """Split like :meth:`split`, but keep every token.

        Short fragments ("Art.", "N°.", "Sr.") are joined to the sentence that
        follows them, or to the previous one when nothing follows, so the
        segments concatenate back to the paragraph's words.

        Args:
            paragraph: Text to split.

        Returns:
            Segments in original order (empty for blank input).
        """
        segments: list[str] = []
        pending: list[str] = []
        for piece in _SENTENCE_BOUNDARY.split(paragraph):
            piece = piece.strip()
            if not piece:
                continue
            pending.append(piece)
            if len(piece) > _MIN_SENTENCE_LENGTH:
                segments.append(" ".join(pending))
                pending = []

        if pending:
            if segments:
                segments[-1] = " ".join([segments[-1], *pending])
            else:
                segments.append(" ".join(pending))
        return segments


class ChunkAssembler:
    """Greedily packs paragraphs (or sentences of long paragraphs) into chunks.

    On overflow the current chunk is flushed and its :func:`overlap_tail` is
    carried into the next one. The output is not guaranteed to respect the
    size limit; run it through :class:`ChunkValidator`.

    Args:
        splitter: Sentence splitter for paragraphs longer than the limit.
    """

    def __init__(self, splitter: SentenceSplitter | None = None) -> None:
        self._splitter = splitter or SentenceSplitter()

    def assemble(self, text: str, max_chunk_size: int, overlap: int) -> list[str]:
        """Assemble chunks from raw document text.

        Args:
            text: Full extracted text.
            max_chunk_size: Target chunk size in characters.
            overlap: Overlap budget in characters.

        Returns:
            Trimmed chunks in document order. Empty for blank text.

        Raises:
            ValueError: If max_chunk_size <= 0 or overlap < 0.
        """
        _check_bounds(max_chunk_size, overlap)

        chunks: list[str] = []
        current = ""

        for paragraph in _PARAGRAPH_BREAK.split(text):
            paragraph = paragraph.strip()
            if not paragraph:
                continue

            if current and len(current) + len(paragraph) > max_chunk_size:
                current = self._flush(current, chunks, overlap)

            if len(paragraph) > max_chunk_size:
                for sentence in self._splitter.segment(paragraph):
                    if current and len(current) + len(sentence) > max_chunk_size:
                        current = self._flush(current, chunks, overlap)
                    current += sentence + " "
            else:
                current += paragraph + " "

        if current.strip():
            chunks.append(current.strip())

        return chunks

    @staticmethod
    def _flush(current: str, chunks: list[str], overlap: int) -> str:
        """Emit the current chunk and return the buffer for the next one."""
        completed = current.strip()
        if completed:
            chunks.append(completed)
        carried = overlap_tail(completed, overlap)
        return f"{carried} " if carried else ""


class ChunkValidator:
    """Guarantees every chunk fits the size limit.

    Oversized chunks are re-packed word by word (single-space tokens) with the
    same word-tail overlap as the assembler. A token longer than the limit on
    its own is cut into limit-sized slices; the first slice fills whatever
    room the carried overlap leaves.

    Args:
        warning_threshold: Advisory size above which chunks are reported.
            Defaults to settings.CHUNK_SIZE_WARNING. Independent of the limit.
    """

    def __init__(self, warning_threshold: int | None = None) -> None:
        self._warning_threshold = (
            warning_threshold if warning_threshold is not None else settings.CHUNK_SIZE_WARNING
        )

    @property
    def warning_threshold(self) -> int:
        """Advisory chunk size in characters."""
        return self._warning_threshold

    def validate(self, chunks: list[str], max_chunk_size: int, overlap: int) -> list[str]:
        """Return chunks that all satisfy ``len(chunk) <= max_chunk_size``.

        Chunks already in bound pass through unchanged, so validating twice
        gives the same result as validating once.

        Raises:
            ValueError: If max_chunk_size <= 0 or overlap < 0.
        """
        _check_bounds(max_chunk_size, overlap)

        validated: list[str] = []
        for chunk in chunks:
            if len(chunk) <= max_chunk_size:
                validated.append(chunk)
                continue
            pieces = self._force_split(chunk, max_chunk_size, overlap)
            logger.debug(
                "Force-split chunk of %d chars into %d pieces", len(chunk), len(pieces)
            )
            validated.extend(pieces)
        return validated

    def report(self, chunks: list[str]) -> ChunkReport:
        """Summarize chunk sizes; logs a warning when any exceed the threshold.

        Purely informational: the chunks are not modified.
        """
        sizes = [len(chunk) for chunk in chunks]
        oversized = [size for size in sizes if size > self._warning_threshold]
        report = ChunkReport(
            count=len(chunks),
            average_size=sum(sizes) / len(sizes) if sizes else 0.0,
            max_size=max(sizes, default=0),
            oversized_count=len(oversized),
            oversized_max=max(oversized, default=0),
            threshold=self._warning_threshold,
            estimated_tokens=sum(count_tokens(chunk) for chunk in chunks),
        )
        if oversized:
            logger.warning(
                "%d chunks exceed %d chars (largest: %d)",
                report.oversized_count,
                report.threshold,
                report.oversized_max,
            )
        return report

    @staticmethod
    def _force_split(chunk: str, max_chunk_size: int, overlap: int) -> list[str]:
        pieces: list[str] = []
        current = ""

        for word in chunk.split(" "):
            if not word.strip():
                continue

            if current and len(current) + 1 + len(word) > max_chunk_size:
                pieces.append(current)
                current = overlap_tail(current, overlap)
                # Carried text that leaves no room for a normal word is dropped.
                if len(word) <= max_chunk_size and len(current) + 1 + len(word) > max_chunk_size:
                    current = ""

            if len(word) > max_chunk_size:
                if current:
                    room = max_chunk_size - len(current) - 1
                    if room > 0:
                        pieces.append(f"{current} {word[:room]}")
                        word = word[room:]
                slices = [
                    word[start : start + max_chunk_size]
                    for start in range(0, len(word), max_chunk_size)
                ]
                pieces.extend(slices[:-1])
                current = slices[-1]
                continue

            current = f"{current} {word}" if current else word

        if current:
            pieces.append(current)
        return pieces


class DocumentChunker:
    """Turns a document's text into validated chunks with typed metadata.

    Args:
        assembler: ChunkAssembler instance.
        validator: ChunkValidator instance.
    """

    def __init__(
        self,
        assembler: ChunkAssembler | None = None,
        validator: ChunkValidator | None = None,
    ) -> None:
        self._assembler = assembler or ChunkAssembler()
        self._validator = validator or ChunkValidator()

    @property
    def validator(self) -> ChunkValidator:
        """The validator used for the size guarantee and reports."""
        return self._validator

    def split_text(self, text: str, max_chunk_size: int, overlap: int) -> list[str]:
        """Assemble and validate chunk texts.

        Args:
            text: Full document text.
            max_chunk_size: Hard size limit in characters.
            overlap: Overlap budget in characters.

        Returns:
            Bounded chunk texts in document order.
        """
        assembled = self._assembler.assemble(text, max_chunk_size, overlap)
        return self._validator.validate(assembled, max_chunk_size, overlap)

    def chunk_document(
        self,
        text: str,
        profile: DocumentProfile,
        file_info: FileInfo,
        document_id: str,
        created_at: datetime,
        max_chunk_size: int,
        overlap: int,
    ) -> list[ChunkData]:
        """Split a document and attach per-chunk metadata.

        ``chunk_index``, ``chunk_id`` and ``total_chunks`` are fixed here,
        before anything is embedded or stored.

        Returns:
            List of ChunkData, one per chunk. Empty list if text is blank.
        """
        texts = self.split_text(text, max_chunk_size, overlap)
        if not texts:
            logger.warning("Empty text for document %s, nothing to chunk", document_id)
            return []

        report = self._validator.report(texts)
        total_chunks = len(texts)

        chunks = [
            ChunkData(
                text=chunk_text,
                chunk_index=idx,
                total_chunks=total_chunks,
                metadata=ChunkMetadata(
                    title=profile.title,
                    document_type=profile.document_type,
                    legal_areas=profile.legal_areas,
                    key_concepts=profile.key_concepts,
                    difficulty=profile.difficulty,
                    articles=profile.articles,
                    cases=profile.cases,
                    source=file_info.source,
                    created_at=created_at,
                    document_id=document_id,
                    chunk_index=idx,
                    chunk_id=chunk_id_for(document_id, idx),
                    total_chunks=total_chunks,
                    file_name=file_info.file_name,
                    file_size=file_info.file_size,
                    mime_type=file_info.mime_type,
                ),
            )
            for idx, chunk_text in enumerate(texts)
        ]

        logger.info(
            "Chunked document %s into %d chunks (avg %.0f chars, ~%d tokens, max %d, overlap %d)",
            document_id,
            total_chunks,
            report.average_size,
            report.estimated_tokens,
            max_chunk_size,
            overlap,
        )
        return chunks
