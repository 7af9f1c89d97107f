"""
Unit tests for paragraph-first chunking.

Tests sentence splitting, greedy assembly with word-tail overlap, the hard
size guarantee of the validator, size reports, chunk metadata and edge cases
(empty text, oversized tokens, invalid bounds).
"""

import logging
from datetime import datetime

import pytest

from src.models.document import DifficultyLevel, DocumentType
from src.schemas.chunking import ChunkMetadata
from src.schemas.document import DocumentProfile, FileInfo
from src.services.chunking import (
    ChunkAssembler,
    ChunkValidator,
    DocumentChunker,
    SentenceSplitter,
    count_tokens,
    overlap_tail,
)


@pytest.fixture()
def splitter() -> SentenceSplitter:
    return SentenceSplitter()


@pytest.fixture()
def assembler() -> ChunkAssembler:
    return ChunkAssembler()


@pytest.fixture()
def validator() -> ChunkValidator:
    return ChunkValidator(warning_threshold=400)


@pytest.fixture()
def chunker() -> DocumentChunker:
    return DocumentChunker()


def _legal_text(paragraphs: int) -> str:
    """Generate paragraphs of plausible legal prose (~90 chars each)."""
    return "\n\n".join(
        f"El artículo {i} del Código Civil regula la materia número {i} con detalle suficiente."
        for i in range(paragraphs)
    )


# --- overlap_tail ---


def test_overlap_tail_short_text_carried_whole() -> None:
    """Text no longer than the overlap is carried unchanged."""
    assert overlap_tail("Hola mundo", 100) == "Hola mundo"


def test_overlap_tail_takes_quarter_of_words() -> None:
    """Long text carries its last word_count // 4 words."""
    text = "uno dos tres cuatro cinco seis siete ocho"
    assert overlap_tail(text, 10) == "siete ocho"


def test_overlap_tail_capped_at_twenty_words() -> None:
    """At most 20 words are carried."""
    words = [f"palabra{i}" for i in range(200)]
    tail = overlap_tail(" ".join(words), 50)
    assert tail.split() == words[-20:]


def test_overlap_tail_too_few_words_is_empty() -> None:
    """Fewer than four words over the budget carries nothing."""
    assert overlap_tail("uno dos tres", 5) == ""


# --- SentenceSplitter ---


def test_split_on_terminal_punctuation(splitter: SentenceSplitter) -> None:
    """Sentences end at '.', '!' and '?' followed by whitespace."""
    text = "Primera oración completa. Segunda oración completa! ¿Tercera oración aquí?"
    assert splitter.split(text) == [
        "Primera oración completa.",
        "Segunda oración completa!",
        "¿Tercera oración aquí?",
    ]


def test_split_drops_short_fragments(splitter: SentenceSplitter) -> None:
    """Fragments of 10 characters or fewer are filtered out."""
    text = "Art. 1545 del Código Civil establece la ley del contrato."
    assert splitter.split(text) == ["1545 del Código Civil establece la ley del contrato."]


def test_split_returns_paragraph_when_everything_filtered(splitter: SentenceSplitter) -> None:
    """A paragraph made only of short fragments comes back whole."""
    assert splitter.split("Hola. Sí.") == ["Hola. Sí."]


def test_segment_keeps_short_fragments(splitter: SentenceSplitter) -> None:
    """segment() joins abbreviations to the following sentence instead of dropping them."""
    text = "Art. 1545 del Código Civil establece la ley del contrato."
    assert splitter.segment(text) == [text]


def test_segment_attaches_trailing_fragment(splitter: SentenceSplitter) -> None:
    """A short fragment at the end is joined to the previous sentence."""
    assert splitter.segment("Esto es una oración larga. Fin.") == [
        "Esto es una oración larga. Fin."
    ]


def test_segment_blank_input(splitter: SentenceSplitter) -> None:
    assert splitter.segment("   ") == []


# --- ChunkAssembler ---


def test_assemble_empty_text(assembler: ChunkAssembler) -> None:
    """Blank input produces no chunks."""
    assert assembler.assemble("", 500, 100) == []
    assert assembler.assemble(" \n\n \r\n ", 500, 100) == []


def test_assemble_short_text_single_chunk(assembler: ChunkAssembler) -> None:
    """Text under the limit is one chunk."""
    assert assembler.assemble("  Hola mundo.  ", 500, 100) == ["Hola mundo."]


def test_assemble_joins_paragraphs_with_space(assembler: ChunkAssembler) -> None:
    """Paragraphs that fit together are joined by a single space."""
    text = "Primer párrafo.\n\nSegundo párrafo.\r\nTercer párrafo."
    assert assembler.assemble(text, 500, 100) == [
        "Primer párrafo. Segundo párrafo. Tercer párrafo."
    ]


def test_assemble_carries_overlap_tail(assembler: ChunkAssembler) -> None:
    """Every chunk after the first starts with the tail of the previous chunk."""
    overlap = 60
    chunks = assembler.assemble(_legal_text(30), 300, overlap)

    assert len(chunks) > 1
    for previous, current in zip(chunks, chunks[1:], strict=False):
        assert current.startswith(overlap_tail(previous, overlap))


def test_assemble_packs_sentences_of_long_paragraph(assembler: ChunkAssembler) -> None:
    """A paragraph over the limit is packed sentence by sentence, carrying tails."""
    paragraph = (
        "Art. 5. El contrato legalmente celebrado es ley para los contratantes. "
        "Solo puede ser invalidado por consentimiento mutuo. "
        "También por causas legales que la ley establezca. Fin."
    )
    overlap = 30

    chunks = assembler.assemble(paragraph, 100, overlap)

    assert chunks == [
        "Art. 5. El contrato legalmente celebrado es ley para los contratantes.",
        "los contratantes. Solo puede ser invalidado por consentimiento mutuo.",
        "consentimiento mutuo. También por causas legales que la ley establezca. Fin.",
    ]
    for previous, current in zip(chunks, chunks[1:], strict=False):
        assert current.startswith(overlap_tail(previous, overlap))

    # Short fragments ride along with their neighbours instead of being dropped
    words = " ".join(chunks).split()
    for word in paragraph.split():
        assert word in words


def test_assemble_rejects_invalid_bounds(assembler: ChunkAssembler) -> None:
    with pytest.raises(ValueError, match="max_chunk_size"):
        assembler.assemble("texto", 0, 0)
    with pytest.raises(ValueError, match="overlap"):
        assembler.assemble("texto", 100, -1)


# --- ChunkValidator ---


def test_validate_passes_bounded_chunks_through(validator: ChunkValidator) -> None:
    chunks = ["uno", "dos tres"]
    assert validator.validate(chunks, 10, 2) == chunks


def test_validate_slices_oversized_token(validator: ChunkValidator) -> None:
    """A single token longer than the limit is cut into limit-sized slices."""
    assert validator.validate(["a" * 25], 10, 0) == ["a" * 10, "a" * 10, "a" * 5]


def test_validate_is_idempotent(validator: ChunkValidator) -> None:
    chunks = [" ".join(f"palabra{i}" for i in range(300)), "x" * 1200, "corto"]
    once = validator.validate(chunks, 200, 50)
    assert validator.validate(once, 200, 50) == once


def test_validate_rejects_invalid_bounds(validator: ChunkValidator) -> None:
    with pytest.raises(ValueError):
        validator.validate([], -5, 0)
    with pytest.raises(ValueError):
        validator.validate([], 10, -1)


def test_report_flags_chunks_over_threshold(caplog: pytest.LogCaptureFixture) -> None:
    """Chunks above the advisory threshold are counted and logged."""
    validator = ChunkValidator(warning_threshold=5)
    with caplog.at_level(logging.WARNING, logger="src.services.chunking"):
        report = validator.report(["abc", "abcdefgh"])

    assert report.count == 2
    assert report.average_size == 5.5
    assert report.max_size == 8
    assert report.oversized_count == 1
    assert report.oversized_max == 8
    assert report.threshold == 5
    assert report.estimated_tokens > 0
    assert "exceed" in caplog.text


def test_report_empty_sequence(validator: ChunkValidator) -> None:
    report = validator.report([])
    assert report.count == 0
    assert report.average_size == 0.0
    assert report.oversized_count == 0


# --- DocumentChunker.split_text ---


def test_split_text_long_token_example(chunker: DocumentChunker) -> None:
    """Short sentences followed by a 600-char token at 500/100."""
    text = "Para uno. Para dos. " + "x" * 600
    assert chunker.split_text(text, 500, 100) == [
        "Para uno. Para dos.",
        "Para uno. Para dos. " + "x" * 480,
        "x" * 120,
    ]


def test_split_text_paragraph_of_exact_limit(chunker: DocumentChunker) -> None:
    """A paragraph of exactly the limit is one chunk; one character more is not."""
    paragraph = ("x" * 99 + " ") * 4 + "x" * 100
    assert len(paragraph) == 500
    assert chunker.split_text(paragraph, 500, 100) == [paragraph]

    longer = paragraph + "y"
    chunks = chunker.split_text(longer, 500, 100)
    assert chunks == [" ".join(["x" * 99] * 4), "x" * 99 + " " + "x" * 100 + "y"]


@pytest.mark.parametrize(("max_size", "overlap"), [(500, 100), (200, 50), (80, 200), (30, 0)])
def test_split_text_chunks_within_bounds(
    chunker: DocumentChunker, max_size: int, overlap: int
) -> None:
    """No chunk ever exceeds the hard limit, whatever the input."""
    text = (
        _legal_text(20)
        + "\n"
        + "Una línea muy larga sin saltos " * 40
        + "\n\n"
        + "https://www.bcn.cl/" + "leychile" * 60
    )
    chunks = chunker.split_text(text, max_size, overlap)

    assert chunks
    assert all(0 < len(chunk) <= max_size for chunk in chunks)


def test_split_text_is_deterministic(chunker: DocumentChunker) -> None:
    text = _legal_text(25)
    assert chunker.split_text(text, 250, 60) == chunker.split_text(text, 250, 60)


def test_split_text_preserves_words(chunker: DocumentChunker) -> None:
    """Every word of the input appears in some chunk."""
    text = "Art. 5. La ley. " + _legal_text(10)
    joined = " ".join(chunker.split_text(text, 120, 30))
    for word in text.split():
        assert word in joined


# --- DocumentChunker.chunk_document ---


def test_chunk_document_metadata(chunker: DocumentChunker) -> None:
    """Metadata is fixed per chunk and copied from the profile and file info."""
    profile = DocumentProfile(
        title="Contratos",
        document_type=DocumentType.CODE,
        legal_areas=["Derecho Civil", "Derecho Comercial"],
        key_concepts=["contrato"],
        difficulty=DifficultyLevel.BASIC,
        articles=["1545"],
    )
    file_info = FileInfo(file_name="contratos.txt", file_size=1234, source="Upload")
    created_at = datetime(2026, 1, 1, 12, 0, 0)

    chunks = chunker.chunk_document(
        text=_legal_text(12),
        profile=profile,
        file_info=file_info,
        document_id="doc-1",
        created_at=created_at,
        max_chunk_size=300,
        overlap=60,
    )

    assert len(chunks) > 1
    for idx, chunk in enumerate(chunks):
        assert chunk.chunk_index == idx
        assert chunk.total_chunks == len(chunks)
        assert chunk.metadata.chunk_id == f"doc-1_chunk_{idx}"
        assert chunk.metadata.title == "Contratos"
        assert chunk.metadata.file_name == "contratos.txt"

    payload = chunks[0].metadata.to_payload()
    assert payload["legal_areas"] == "Derecho Civil,Derecho Comercial"
    assert payload["category"] == "Code"
    assert payload["document_type"] == "Code"
    assert payload["difficulty"] == "Basic"
    assert payload["created_at"] == "2026-01-01T12:00:00"

    # The stored map reads back into the same typed metadata
    assert ChunkMetadata.from_payload({**payload, "content": chunks[0].text}) == chunks[0].metadata


def test_chunk_document_empty_text(chunker: DocumentChunker) -> None:
    chunks = chunker.chunk_document(
        text="   ",
        profile=DocumentProfile(),
        file_info=FileInfo(file_name="vacio.txt"),
        document_id="doc-2",
        created_at=datetime(2026, 1, 1),
        max_chunk_size=500,
        overlap=100,
    )
    assert chunks == []


def test_count_tokens() -> None:
    assert count_tokens("Hola mundo") > 0
    assert count_tokens("") == 0


def test_report_estimates_tokens(validator: ChunkValidator) -> None:
    chunks = ["El contrato es ley.", "La nulidad puede ser absoluta."]
    assert validator.report(chunks).estimated_tokens == sum(count_tokens(c) for c in chunks)
