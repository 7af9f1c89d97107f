"""
Ingestion Unit Tests

Tests DocumentIngestionPipeline and IngestionService with mocked
collaborators. No real DB, no real embedding model, no Ollama.
"""

import uuid
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.core.exceptions import (
    EmbeddingError,
    ExtractionFailedError,
    IndexingError,
    UnsupportedFormatError,
    VectorStoreError,
)
from src.models.document import Document, DocumentType
from src.schemas.document import DocumentProfile, FileInfo
from src.services.ingestion import (
    DocumentIngestionPipeline,
    IngestionError,
    IngestionService,
    fragment_id_for,
)

_TEXT = "\n\n".join(
    f"Párrafo {i}: el contrato de compraventa obliga al vendedor a entregar la cosa vendida."
    for i in range(12)
)


def _fake_embed(texts: list[str]) -> list[list[float]]:
    return [[float(i)] * 4 for i in range(len(texts))]


@pytest.fixture()
def embedder() -> MagicMock:
    svc = MagicMock()
    svc.dimension = 4
    svc.embed_batched = AsyncMock(side_effect=_fake_embed)
    return svc


@pytest.fixture()
def store() -> MagicMock:
    repo = MagicMock()
    repo.upsert = AsyncMock(side_effect=lambda fragment_id, vector, payload: fragment_id)
    return repo


@pytest.fixture()
def pipeline(embedder: MagicMock, store: MagicMock) -> DocumentIngestionPipeline:
    return DocumentIngestionPipeline(embedder=embedder, store=store)


async def _ingest(pipeline: DocumentIngestionPipeline, text: str = _TEXT):
    return await pipeline.ingest(
        text=text,
        profile=DocumentProfile(title="Compraventa", legal_areas=["Derecho Civil"]),
        file_info=FileInfo(file_name="compraventa.txt", file_size=len(text)),
        document_id="doc-1",
        max_chunk_size=300,
        overlap=60,
        created_at=datetime(2026, 1, 1),
    )


# ---------------------------------------------------------------------------
# DocumentIngestionPipeline
# ---------------------------------------------------------------------------


class TestDocumentIngestionPipeline:
    """Tests for the chunk → embed → index hand-off."""

    @pytest.mark.asyncio(loop_scope="session")
    async def test_ingest_indexes_every_chunk_in_order(
        self, pipeline: DocumentIngestionPipeline, store: MagicMock, embedder: MagicMock
    ) -> None:
        result = await _ingest(pipeline)

        assert result.chunk_count == len(result.chunks) > 1
        assert store.upsert.await_count == len(result.chunks)
        embedder.embed_batched.assert_awaited_once()

        for idx, call in enumerate(store.upsert.await_args_list):
            fragment_id, vector, payload = call.args
            assert payload["chunk_index"] == idx
            assert payload["chunk_id"] == f"doc-1_chunk_{idx}"
            assert payload["content"] == result.chunks[idx].text
            assert payload["legal_areas"] == "Derecho Civil"
            assert vector == [float(idx)] * 4
            assert fragment_id == fragment_id_for(f"doc-1_chunk_{idx}")

        assert result.fragment_ids == [
            fragment_id_for(f"doc-1_chunk_{i}") for i in range(len(result.chunks))
        ]

    @pytest.mark.asyncio(loop_scope="session")
    async def test_ingest_empty_text_touches_nothing(
        self, pipeline: DocumentIngestionPipeline, store: MagicMock, embedder: MagicMock
    ) -> None:
        result = await _ingest(pipeline, text="   ")

        assert result.chunks == []
        assert result.fragment_ids == []
        embedder.embed_batched.assert_not_awaited()
        store.upsert.assert_not_awaited()

    @pytest.mark.asyncio(loop_scope="session")
    async def test_embedding_failure_indexes_nothing(
        self, pipeline: DocumentIngestionPipeline, store: MagicMock, embedder: MagicMock
    ) -> None:
        embedder.embed_batched.side_effect = EmbeddingError("model crashed")

        with pytest.raises(EmbeddingError):
            await _ingest(pipeline)
        store.upsert.assert_not_awaited()

    @pytest.mark.asyncio(loop_scope="session")
    async def test_store_failure_reports_partial_ids(
        self, pipeline: DocumentIngestionPipeline, store: MagicMock
    ) -> None:
        """Fragments before the failing chunk stay indexed and are reported."""
        calls: list[str] = []

        async def flaky_upsert(fragment_id: str, vector: list[float], payload: dict) -> str:
            if payload["chunk_index"] == 2:
                raise VectorStoreError("connection reset")
            calls.append(fragment_id)
            return fragment_id

        store.upsert.side_effect = flaky_upsert

        with pytest.raises(IndexingError) as exc_info:
            await _ingest(pipeline)

        assert exc_info.value.chunk_index == 2
        assert exc_info.value.indexed_ids == calls
        assert len(calls) == 2
        # Nothing after the failure was attempted
        assert store.upsert.await_count == 3

    @pytest.mark.asyncio(loop_scope="session")
    async def test_ingest_is_deterministic(self, pipeline: DocumentIngestionPipeline) -> None:
        first = await _ingest(pipeline)
        second = await _ingest(pipeline)
        assert [c.text for c in first.chunks] == [c.text for c in second.chunks]
        assert first.fragment_ids == second.fragment_ids


# ---------------------------------------------------------------------------
# IngestionService
# ---------------------------------------------------------------------------


class TestIngestionService:
    """Tests for IngestionService.ingest_file() / ingest_text()."""

    @pytest.fixture()
    def mock_session(self) -> AsyncMock:
        """Mock async DB session."""
        session = AsyncMock()
        session.commit = AsyncMock()
        session.flush = AsyncMock()
        session.add = MagicMock()
        return session

    @pytest.fixture()
    def completion(self) -> AsyncMock:
        """Chat model that is always unavailable (analysis falls back to defaults)."""
        from src.core.exceptions import CompletionError

        client = AsyncMock()
        client.complete = AsyncMock(side_effect=CompletionError("offline"))
        return client

    @pytest.fixture()
    def service(self, embedder: MagicMock, completion: AsyncMock) -> IngestionService:
        return IngestionService(embedding_service=embedder, completion=completion)

    @staticmethod
    def _patch_repos(store: MagicMock):
        doc_repo_patch = patch("src.services.ingestion.DocumentRepository")
        chunk_repo_patch = patch("src.services.ingestion.ChunkRepository", return_value=store)
        return doc_repo_patch, chunk_repo_patch

    @pytest.mark.asyncio(loop_scope="session")
    async def test_ingest_text_success(
        self, service: IngestionService, mock_session: AsyncMock, store: MagicMock
    ) -> None:
        doc_patch, chunk_patch = self._patch_repos(store)
        with doc_patch as MockDocRepo, chunk_patch:
            repo_instance = MockDocRepo.return_value
            repo_instance.create = AsyncMock(side_effect=self._assign_id)
            repo_instance.update_processed = AsyncMock()

            document, result = await service.ingest_text(
                _TEXT, mock_session, title="Compraventa", document_type=DocumentType.CODE
            )

        assert document.title == "Compraventa"
        assert document.document_type == DocumentType.CODE
        assert document.source == "Manual"
        assert document.mime_type == "text/plain"
        assert document.file_size == len(_TEXT)
        assert document.total_characters == len(_TEXT)
        assert document.processed is True
        # Analysis fell back to defaults
        assert document.legal_areas == ["General"]
        assert result.chunk_count > 0
        repo_instance.update_processed.assert_awaited_once_with(document.id, True)
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio(loop_scope="session")
    async def test_ingest_text_blank_raises(
        self, service: IngestionService, mock_session: AsyncMock
    ) -> None:
        with pytest.raises(IngestionError, match="empty"):
            await service.ingest_text("  \n ", mock_session)

    @pytest.mark.asyncio(loop_scope="session")
    async def test_ingest_file_uses_file_chunk_size(
        self, service: IngestionService, mock_session: AsyncMock, store: MagicMock
    ) -> None:
        data = _TEXT.encode()
        doc_patch, chunk_patch = self._patch_repos(store)
        with doc_patch as MockDocRepo, chunk_patch:
            repo_instance = MockDocRepo.return_value
            repo_instance.create = AsyncMock(side_effect=self._assign_id)
            repo_instance.update_processed = AsyncMock()

            document, result = await service.ingest_file("compraventa.txt", data, mock_session)

        assert document.source == "Upload"
        assert document.file_size == len(data)
        assert document.title == "compraventa.txt"
        assert all(len(chunk.text) <= 500 for chunk in result.chunks)

    @pytest.mark.asyncio(loop_scope="session")
    async def test_ingest_file_rejects_extension(
        self, service: IngestionService, mock_session: AsyncMock
    ) -> None:
        with pytest.raises(UnsupportedFormatError):
            await service.ingest_file("planilla.xlsx", b"data", mock_session)

    @pytest.mark.asyncio(loop_scope="session")
    async def test_ingest_file_extraction_failure(
        self, service: IngestionService, mock_session: AsyncMock
    ) -> None:
        with pytest.raises(ExtractionFailedError):
            await service.ingest_file("vacio.txt", b"   ", mock_session)
        mock_session.commit.assert_not_awaited()

    @pytest.mark.asyncio(loop_scope="session")
    async def test_indexing_failure_commits_partial_work(
        self, service: IngestionService, mock_session: AsyncMock, store: MagicMock
    ) -> None:
        store.upsert.side_effect = VectorStoreError("disk full")
        doc_patch, chunk_patch = self._patch_repos(store)
        with doc_patch as MockDocRepo, chunk_patch:
            repo_instance = MockDocRepo.return_value
            repo_instance.create = AsyncMock(side_effect=self._assign_id)
            repo_instance.update_processed = AsyncMock()

            with pytest.raises(IndexingError) as exc_info:
                await service.ingest_text(_TEXT, mock_session)

        assert exc_info.value.indexed_ids == []
        repo_instance.update_processed.assert_not_awaited()
        mock_session.commit.assert_awaited_once()

    @staticmethod
    async def _assign_id(document: Document) -> Document:
        """Mimic the flush that assigns primary key and timestamp."""
        document.id = uuid.uuid4()
        document.created_at = datetime(2026, 1, 1)
        return document
