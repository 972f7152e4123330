"""Tests for the ingestion pipeline."""

from unittest.mock import Mock

import numpy as np
import pytest

from docstream import (
    Document,
    FaissVectorStore,
    IngestionPipeline,
    PipelineError,
    ProviderError,
    TextChunker,
    VectorIndex,
)
from docstream.errors import INGEST_FAILED_MESSAGE


@pytest.fixture
def ingestion_pipeline(mock_embedding_service, memory_index):
    return IngestionPipeline(
        mock_embedding_service, memory_index, duplicate_policy="allow"
    )


def test_ingest_writes_one_entry_per_document(
    ingestion_pipeline, memory_store, mock_embeddings, sample_documents
):
    written = ingestion_pipeline.ingest(sample_documents)

    assert written == len(sample_documents)
    assert memory_store.count() == len(sample_documents)
    for stored, document in zip(memory_store.chunks, sample_documents, strict=True):
        assert stored.text == document.text
        assert stored.metadata == document.metadata

    expected = np.vstack([mock_embeddings(d.text) for d in sample_documents])
    np.testing.assert_allclose(memory_store.embeddings, expected, rtol=1e-5)


def test_ingest_embeds_exact_texts_in_one_batch(sample_documents):
    embedding_service = Mock()
    embedding_service.embed_batch.return_value = [
        np.ones(4) for _ in sample_documents
    ]
    vector_index = Mock(spec=VectorIndex)
    vector_index.upsert.return_value = len(sample_documents)
    pipeline = IngestionPipeline(
        embedding_service, vector_index, duplicate_policy="allow"
    )

    pipeline.ingest(sample_documents)

    embedding_service.embed_batch.assert_called_once_with(
        [d.text for d in sample_documents]
    )
    vector_index.upsert.assert_called_once()
    chunks = vector_index.upsert.call_args.args[0]
    assert [c.text for c in chunks] == [d.text for d in sample_documents]
    assert vector_index.upsert.call_args.kwargs == {"skip_duplicates": False}


def test_ingest_empty_is_noop(ingestion_pipeline, mock_embedding_service):
    assert ingestion_pipeline.ingest([]) == 0
    assert mock_embedding_service.embedded_texts == []


def test_ingest_does_not_mutate_input_metadata(ingestion_pipeline, memory_store):
    metadata = {"page": 1}
    ingestion_pipeline.ingest([Document(text="Paris", metadata=metadata)])

    memory_store.chunks[0].metadata["page"] = 99
    assert metadata == {"page": 1}


def test_reingest_duplicates_with_allow_policy(ingestion_pipeline, memory_store):
    docs = [Document(text="Paris is the capital of France.", metadata={"page": 1})]

    ingestion_pipeline.ingest(docs)
    ingestion_pipeline.ingest(docs)

    assert memory_store.count() == 2


def test_reingest_skipped_with_skip_policy(
    mock_embedding_service, memory_index, memory_store
):
    pipeline = IngestionPipeline(
        mock_embedding_service, memory_index, duplicate_policy="skip"
    )
    docs = [
        Document(text="Paris is the capital of France.", metadata={"page": 1}),
        Document(text="Paris is the capital of France.", metadata={"page": 1}),
        Document(text="Berlin is the capital of Germany.", metadata={"page": 1}),
    ]

    assert pipeline.ingest(docs) == 2
    assert pipeline.ingest(docs) == 0
    assert memory_store.count() == 2


def test_unknown_policy_rejected(mock_embedding_service, memory_index):
    with pytest.raises(ValueError, match="Unknown duplicate policy"):
        IngestionPipeline(mock_embedding_service, memory_index, duplicate_policy="merge")


def test_embedding_failure_aborts_batch(memory_index, memory_store, sample_documents):
    error = ProviderError("quota")
    embedding_service = Mock()
    embedding_service.embed_batch.side_effect = error
    pipeline = IngestionPipeline(embedding_service, memory_index)

    with pytest.raises(PipelineError, match=INGEST_FAILED_MESSAGE) as exc_info:
        pipeline.ingest(sample_documents)

    assert exc_info.value.cause is error
    assert memory_store.count() == 0


def test_embedding_count_mismatch_aborts_batch(
    memory_index, memory_store, sample_documents
):
    embedding_service = Mock()
    embedding_service.embed_batch.return_value = [np.ones(4)]
    pipeline = IngestionPipeline(embedding_service, memory_index)

    with pytest.raises(PipelineError):
        pipeline.ingest(sample_documents)

    assert memory_store.count() == 0


def test_index_write_failure_aborts_batch(mock_embedding_service, sample_documents):
    vector_index = Mock(spec=VectorIndex)
    vector_index.upsert.side_effect = RuntimeError("index unavailable")
    pipeline = IngestionPipeline(mock_embedding_service, vector_index)

    with pytest.raises(PipelineError, match=INGEST_FAILED_MESSAGE) as exc_info:
        pipeline.ingest(sample_documents)

    assert isinstance(exc_info.value.__cause__, RuntimeError)


def test_ingest_files_loads_splits_and_writes(
    mock_embedding_service, memory_index, memory_store, tmp_path
):
    doc_path = tmp_path / "notes.txt"
    doc_path.write_text("Paris is the capital of France. " * 20, encoding="utf-8")
    pipeline = IngestionPipeline(
        mock_embedding_service,
        memory_index,
        duplicate_policy="allow",
        chunker=TextChunker(chunk_size=100, overlap=20),
    )

    written = pipeline.ingest_files([doc_path])

    assert written == memory_store.count()
    assert written > 1
    for chunk in memory_store.chunks:
        assert chunk.metadata["source"] == "notes.txt"
        assert "chunk_id" in chunk.metadata


def test_ingest_files_unreadable_file(mock_embedding_service, memory_index, tmp_path):
    pipeline = IngestionPipeline(mock_embedding_service, memory_index)

    with pytest.raises(PipelineError, match=INGEST_FAILED_MESSAGE) as exc_info:
        pipeline.ingest_files([tmp_path / "missing.txt"])

    assert isinstance(exc_info.value.cause, FileNotFoundError)


def test_ingest_files_unsupported_type(mock_embedding_service, memory_index, tmp_path):
    doc_path = tmp_path / "notes.docx"
    doc_path.write_bytes(b"binary")
    pipeline = IngestionPipeline(mock_embedding_service, memory_index)

    with pytest.raises(PipelineError) as exc_info:
        pipeline.ingest_files([doc_path])

    assert isinstance(exc_info.value.cause, ValueError)


def test_unpersisted_batch_is_not_searchable(mock_embedding_service, tmp_path):
    index_path = tmp_path / "index.faiss"
    index_path.mkdir()
    store = FaissVectorStore(db_path=tmp_path / "store.db", index_path=index_path)
    vector_index = VectorIndex(mock_embedding_service, store)
    pipeline = IngestionPipeline(mock_embedding_service, vector_index)

    with pytest.raises(PipelineError, match=INGEST_FAILED_MESSAGE):
        pipeline.ingest(
            [Document(text="Paris is the capital of France.", metadata={"page": 1})]
        )

    assert store.count() == 0
    assert vector_index.similarity_search("capital of France") == []
