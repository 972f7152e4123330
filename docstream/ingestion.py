"""Batch ingestion: embed records and write them into the vector index."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .config import config
from .document_processing import DocumentLoader, TextChunker
from .errors import INGEST_FAILED_MESSAGE, PipelineError
from .models import Document, DocumentChunk

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from .embeddings import EmbeddingService
    from .vector_store import VectorIndex

logger = config.get_logger(__name__)

DUPLICATE_POLICIES = ("allow", "skip")


class IngestionPipeline:
    """Embed -> Upsert, all or nothing per batch."""

    def __init__(
        self,
        embedding_service: EmbeddingService,
        vector_index: VectorIndex,
        *,
        duplicate_policy: str | None = None,
        chunker: TextChunker | None = None,
    ) -> None:
        """Initialize the ingestion pipeline.

        Args:
            embedding_service: Embedding capability used for every record.
            vector_index: Index the records are written to.
            duplicate_policy: "allow" writes every record, "skip" leaves out
                records already indexed. If None, uses
                config.INGEST_DUPLICATE_POLICY.
            chunker: Splitter for ``ingest_files``. If None, one is built from
                config.CHUNK_SIZE and config.CHUNK_OVERLAP.

        Raises:
            ValueError: If the duplicate policy is unknown.
        """
        policy = (duplicate_policy or config.INGEST_DUPLICATE_POLICY).lower()
        if policy not in DUPLICATE_POLICIES:
            msg = f"Unknown duplicate policy: {policy}"
            raise ValueError(msg)

        self.embedding_service = embedding_service
        self.vector_index = vector_index
        self.duplicate_policy = policy
        self.chunker = chunker or TextChunker(
            chunk_size=config.CHUNK_SIZE, overlap=config.CHUNK_OVERLAP
        )

    def ingest(self, documents: Sequence[Document]) -> int:
        """Embed every record and write them in one batched upsert.

        Returns:
            Number of index entries written.

        Raises:
            PipelineError: If embedding or the index write fails; nothing of
                the batch is kept.
        """
        if not documents:
            logger.info("No documents to ingest")
            return 0

        logger.info("Ingesting %d documents", len(documents))
        try:
            texts = [document.text for document in documents]
            embeddings = self.embedding_service.embed_batch(texts)
            if len(embeddings) != len(documents):
                msg = (
                    f"Embedding service returned {len(embeddings)} vectors "
                    f"for {len(documents)} documents"
                )
                raise RuntimeError(msg)

            chunks = [
                DocumentChunk(
                    text=document.text,
                    metadata=dict(document.metadata),
                    embedding=embedding,
                )
                for document, embedding in zip(documents, embeddings, strict=True)
            ]
            written = self.vector_index.upsert(
                chunks, skip_duplicates=self.duplicate_policy == "skip"
            )
        except Exception as exc:
            logger.exception("Ingestion failed")
            raise PipelineError(INGEST_FAILED_MESSAGE, cause=exc) from exc

        logger.info("Ingestion completed: %d entries written", written)
        return written

    def ingest_files(self, file_paths: Sequence[Path]) -> int:
        """Load, split and ingest PDF/TXT files as one batch.

        Returns:
            Number of index entries written.

        Raises:
            PipelineError: If a file cannot be read or ingestion fails.
        """
        documents: list[Document] = []
        try:
            for file_path in file_paths:
                logger.info("Loading document: %s", file_path)
                documents.extend(DocumentLoader.load_document(file_path))
        except Exception as exc:
            logger.exception("Failed to read documents")
            raise PipelineError(INGEST_FAILED_MESSAGE, cause=exc) from exc

        return self.ingest(self.chunker.split_documents(documents))
