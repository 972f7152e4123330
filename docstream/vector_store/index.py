"""Vector index client: text-level search on top of a vector store."""

from __future__ import annotations

from typing import TYPE_CHECKING

from docstream.config import config

if TYPE_CHECKING:
    from docstream.embeddings import EmbeddingService
    from docstream.models import DocumentChunk
    from docstream.vector_store.base import BaseVectorStore

logger = config.get_logger(__name__)


class VectorIndex:
    """Pairs an embedding service with a store, the way the pipelines use it."""

    def __init__(
        self,
        embedding_service: EmbeddingService,
        store: BaseVectorStore,
    ) -> None:
        self.embedding_service = embedding_service
        self.store = store

    def similarity_search(
        self,
        query: str,
        k: int | None = None,
    ) -> list[tuple[DocumentChunk, float]]:
        """Embed the query text and return the ``k`` most similar chunks.

        Returns:
            (DocumentChunk, score) tuples as ranked by the store.
        """
        top_k = k if k is not None else config.RETRIEVAL_TOP_K
        query_embedding = self.embedding_service.embed(query)
        results = self.store.search(query_embedding, top_k=top_k)
        logger.debug("Similarity search returned %d chunks", len(results))
        return results

    def upsert(
        self,
        chunks: list[DocumentChunk],
        *,
        skip_duplicates: bool = False,
    ) -> int:
        """Write already-embedded chunks.

        Persistent backends write their storage inside the same call, so a
        raised error means none of the chunks were kept.

        Returns:
            Number of entries written.
        """
        return self.store.upsert(chunks, skip_duplicates=skip_duplicates)

    def count(self) -> int:
        return self.store.count()
