"""Process-local vector store backed by a numpy matrix."""

from __future__ import annotations

import numpy as np

from docstream.config import config
from docstream.models import DocumentChunk
from docstream.vector_store.base import BaseVectorStore

logger = config.get_logger(__name__)


class InMemoryVectorStore(BaseVectorStore):
    """Keeps unit vectors in one matrix and ranks by inner product.

    Nothing is persisted; the store lives as long as the process.
    """

    backend = "memory"

    def __init__(self) -> None:
        self.chunks: list[DocumentChunk] = []
        self.hashes: list[str] = []
        self.embeddings: np.ndarray | None = None

    @property
    def dimension(self) -> int | None:
        return None if self.embeddings is None else int(self.embeddings.shape[1])

    def _existing_hashes(self) -> set[str]:
        return set(self.hashes)

    def _write(self, pending: list[tuple[DocumentChunk, np.ndarray, str]]) -> None:
        vectors = np.vstack([vector for _, vector, _ in pending]).astype("float32")
        self.embeddings = (
            vectors
            if self.embeddings is None
            else np.vstack([self.embeddings, vectors])
        )
        for chunk, _vector, digest in pending:
            self.chunks.append(
                DocumentChunk(text=chunk.text, metadata=dict(chunk.metadata))
            )
            self.hashes.append(digest)

    def search(
        self,
        query_embedding: np.ndarray,
        top_k: int = 4,
    ) -> list[tuple[DocumentChunk, float]]:
        """Rank stored chunks by cosine similarity to the query.

        Returns:
            (DocumentChunk, score) tuples ranked by descending similarity.
        """
        if self.embeddings is None or not self.chunks:
            logger.warning("In-memory index is empty; returning no results")
            return []

        query = self._as_unit_vector(query_embedding)
        scores = self.embeddings @ query
        k = min(top_k, len(self.chunks))
        # stable sort keeps insertion order among equal scores
        order = np.argsort(-scores, kind="stable")[:k]
        return [(self.chunks[i], float(scores[i])) for i in order]

    def count(self) -> int:
        return len(self.chunks)
