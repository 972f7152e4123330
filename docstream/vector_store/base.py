"""Behaviour shared by the vector store backends."""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from docstream.config import config
from docstream.models import content_hash

if TYPE_CHECKING:
    from docstream.models import DocumentChunk

logger = config.get_logger(__name__)


class BaseVectorStore:
    """Inner-product index over unit vectors plus chunk text and metadata.

    Subclasses provide storage; this class owns validation, the duplicate
    policy and vector normalization so every backend ranks the same way.
    """

    backend = "base"

    def upsert(
        self,
        chunks: list[DocumentChunk],
        *,
        skip_duplicates: bool = False,
    ) -> int:
        """Write embedded chunks in a single batch.

        Args:
            chunks: Chunks carrying an embedding each.
            skip_duplicates: Drop chunks whose text and metadata are already
                indexed, or repeated earlier in the same batch.

        Returns:
            Number of entries written.
        """
        if not chunks:
            return 0

        pending = self._prepare(chunks, skip_duplicates=skip_duplicates)
        if not pending:
            logger.info("All %d chunks already indexed; nothing written", len(chunks))
            return 0

        self._write(pending)
        logger.info("Upserted %d chunks into %s vector store", len(pending), self.backend)
        return len(pending)

    def _prepare(
        self,
        chunks: list[DocumentChunk],
        *,
        skip_duplicates: bool,
    ) -> list[tuple[DocumentChunk, np.ndarray, str]]:
        """Validate chunks and attach unit vectors and content hashes.

        Raises:
            ValueError: If a chunk has no embedding or dimensions disagree.

        Returns:
            (chunk, unit vector, content hash) triples that should be written.
        """
        dimension = self.dimension
        seen = self._existing_hashes() if skip_duplicates else set()
        pending: list[tuple[DocumentChunk, np.ndarray, str]] = []

        for position, chunk in enumerate(chunks):
            if chunk.embedding is None:
                msg = f"Chunk at position {position} has no embedding"
                raise ValueError(msg)

            vector = self._as_unit_vector(chunk.embedding)
            if dimension is None:
                dimension = vector.shape[0]
            elif vector.shape[0] != dimension:
                msg = (
                    f"Embedding dimension {vector.shape[0]} does not match "
                    f"index dimension {dimension}"
                )
                raise ValueError(msg)

            digest = content_hash(chunk.text, chunk.metadata)
            if skip_duplicates:
                if digest in seen:
                    logger.debug("Skipping duplicate chunk %s", digest[:12])
                    continue
                seen.add(digest)
            pending.append((chunk, vector, digest))

        return pending

    @staticmethod
    def _as_unit_vector(embedding: np.ndarray) -> np.ndarray:
        """Copy the embedding as float32 scaled to unit length.

        Returns:
            Normalized embedding vector; the zero vector is returned unchanged.
        """
        vector = np.array(embedding, dtype="float32").reshape(-1)
        norm = np.linalg.norm(vector)
        if norm == 0:
            return vector
        return vector / norm

    @property
    def dimension(self) -> int | None:
        raise NotImplementedError

    def _existing_hashes(self) -> set[str]:
        raise NotImplementedError

    def _write(self, pending: list[tuple[DocumentChunk, np.ndarray, str]]) -> None:
        raise NotImplementedError

    def search(
        self,
        query_embedding: np.ndarray,
        top_k: int = 4,
    ) -> list[tuple[DocumentChunk, float]]:
        raise NotImplementedError

    def count(self) -> int:
        raise NotImplementedError

    def save(self) -> None:
        """Persist the index. Backends without storage do nothing."""

    def load(self) -> None:
        """Load the index from storage. Backends without storage do nothing."""
