"""FAISS-backed vector storage with SQLite metadata."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import TYPE_CHECKING

import faiss
import numpy as np

from docstream.config import config
from docstream.models import DocumentChunk
from docstream.vector_store.base import BaseVectorStore

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = config.get_logger(__name__)


class FaissVectorStore(BaseVectorStore):
    """Vector storage using FAISS for embeddings and SQLite for text and metadata.

    Each SQLite row id doubles as the FAISS vector id, so a search hit maps
    straight back to its chunk. Rows are committed only once the vectors are
    in the index and the index file is written; a failed batch leaves neither
    rows nor vectors behind.
    """

    backend = "faiss"

    def __init__(
        self,
        db_path: Path = Path("data/vector_store.db"),
        index_path: Path = Path("data/faiss/index.faiss"),
    ) -> None:
        """Configure FAISS-backed vector store."""
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(exist_ok=True, parents=True)
        self.index_path = Path(index_path)
        self.index_path.parent.mkdir(exist_ok=True, parents=True)

        self.index: faiss.IndexIDMap | None = None
        self._create_tables()

    def _create_tables(self) -> None:
        with sqlite3.connect(str(self.db_path)) as conn:
            cursor = conn.cursor()
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS chunks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    text TEXT NOT NULL,
                    metadata TEXT NOT NULL DEFAULT '{}',
                    content_hash TEXT NOT NULL,
                    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                )
            """)
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_chunks_content_hash "
                "ON chunks(content_hash)"
            )
            conn.commit()

    @staticmethod
    def _as_unit_vector(embedding: np.ndarray) -> np.ndarray:
        vector = np.array(embedding, dtype="float32").reshape(1, -1)
        faiss.normalize_L2(vector)
        return vector[0]

    def _init_index(self, dimension: int) -> None:
        base_index = faiss.IndexFlatIP(dimension)
        self.index = faiss.IndexIDMap(base_index)
        logger.info("Initialized FAISS IndexIDMap with dimension %d", dimension)

    @property
    def dimension(self) -> int | None:
        return None if self.index is None else int(self.index.d)

    def _existing_hashes(self) -> set[str]:
        with sqlite3.connect(str(self.db_path)) as conn:
            rows = conn.execute("SELECT content_hash FROM chunks").fetchall()
        return {row[0] for row in rows}

    def _write(self, pending: list[tuple[DocumentChunk, np.ndarray, str]]) -> None:
        """Insert metadata rows, add vectors and persist the index as one unit.

        Raises:
            RuntimeError: If FAISS rejects the vectors or the index file cannot
                be written; rows are rolled back and added vectors removed.
        """
        created_index = self.index is None
        ids_array: np.ndarray | None = None
        conn = sqlite3.connect(str(self.db_path))
        try:
            cursor = conn.cursor()
            vector_ids: list[int] = []
            for chunk, _vector, digest in pending:
                cursor.execute(
                    "INSERT INTO chunks (text, metadata, content_hash) VALUES (?, ?, ?)",
                    (
                        chunk.text,
                        json.dumps(chunk.metadata, default=str, ensure_ascii=False),
                        digest,
                    ),
                )
                if cursor.lastrowid is None:
                    msg = "Failed to insert chunk row"
                    raise RuntimeError(msg)
                vector_ids.append(int(cursor.lastrowid))

            if self.index is None:
                self._init_index(pending[0][1].shape[0])
            vectors = np.vstack([vector for _, vector, _ in pending]).astype("float32")
            ids_array = np.asarray(vector_ids, dtype="int64")
            self.index.add_with_ids(vectors, ids_array)  # pyright: ignore[reportCallIssue,reportOptionalMemberAccess]
            self.save()
        except Exception:
            conn.rollback()
            self._discard_vectors(ids_array, created_index=created_index)
            logger.warning("Rolled back %d chunks after a failed FAISS write", len(pending))
            raise
        else:
            conn.commit()
        finally:
            conn.close()

    def _discard_vectors(
        self, ids_array: np.ndarray | None, *, created_index: bool
    ) -> None:
        if created_index:
            self.index = None
        elif ids_array is not None and self.index is not None:
            self.index.remove_ids(ids_array)  # pyright: ignore[reportCallIssue]

    def search(
        self,
        query_embedding: np.ndarray,
        top_k: int = 4,
    ) -> list[tuple[DocumentChunk, float]]:
        """Search similar chunks using the FAISS index.

        Returns:
            (DocumentChunk, score) tuples ranked by descending similarity.
        """
        index = self.index
        if index is None or index.ntotal == 0:
            logger.warning("FAISS index is empty; returning no results")
            return []

        query = self._as_unit_vector(query_embedding)
        k = min(top_k, int(index.ntotal))
        scores, vector_ids = index.search(query.reshape(1, -1), k)  # pyright: ignore[reportCallIssue]

        hits = [
            (int(vector_id), float(score))
            for score, vector_id in zip(scores[0], vector_ids[0], strict=True)
            if int(vector_id) != -1  # faiss pads missing results with -1
        ]
        rows = self._fetch_rows(vector_id for vector_id, _ in hits)

        results: list[tuple[DocumentChunk, float]] = []
        for vector_id, score in hits:
            row = rows.get(vector_id)
            if row is None:
                logger.warning("Vector %d has no metadata row", vector_id)
                continue
            text, metadata = row
            results.append((DocumentChunk(text=text, metadata=metadata), score))
        return results

    def _fetch_rows(self, vector_ids: Iterable[int]) -> dict[int, tuple[str, dict]]:
        ids = list(vector_ids)
        if not ids:
            return {}
        placeholders = ",".join("?" for _ in ids)
        with sqlite3.connect(str(self.db_path)) as conn:
            rows = conn.execute(
                f"SELECT id, text, metadata FROM chunks WHERE id IN ({placeholders})",  # noqa: S608
                ids,
            ).fetchall()
        return {int(row_id): (text, json.loads(meta)) for row_id, text, meta in rows}

    def count(self) -> int:
        return 0 if self.index is None else int(self.index.ntotal)

    def save(self) -> None:
        """Write the FAISS index file; upserts call this before committing rows."""
        index = self.index
        if index is None:
            logger.warning("No FAISS index to save")
            return

        self.index_path.parent.mkdir(exist_ok=True, parents=True)
        faiss.write_index(index, str(self.index_path))
        logger.info("Saved FAISS index to %s", self.index_path)

    def load(self) -> None:
        """Load the FAISS index and drop metadata rows it does not cover."""
        if self.index_path.exists():
            loaded_index = faiss.read_index(str(self.index_path))
            if not isinstance(loaded_index, (faiss.IndexIDMap, faiss.IndexIDMap2)):
                logger.warning(
                    "Loaded FAISS index is %s; wrapping with IndexIDMap to enable IDs",
                    type(loaded_index).__name__,
                )
                loaded_index = faiss.IndexIDMap(loaded_index)
            self.index = loaded_index
            logger.info(
                "Loaded FAISS index from %s with %d vectors",
                self.index_path,
                loaded_index.ntotal,
            )
            known_ids = {int(i) for i in faiss.vector_to_array(loaded_index.id_map)}
        else:
            logger.warning(
                "FAISS index not found at %s. Start with an empty index.",
                self.index_path,
            )
            self.index = None
            known_ids = set()

        self._prune_orphan_rows(known_ids)

    def _prune_orphan_rows(self, known_ids: set[int]) -> None:
        with sqlite3.connect(str(self.db_path)) as conn:
            row_ids = {int(row[0]) for row in conn.execute("SELECT id FROM chunks")}
            orphans = sorted(row_ids - known_ids)
            if orphans:
                conn.executemany(
                    "DELETE FROM chunks WHERE id = ?", [(i,) for i in orphans]
                )
                conn.commit()
                logger.warning(
                    "Removed %d metadata rows without vectors in the saved index",
                    len(orphans),
                )
