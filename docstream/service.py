"""Wiring of capability providers into the two entry points."""

from __future__ import annotations

from pathlib import Path

from .chain import AnsweringPipeline
from .config import config
from .embeddings import EmbeddingService
from .ingestion import IngestionPipeline
from .llm import ChatModel
from .models import ChatHistory, Document
from .streaming import StreamingAnswer
from .vector_store import VectorIndex, get_vector_store

logger = config.get_logger(__name__)


class DocStream:
    """Owns one set of providers and exposes answering and ingestion.

    Nothing here is global: every instance builds its own OpenAI clients and
    vector store, and tests can pass fakes for any of them.
    """

    def __init__(  # noqa: PLR0913
        self,
        openai_api_key: str | None = None,
        *,
        vector_backend: str | None = None,
        db_path: Path | None = None,
        index_path: Path | None = None,
        embedding_service: EmbeddingService | None = None,
        rewrite_model: ChatModel | None = None,
        answer_model: ChatModel | None = None,
    ) -> None:
        """Initialize providers and pipelines.

        Args:
            openai_api_key: OpenAI API key. If None, uses config.
            vector_backend: "faiss" or "memory". If None, uses
                config.VECTOR_BACKEND.
            db_path: SQLite metadata path for the faiss backend.
            index_path: FAISS index file for the faiss backend.
            embedding_service: Embedding provider override.
            rewrite_model: Non-streaming model override for question rewriting.
            answer_model: Streaming model override for answers.
        """
        backend = (vector_backend or config.VECTOR_BACKEND).lower()

        self.embedding_service = embedding_service or EmbeddingService(
            api_key=openai_api_key
        )
        self.rewrite_model = rewrite_model or ChatModel(
            openai_api_key,
            temperature=config.QUERY_REWRITE_TEMPERATURE,
            max_tokens=config.QUERY_REWRITE_MAX_TOKENS,
        )
        self.answer_model = answer_model or ChatModel(openai_api_key)

        self.vector_store = get_vector_store(
            backend, db_path=db_path, index_path=index_path
        )
        self.vector_store.load()
        logger.info("Using %s vector storage", self.vector_store.backend)

        self.vector_index = VectorIndex(self.embedding_service, self.vector_store)
        self.answering = AnsweringPipeline.from_components(
            self.vector_index, self.rewrite_model, self.answer_model
        )
        self.ingestion = IngestionPipeline(self.embedding_service, self.vector_index)

    def answer(self, question: str, chat_history: ChatHistory = "") -> StreamingAnswer:
        return self.answering.answer(question, chat_history)

    def ingest(self, documents: list[Document]) -> int:
        return self.ingestion.ingest(documents)

    def ingest_files(self, file_paths: list[Path]) -> int:
        return self.ingestion.ingest_files(file_paths)
