"""History-aware retrieval and streamed answer synthesis."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .config import config
from .errors import ANSWER_FAILED_MESSAGE, PipelineError
from .models import ChatHistory, DocumentChunk, normalize_question
from .prompts import build_answer_messages, build_rewrite_messages
from .streaming import StreamingAnswer

if TYPE_CHECKING:
    from collections.abc import Iterator

    from .llm import ChatModel
    from .vector_store import VectorIndex

logger = config.get_logger(__name__)

RetrievedSet = list[tuple[DocumentChunk, float]]


class QueryRewriter:
    """Reformulates a follow-up question so it stands without the chat history."""

    def __init__(self, chat_model: ChatModel) -> None:
        self.chat_model = chat_model

    def rewrite(self, question: str, chat_history: ChatHistory = "") -> str:
        """Generate a standalone question from the chat history.

        With no history the question already stands alone and no model call
        is made.

        Returns:
            The model's reformulation with surrounding whitespace stripped.
            A reply that is empty after stripping falls back to ``question``.
        """
        if not chat_history.strip():
            return question

        messages = build_rewrite_messages(question, chat_history)
        standalone = self.chat_model.complete(messages).strip()
        if not standalone:
            return question
        logger.info("Generated standalone question: %s", standalone)
        return standalone


class Retriever:
    """Looks up chunks for a standalone question in the vector index."""

    def __init__(self, vector_index: VectorIndex, top_k: int | None = None) -> None:
        self.vector_index = vector_index
        self.top_k = top_k if top_k is not None else config.RETRIEVAL_TOP_K

    def retrieve(self, standalone_question: str) -> RetrievedSet:
        """Return chunks in the order the index ranks them."""
        results = self.vector_index.similarity_search(standalone_question, k=self.top_k)
        for i, (chunk, score) in enumerate(results):
            logger.debug(
                "  Context %d (score: %.4f): %s...", i + 1, score, chunk.text[:100]
            )
        return results


class AnswerSynthesizer:
    """Streams an answer that may only use the retrieved context."""

    def __init__(self, chat_model: ChatModel) -> None:
        self.chat_model = chat_model

    def synthesize(
        self,
        question: str,
        chat_history: ChatHistory,
        retrieved: RetrievedSet,
    ) -> tuple[Iterator[str], RetrievedSet]:
        """Start the streaming completion over the stuffed context.

        Returns:
            The live token iterator and the retrieved set it was built from.
        """
        chunks = [chunk for chunk, _score in retrieved]
        messages = build_answer_messages(question, chat_history, chunks)
        tokens = self.chat_model.stream(messages)
        return tokens, retrieved


class AnsweringPipeline:
    """Rewrite, retrieve, then stream an answer with its top sources.

    Any failure between normalization and the first token is logged here and
    re-raised as a single PipelineError; failures after streaming began are
    handled by StreamingAnswer the same way.
    """

    def __init__(
        self,
        rewriter: QueryRewriter,
        retriever: Retriever,
        synthesizer: AnswerSynthesizer,
        *,
        sources_limit: int | None = None,
    ) -> None:
        self.rewriter = rewriter
        self.retriever = retriever
        self.synthesizer = synthesizer
        self.sources_limit = (
            sources_limit if sources_limit is not None else config.SOURCES_LIMIT
        )

    @classmethod
    def from_components(
        cls,
        vector_index: VectorIndex,
        rewrite_model: ChatModel,
        answer_model: ChatModel,
    ) -> AnsweringPipeline:
        """Wire the pipeline from its capability providers."""
        return cls(
            rewriter=QueryRewriter(rewrite_model),
            retriever=Retriever(vector_index),
            synthesizer=AnswerSynthesizer(answer_model),
        )

    def retrieve_and_answer(
        self,
        standalone_question: str,
        question: str,
        chat_history: ChatHistory,
    ) -> tuple[Iterator[str], RetrievedSet]:
        """Retrieve with the rewritten question, answer the original one."""
        retrieved = self.retriever.retrieve(standalone_question)
        return self.synthesizer.synthesize(question, chat_history, retrieved)

    def answer(self, question: str, chat_history: ChatHistory = "") -> StreamingAnswer:
        """Answer ``question`` in the context of ``chat_history``.

        Returns:
            A StreamingAnswer whose sources are the first retrieved chunk texts.

        Raises:
            InputError: If the question is empty after normalization.
            PipelineError: If rewriting, retrieval or synthesis fails.
        """
        sanitized_question = normalize_question(question)
        logger.info("Processing question: %s", sanitized_question)

        try:
            standalone_question = self.rewriter.rewrite(sanitized_question, chat_history)
            tokens, retrieved = self.retrieve_and_answer(
                standalone_question, sanitized_question, chat_history
            )
        except Exception as exc:
            logger.exception("Answering pipeline failed")
            raise PipelineError(ANSWER_FAILED_MESSAGE, cause=exc) from exc

        sources = [chunk.text for chunk, _score in retrieved[: self.sources_limit]]
        logger.info(
            "Streaming answer grounded on %d chunks (%d sources)",
            len(retrieved),
            len(sources),
        )
        return StreamingAnswer(tokens, sources)
