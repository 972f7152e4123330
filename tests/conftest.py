"""Test configuration and fixtures for DocStream tests.

This module provides reusable test fixtures organized by functionality:
- Constants and test data
- Mock embedding and chat providers
- OpenAI API response factories
- Vector store and index fixtures
- Pipeline factories
"""

import hashlib
from contextlib import contextmanager
from unittest.mock import Mock, patch

import numpy as np
import pytest

from docstream import (
    AnswerSynthesizer,
    AnsweringPipeline,
    ChatModel,
    Document,
    DocumentChunk,
    EmbeddingService,
    FaissVectorStore,
    InMemoryVectorStore,
    QueryRewriter,
    Retriever,
    VectorIndex,
)


class TestConstants:
    """Centralized test constants shared across test files."""

    # API Configuration
    TEST_API_KEY = "test-key"
    TEST_OPENAI_MODEL = "text-embedding-3-small"
    TEST_CHAT_MODEL = "gpt-test"
    DEFAULT_EMBEDDING_DIMENSION = 384


class MockEmbeddingService:
    """Embedding service that needs no API.

    Generates deterministic embeddings seeded by a hash of the text, so equal
    texts always map to equal vectors. Every embedded text is recorded.
    """

    def __init__(
        self, dimension: int = TestConstants.DEFAULT_EMBEDDING_DIMENSION
    ) -> None:
        self.dimension = dimension
        self.embedded_texts: list[str] = []

    def _vector(self, text: str) -> np.ndarray:
        seed = int.from_bytes(
            hashlib.sha256(text.lower().encode("utf-8")).digest()[:8],
            byteorder="big",
            signed=False,
        )
        rng = np.random.default_rng(seed)
        embedding = rng.normal(0, 1, self.dimension)
        return (embedding / np.linalg.norm(embedding)).astype(np.float32)

    def embed(self, text: str) -> np.ndarray:
        self.embedded_texts.append(text)
        return self._vector(text)

    def embed_batch(self, texts: list[str]) -> list[np.ndarray]:
        self.embedded_texts.extend(texts)
        return [self._vector(text) for text in texts]


class FakeTokenStream:
    """Iterator over tokens that records whether it was closed.

    ``fail_after`` raises ``error`` once that many tokens were produced.
    """

    def __init__(
        self,
        tokens: list[str],
        *,
        fail_after: int | None = None,
        error: Exception | None = None,
    ) -> None:
        self.tokens = list(tokens)
        self.fail_after = fail_after
        self.error = error or RuntimeError("stream broke")
        self.produced = 0
        self.closed = False

    def __iter__(self):
        return self

    def __next__(self) -> str:
        if self.closed:
            raise StopIteration
        if self.fail_after is not None and self.produced >= self.fail_after:
            raise self.error
        if self.produced >= len(self.tokens):
            raise StopIteration
        token = self.tokens[self.produced]
        self.produced += 1
        return token

    def close(self) -> None:
        self.closed = True


class FakeChatModel:
    """Chat capability double recording every request."""

    def __init__(
        self,
        completion: str = "standalone question",
        tokens: list[str] | None = None,
        *,
        complete_error: Exception | None = None,
        stream_error: Exception | None = None,
        fail_after: int | None = None,
    ) -> None:
        self.completion = completion
        self.tokens = tokens if tokens is not None else ["Paris ", "is ", "the capital."]
        self.complete_error = complete_error
        self.stream_error = stream_error
        self.fail_after = fail_after
        self.complete_calls: list[list[dict[str, str]]] = []
        self.stream_calls: list[list[dict[str, str]]] = []
        self.streams: list[FakeTokenStream] = []

    def complete(self, messages: list[dict[str, str]]) -> str:
        self.complete_calls.append(messages)
        if self.complete_error is not None:
            raise self.complete_error
        return self.completion

    def stream(self, messages: list[dict[str, str]]) -> FakeTokenStream:
        self.stream_calls.append(messages)
        if self.stream_error is not None:
            raise self.stream_error
        token_stream = FakeTokenStream(self.tokens, fail_after=self.fail_after)
        self.streams.append(token_stream)
        return token_stream


def create_mock_openai_response(embeddings: list[list[float]]) -> Mock:
    """Create a mock OpenAI embeddings API response.

    Returns:
        Mock object representing OpenAI embeddings API response.
    """
    mock_response = Mock()
    mock_response.data = [Mock(embedding=emb) for emb in embeddings]
    return mock_response


def create_mock_chat_response(content: str | None) -> Mock:
    """Create a mock OpenAI chat completion response.

    Returns:
        Mock object representing OpenAI chat completion response.
    """
    mock_response = Mock()
    mock_response.choices = [Mock(message=Mock(content=content))]
    return mock_response


def create_mock_stream_chunk(content: str | None) -> Mock:
    """Create one chunk of a streamed chat completion.

    Returns:
        Mock with ``choices[0].delta.content`` set, or no choices when
        ``content`` is None.
    """
    chunk = Mock()
    chunk.choices = [] if content is None else [Mock(delta=Mock(content=content))]
    return chunk


class MockChatStream:
    """Stand-in for ``openai.Stream``: iterable chunks plus ``close``."""

    def __init__(self, chunks: list[Mock], error: Exception | None = None) -> None:
        self.chunks = chunks
        self.error = error
        self.closed = False

    def __iter__(self):
        yield from self.chunks
        if self.error is not None:
            raise self.error

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def openai_embeddings_api_mock():
    """Patch OpenAI embeddings.create and hand back the bare mock."""
    with patch("openai.resources.embeddings.Embeddings.create") as mock_create:
        yield mock_create


@pytest.fixture
def openai_embeddings_factory(openai_embeddings_api_mock):
    """Factory for OpenAI embeddings API mocks in different scenarios."""

    def _create_mock(  # noqa: ANN202
        scenario="single_success",
        embeddings=None,
        error=None,
    ):
        """Configure the mock for a scenario.

        Args:
            scenario: 'single_success', 'batch_success', 'error',
                'multiple_batches' or 'partial_failure'.
            embeddings: Custom embeddings to return, or None for defaults.
            error: Exception raised by the error scenarios.
        """
        openai_embeddings_api_mock.reset_mock()
        openai_embeddings_api_mock.side_effect = None
        openai_embeddings_api_mock.return_value = None

        if scenario == "single_success":
            mock_embedding = embeddings or [0.1, 0.2, 0.3, 0.4, 0.5]
            openai_embeddings_api_mock.return_value = create_mock_openai_response(
                [mock_embedding]
            )
        elif scenario == "batch_success":
            mock_embeddings = embeddings or [
                [0.1, 0.2, 0.3],
                [0.4, 0.5, 0.6],
                [0.7, 0.8, 0.9],
            ]
            openai_embeddings_api_mock.return_value = create_mock_openai_response(
                mock_embeddings
            )
        elif scenario == "error":
            openai_embeddings_api_mock.side_effect = error
        elif scenario == "multiple_batches":
            openai_embeddings_api_mock.side_effect = [
                create_mock_openai_response([[0.1, 0.2], [0.3, 0.4]]),
                create_mock_openai_response([[0.5, 0.6], [0.7, 0.8]]),
            ]
        elif scenario == "partial_failure":
            openai_embeddings_api_mock.side_effect = [
                create_mock_openai_response([[0.1, 0.2]]),
                error,
            ]

        return openai_embeddings_api_mock

    return _create_mock


@pytest.fixture
def embedding_service_factory():
    """Factory for EmbeddingService instances with a test API key."""

    def _create_service(api_key=None, model=None):  # noqa: ANN202
        api_key = api_key or TestConstants.TEST_API_KEY
        if model is not None:
            return EmbeddingService(api_key=api_key, model=model)
        return EmbeddingService(api_key=api_key)

    return _create_service


@pytest.fixture
def embedding_service(embedding_service_factory):
    """Default EmbeddingService with test API key for most tests."""
    return embedding_service_factory()


@pytest.fixture
def chat_model():
    """ChatModel pointed at a test key; patch its client before calling it."""
    return ChatModel(
        openai_api_key=TestConstants.TEST_API_KEY,
        model=TestConstants.TEST_CHAT_MODEL,
        temperature=0.0,
        max_tokens=64,
    )


@pytest.fixture
def chat_completion_mock_factory():
    """Patch ``client.chat.completions.create`` of a ChatModel."""

    @contextmanager
    def _mock_chat(  # noqa: ANN202
        model, return_value=None, side_effect=None
    ):
        with patch.object(model.client.chat.completions, "create") as mock_create:
            mock_create.side_effect = side_effect
            mock_create.return_value = return_value
            yield mock_create

    return _mock_chat


@pytest.fixture
def mock_embedding_service():
    """Fresh MockEmbeddingService for each test."""
    return MockEmbeddingService()


@pytest.fixture
def mock_embeddings(mock_embedding_service):
    """Factory function to create mock embeddings without recording them."""

    def _create_mock_embedding(text: str) -> np.ndarray:
        return mock_embedding_service._vector(text)

    return _create_mock_embedding


@pytest.fixture
def memory_store():
    return InMemoryVectorStore()


@pytest.fixture
def temp_faiss_store(tmp_path) -> FaissVectorStore:
    """FAISS store whose index and metadata live under tmp_path."""
    return FaissVectorStore(
        db_path=tmp_path / "test_store.db",
        index_path=tmp_path / "faiss" / "index.faiss",
    )


@pytest.fixture
def memory_index(mock_embedding_service, memory_store):
    """VectorIndex over an in-memory store with deterministic embeddings."""
    return VectorIndex(mock_embedding_service, memory_store)


@pytest.fixture
def sample_documents():
    texts = [
        "Machine learning is a subset of artificial intelligence.",
        "Neural networks are computational models inspired by the brain.",
        "Deep learning uses multiple layers to learn complex patterns.",
        "Supervised learning uses labeled training data.",
        "Unsupervised learning finds patterns in unlabeled data.",
    ]
    return [
        Document(text=text, metadata={"source": f"test_doc_{i // 3}.txt", "page": i})
        for i, text in enumerate(texts)
    ]


@pytest.fixture
def sample_embedded_chunks(sample_documents, mock_embeddings):
    """Sample documents as chunks carrying embeddings."""
    return [
        DocumentChunk(
            text=doc.text,
            metadata=dict(doc.metadata),
            embedding=mock_embeddings(doc.text),
        )
        for doc in sample_documents
    ]


@pytest.fixture
def retrieved_set():
    """Three retrieved chunks with descending scores."""
    return [
        (
            DocumentChunk(
                text="Machine learning is a subset of artificial intelligence.",
                metadata={"source": "ml_doc.pdf", "page": 1},
            ),
            0.8,
        ),
        (
            DocumentChunk(
                text="Deep learning uses neural networks with multiple layers.",
                metadata={"source": "dl_doc.pdf", "page": 2},
            ),
            0.7,
        ),
        (
            DocumentChunk(
                text="Natural language processing enables machines to understand text.",
                metadata={"source": "nlp_doc.pdf", "page": 3},
            ),
            0.6,
        ),
    ]


@pytest.fixture
def answering_pipeline_factory(retrieved_set):
    """Build an AnsweringPipeline from fakes.

    The retriever is a Mock returning ``retrieved`` (defaults to the
    ``retrieved_set`` fixture) unless ``retrieve_error`` is given.
    """

    def _create_pipeline(  # noqa: ANN202
        rewrite_model=None,
        answer_model=None,
        retrieved=None,
        retrieve_error=None,
    ):
        rewrite_model = rewrite_model or FakeChatModel()
        answer_model = answer_model or FakeChatModel()
        retriever = Mock(spec=Retriever)
        if retrieve_error is not None:
            retriever.retrieve.side_effect = retrieve_error
        else:
            retriever.retrieve.return_value = (
                retrieved_set if retrieved is None else retrieved
            )
        return AnsweringPipeline(
            rewriter=QueryRewriter(rewrite_model),
            retriever=retriever,
            synthesizer=AnswerSynthesizer(answer_model),
        )

    return _create_pipeline


@pytest.fixture
def fake_chat_model_factory():
    """Factory for FakeChatModel doubles."""
    return FakeChatModel


@pytest.fixture
def token_stream_factory():
    """Factory for FakeTokenStream iterators."""
    return FakeTokenStream


@pytest.fixture
def mock_chat_stream_factory():
    """Factory for openai.Stream stand-ins built from token strings."""

    def _create_stream(tokens, error=None):  # noqa: ANN202
        chunks = [create_mock_stream_chunk(token) for token in tokens]
        return MockChatStream(chunks, error=error)

    return _create_stream


@pytest.fixture
def mock_chat_response_factory():
    return create_mock_chat_response
