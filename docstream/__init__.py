"""DocStream - streamed, history-aware question answering over a vector index."""

from .chain import AnswerSynthesizer, AnsweringPipeline, QueryRewriter, Retriever
from .document_processing import DocumentLoader, TextChunker
from .embeddings import EmbeddingService
from .errors import InputError, PipelineError, ProviderError
from .ingestion import IngestionPipeline
from .llm import ChatModel
from .models import Document, DocumentChunk, normalize_question
from .service import DocStream
from .streaming import StreamFrame, StreamingAnswer, StreamState
from .vector_store import (
    FaissVectorStore,
    InMemoryVectorStore,
    VectorIndex,
    get_vector_store,
)

__all__ = [
    "AnswerSynthesizer",
    "AnsweringPipeline",
    "ChatModel",
    "DocStream",
    "Document",
    "DocumentChunk",
    "DocumentLoader",
    "EmbeddingService",
    "FaissVectorStore",
    "InMemoryVectorStore",
    "IngestionPipeline",
    "InputError",
    "PipelineError",
    "ProviderError",
    "QueryRewriter",
    "Retriever",
    "StreamFrame",
    "StreamState",
    "StreamingAnswer",
    "TextChunker",
    "VectorIndex",
    "get_vector_store",
    "normalize_question",
]
