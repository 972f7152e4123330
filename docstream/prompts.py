"""Prompt templates for question rewriting and answer synthesis."""

from .llm import Message
from .models import ChatHistory, DocumentChunk

CONTEXTUALIZE_PROMPT = (
    "Given a chat history and the latest user question "
    "which might reference context in the chat history, "
    "formulate a standalone question which can be understood "
    "without the chat history. Do NOT answer the question, just "
    "reformulate it if needed and otherwise return it as is."
)

QA_PROMPT = (
    "You are an assistant for question-answering tasks. Use "
    "the following pieces of retrieved context to answer the "
    "question. If you don't know the answer, just say that you "
    "don't know. Use three sentences maximum and keep the answer "
    "concise.\n\n"
    "{context}"
)

CONTEXT_SEPARATOR = "\n\n"


def _history_messages(chat_history: ChatHistory) -> list[Message]:
    if not chat_history.strip():
        return []
    return [{"role": "system", "content": f"Chat history:\n{chat_history}"}]


def build_rewrite_messages(question: str, chat_history: ChatHistory) -> list[Message]:
    """Messages asking the model for a standalone version of ``question``."""
    return [
        {"role": "system", "content": CONTEXTUALIZE_PROMPT},
        *_history_messages(chat_history),
        {"role": "user", "content": question},
    ]


def format_context(chunks: list[DocumentChunk]) -> str:
    """Concatenate chunk texts into the context slot, in retrieval order."""
    return CONTEXT_SEPARATOR.join(chunk.text for chunk in chunks)


def build_answer_messages(
    question: str,
    chat_history: ChatHistory,
    chunks: list[DocumentChunk],
) -> list[Message]:
    """Messages asking the model to answer ``question`` from ``chunks`` only."""
    return [
        {"role": "system", "content": QA_PROMPT.format(context=format_context(chunks))},
        *_history_messages(chat_history),
        {"role": "user", "content": question},
    ]
