"""Data models for the question-answering pipeline."""

import hashlib
import json
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from .errors import InputError

ChatHistory = str


@dataclass
class Document:
    """A record handed to ingestion: text plus open metadata."""

    text: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class DocumentChunk:
    """A unit of indexed content as stored in and returned by a vector store."""

    text: str
    metadata: dict[str, Any]
    embedding: np.ndarray | None = None


@dataclass
class ConversationTurn:
    """One finished exchange, as kept by a caller that owns the history."""

    user_question: str
    bot_response: str
    sources: list[str]
    timestamp: str


def format_chat_history(turns: list[ConversationTurn], max_turns: int = 5) -> ChatHistory:
    """Serialize the most recent turns into the opaque history text.

    Returns:
        ``Human:``/``Assistant:`` lines, oldest first; empty without turns.
    """
    if max_turns <= 0:
        return ""
    lines: list[str] = []
    for turn in turns[-max_turns:]:
        lines.append(f"Human: {turn.user_question}")
        lines.append(f"Assistant: {turn.bot_response}")
    return "\n".join(lines)


def normalize_question(question: str) -> str:
    """Trim the question and collapse embedded line breaks into spaces.

    Returns:
        The normalized question.

    Raises:
        InputError: If nothing is left after normalization.
    """
    normalized = question.strip().replace("\r\n", " ").replace("\n", " ")
    normalized = normalized.replace("\r", " ")
    if not normalized:
        msg = "Question must not be empty"
        raise InputError(msg)
    return normalized


def content_hash(text: str, metadata: dict[str, Any] | None = None) -> str:
    """Identity of an index entry, used by the duplicate policy.

    Returns:
        Hex sha256 digest over the text and canonical JSON metadata.
    """
    payload = json.dumps(
        {"text": text, "metadata": metadata or {}},
        sort_keys=True,
        default=str,
        ensure_ascii=False,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
