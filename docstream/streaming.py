"""Caller-facing answer stream: text frames, one metadata frame, then close."""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Literal

from .config import config
from .errors import ANSWER_FAILED_MESSAGE, PipelineError

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = config.get_logger(__name__)

TEXT_PART_CODE = "0"
DATA_PART_CODE = "2"


class StreamState(Enum):
    """Lifecycle of a StreamingAnswer."""

    STREAMING = "streaming"
    METADATA_SENT = "metadata_sent"
    CLOSED = "closed"


@dataclass(frozen=True)
class StreamFrame:
    """One unit delivered to the caller."""

    kind: Literal["text", "data"]
    payload: Any


def encode_frame(frame: StreamFrame) -> bytes:
    """Encode a frame as one line of the data stream protocol.

    Text frames become ``0:"token"`` and the metadata frame becomes
    ``2:[{...}]``.

    Returns:
        The UTF-8 encoded line, newline terminated.
    """
    if frame.kind == "text":
        line = f"{TEXT_PART_CODE}:{json.dumps(frame.payload, ensure_ascii=False)}\n"
    else:
        line = f"{DATA_PART_CODE}:{json.dumps([frame.payload], ensure_ascii=False)}\n"
    return line.encode("utf-8")


class StreamingAnswer:
    """A live answer plus the sources it was grounded on.

    Frames come out in a fixed order: every token as a text frame, then,
    once the token source finishes on its own, exactly one data frame
    ``{"sources": [...]}``, then the stream is closed. Cancellation or a
    failing token source closes the stream without the data frame.
    """

    media_type = "text/plain; charset=utf-8"
    headers = {"X-Experimental-Stream-Data": "true"}  # noqa: RUF012

    def __init__(self, tokens: Iterator[str], sources: list[str]) -> None:
        self._tokens = tokens
        self.sources = list(sources)
        self.state = StreamState.STREAMING
        self.metadata: dict[str, list[str]] | None = None
        self._cancelled = threading.Event()
        self._consumed = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def iter_frames(self) -> Iterator[StreamFrame]:
        """Yield text frames as tokens arrive, then the metadata frame.

        Raises:
            RuntimeError: If the stream was already consumed.
            PipelineError: If the token source fails part way through.
        """
        if self._consumed:
            msg = "Answer stream can only be consumed once"
            raise RuntimeError(msg)
        self._consumed = True
        return self._frames()

    def _frames(self) -> Iterator[StreamFrame]:
        try:
            try:
                for token in self._tokens:
                    if self.cancelled:
                        break
                    yield StreamFrame("text", token)
            except Exception as exc:
                logger.exception("Answer stream failed after it started")
                raise PipelineError(ANSWER_FAILED_MESSAGE, cause=exc) from exc

            if self.cancelled or self.state is not StreamState.STREAMING:
                logger.info("Answer stream cancelled; sources not sent")
                return

            self.metadata = {"sources": list(self.sources)}
            self.state = StreamState.METADATA_SENT
            yield StreamFrame("data", self.metadata)
        finally:
            self._close()

    def iter_text(self) -> Iterator[str]:
        """Yield only the answer tokens; the metadata is kept on ``metadata``."""
        for frame in self.iter_frames():
            if frame.kind == "text":
                yield frame.payload

    def iter_encoded(self) -> Iterator[bytes]:
        """Yield the whole response in its wire encoding."""
        for frame in self.iter_frames():
            yield encode_frame(frame)

    __iter__ = iter_frames

    def cancel(self) -> None:
        """Stop the answer and release the provider stream without sources.

        From another thread the provider stream is released at the next token
        boundary by the consuming loop.
        """
        if self.state is StreamState.CLOSED:
            return
        self._cancelled.set()
        try:
            self._close()
        except ValueError:
            logger.debug("Token source busy in another thread; closing on next token")

    def _close(self) -> None:
        if self.state is StreamState.CLOSED:
            return
        close = getattr(self._tokens, "close", None)
        if close is not None:
            close()
        self.state = StreamState.CLOSED
