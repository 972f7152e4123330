"""Exception types raised by DocStream components."""

ANSWER_FAILED_MESSAGE = "Answering pipeline failed to execute successfully"
INGEST_FAILED_MESSAGE = "Failed to load documents"


class DocStreamError(Exception):
    """Base class for DocStream errors."""


class ProviderError(DocStreamError):
    """A completion, embedding or vector index call failed."""


class InputError(DocStreamError, ValueError):
    """The caller supplied an unusable question."""


class PipelineError(DocStreamError, RuntimeError):
    """Generic failure surfaced by the answering and ingestion pipelines.

    The message is fixed per pipeline so callers see a stable error; the
    underlying exception is kept on ``cause`` (and ``__cause__``) for logs
    and tests.
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause
