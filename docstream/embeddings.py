"""OpenAI embeddings service."""

import numpy as np
from openai import OpenAI, OpenAIError

from .config import config
from .errors import ProviderError

logger = config.get_logger(__name__)


class EmbeddingService:
    """Turns text into embedding vectors through the OpenAI embeddings API."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
    ) -> None:
        """Create the OpenAI client.

        Args:
            api_key: OpenAI API key. If None, uses config.
            model: Embedding model name. If None, uses config.EMBEDDING_MODEL.
        """
        self.client = OpenAI(
            api_key=api_key or config.get_openai_api_key(),
            base_url=config.OPENAI_BASE_URL,
            default_headers=config.get_api_headers() or None,
        )
        self.model = model or config.EMBEDDING_MODEL

    def _create(self, inputs: str | list[str]) -> list[np.ndarray]:
        try:
            response = self.client.embeddings.create(model=self.model, input=inputs)
        except OpenAIError as exc:
            logger.debug("Embedding request for %s failed: %s", self.model, exc)
            msg = f"Embedding request failed: {exc}"
            raise ProviderError(msg) from exc
        return [np.array(item.embedding) for item in response.data]

    def embed(self, text: str) -> np.ndarray:
        """Embed a single query or passage.

        Raises:
            ProviderError: If the embeddings API call fails.
        """  # noqa: DOC201
        return self._create(text)[0]

    def embed_batch(
        self,
        texts: list[str],
        batch_size: int = 100,
    ) -> list[np.ndarray]:
        """Embed many texts, one API call per ``batch_size`` slice.

        Returns:
            Embedding vectors in the order of ``texts``.

        Raises:
            ProviderError: If any batch request fails; earlier batches are
                discarded with it.
        """
        embeddings: list[np.ndarray] = []
        batches = range(0, len(texts), batch_size)
        for number, start in enumerate(batches, start=1):
            embeddings.extend(self._create(texts[start : start + batch_size]))
            logger.debug("Embedded batch %d/%d", number, len(batches))
        if texts:
            logger.info("Embedded %d texts with %s", len(texts), self.model)
        return embeddings
