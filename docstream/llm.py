"""OpenAI chat completion client in non-streaming and streaming flavours."""

from collections.abc import Iterator
from typing import Any

from openai import OpenAI, OpenAIError

from .config import config
from .errors import ProviderError

logger = config.get_logger(__name__)

Message = dict[str, str]


class ChatModel:
    """Chat completion capability backed by the OpenAI API."""

    def __init__(
        self,
        openai_api_key: str | None = None,
        model: str | None = None,
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> None:
        """Initialize the chat model client.

        Args:
            openai_api_key: OpenAI API key. If None, uses config.
            model: Chat model name. If None, uses config.CHAT_MODEL.
            temperature: Sampling temperature. If None, uses config.CHAT_TEMPERATURE.
            max_tokens: Completion token cap. If None, uses config.CHAT_MAX_TOKENS.
        """
        default_headers = config.get_api_headers()
        self.client = OpenAI(
            api_key=openai_api_key or config.get_openai_api_key(),
            base_url=config.OPENAI_BASE_URL,
            default_headers=default_headers or None,
        )
        self.model = model or config.CHAT_MODEL
        self.temperature = (
            temperature if temperature is not None else config.CHAT_TEMPERATURE
        )
        self.max_tokens = max_tokens if max_tokens is not None else config.CHAT_MAX_TOKENS

    def complete(self, messages: list[Message]) -> str:
        """Run a single non-streaming completion.

        Returns:
            The message content, or an empty string when the model sent none.

        Raises:
            ProviderError: If the API call fails.
        """
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except OpenAIError as exc:
            logger.debug("Chat completion request failed: %s", exc)
            msg = f"Chat completion failed: {exc}"
            raise ProviderError(msg) from exc
        return response.choices[0].message.content or ""

    def stream(self, messages: list[Message]) -> Iterator[str]:
        """Start a streaming completion.

        The request is sent before this method returns, so connection and
        request errors surface here; the returned iterator yields content
        deltas as they arrive and closes the HTTP response when it is
        exhausted or closed early.

        Raises:
            ProviderError: If the request cannot be started.
        """
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                stream=True,
            )
        except OpenAIError as exc:
            logger.debug("Streaming chat completion request failed: %s", exc)
            msg = f"Streaming chat completion failed: {exc}"
            raise ProviderError(msg) from exc
        return self._iter_tokens(response)

    @staticmethod
    def _iter_tokens(response: Any) -> Iterator[str]:
        try:
            for chunk in response:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    yield delta
        except OpenAIError as exc:
            logger.debug("Chat completion stream broke off: %s", exc)
            msg = f"Chat completion stream failed: {exc}"
            raise ProviderError(msg) from exc
        finally:
            response.close()
