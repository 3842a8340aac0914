"""Chat service routing conversations to the configured Ollama models."""

import logging
from collections.abc import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ModelNotAvailableError
from app.core.telemetry import get_tracer
from app.services.ollama_config import OllamaConfigService
from app.services.providers import (
    TITLE_MODEL,
    ChatChunk,
    ChatResult,
    ClientFactory,
    ModelProvider,
    build_provider,
)

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

TITLE_SYSTEM_PROMPT = (
    "You will generate a short title based on the first message a user begins "
    "a conversation with. Keep it under 80 characters. Do not use quotes or colons. "
    "Reply with the title only."
)
MAX_TITLE_LENGTH = 80


class ChatService:
    """
    Generates chat responses with the models an administrator enabled.

    The provider is assembled lazily on first use and reused for the rest of
    the request.
    """

    def __init__(self, db: AsyncSession, client_factory: ClientFactory | None = None):
        self.db = db
        self.config = OllamaConfigService(db)
        self._client_factory = client_factory
        self._provider: ModelProvider | None = None

    async def get_provider(self) -> ModelProvider:
        if self._provider is None:
            self._provider = await build_provider(self.db, self._client_factory)
        return self._provider

    async def _resolve(self, model_id: str):
        if not await self.config.is_model_enabled(model_id):
            raise ModelNotAvailableError(model_id)
        provider = await self.get_provider()
        return provider.language_model(model_id)

    async def generate_from_messages(
        self,
        model_id: str,
        messages: list[dict],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ChatResult:
        """
        Generate a complete response.

        Args:
            model_id: An enabled model id
            messages: List of message dicts with 'role' and 'content' keys
            temperature: Sampling temperature (0-2)
            max_tokens: Maximum tokens in response

        Raises:
            ModelNotAvailableError: If the model is unknown or disabled
        """
        model = await self._resolve(model_id)
        logger.debug(f"Generating response with {model_id} ({len(messages)} messages)")
        with tracer.start_as_current_span("chat.generate") as span:
            span.set_attribute("chat.model", model_id)
            span.set_attribute("chat.message_count", len(messages))
            return await model.generate(messages, temperature, max_tokens)

    async def stream_from_messages(
        self,
        model_id: str,
        messages: list[dict],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[ChatChunk]:
        """Start a streamed response of text and reasoning chunks.

        The model is resolved before returning, so an unavailable model is
        reported before any chunk is sent.
        """
        model = await self._resolve(model_id)
        logger.debug(f"Streaming response with {model_id} ({len(messages)} messages)")
        return model.stream(messages, temperature, max_tokens)

    async def generate_title(self, message: str) -> str:
        """Generate a conversation title from the user's first message."""
        provider = await self.get_provider()
        model = provider.language_model(TITLE_MODEL)
        with tracer.start_as_current_span("chat.title") as span:
            span.set_attribute("chat.model", model.model_id)
            result = await model.generate(
                [
                    {"role": "system", "content": TITLE_SYSTEM_PROMPT},
                    {"role": "user", "content": message},
                ]
            )
        title = result.text.strip().strip('"').strip()
        return title[:MAX_TITLE_LENGTH] or "New chat"
