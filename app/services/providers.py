"""Chat model handles built from the stored Ollama configuration."""

from __future__ import annotations

import logging
import re
from collections.abc import AsyncIterator, Callable, Iterator
from dataclasses import dataclass, field
from typing import Literal

from openai import AsyncOpenAI
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import ModelNotAvailableError
from app.schemas.ollama import ModelConfig
from app.services.ollama_config import OllamaConfigService, to_openai_base_url

logger = logging.getLogger(__name__)

REASONING_TAG = "think"
TITLE_MODEL = "title-model"
ARTIFACT_MODEL = "artifact-model"
FALLBACK_SPECIAL_MODEL_ID = "qwen3:14b"


@dataclass
class ChatResult:
    text: str
    reasoning: str | None = None


@dataclass
class ChatChunk:
    type: Literal["text", "reasoning"]
    delta: str


def extract_reasoning(text: str, tag_name: str = REASONING_TAG) -> ChatResult:
    """Split ``<tag>...</tag>`` segments out of a complete model answer."""
    pattern = re.compile(rf"<{re.escape(tag_name)}>(.*?)</{re.escape(tag_name)}>", re.DOTALL)
    segments = [s.strip() for s in pattern.findall(text)]
    if not segments:
        return ChatResult(text=text)

    answer = pattern.sub("", text).strip()
    reasoning = "\n".join(s for s in segments if s)
    return ChatResult(text=answer, reasoning=reasoning or None)


@dataclass
class ReasoningStreamParser:
    """Incrementally route streamed text into text and reasoning chunks.

    Tags may be split across deltas, so any trailing fragment that could be
    the start of a tag is held back until the next delta arrives.
    """

    tag_name: str = REASONING_TAG
    in_reasoning: bool = False
    _buffer: str = field(default="", repr=False)

    @property
    def _open_tag(self) -> str:
        return f"<{self.tag_name}>"

    @property
    def _close_tag(self) -> str:
        return f"</{self.tag_name}>"

    def _emit(self, text: str) -> Iterator[ChatChunk]:
        if text:
            yield ChatChunk("reasoning" if self.in_reasoning else "text", text)

    def feed(self, delta: str) -> Iterator[ChatChunk]:
        self._buffer += delta
        while True:
            tag = self._close_tag if self.in_reasoning else self._open_tag
            index = self._buffer.find(tag)
            if index != -1:
                yield from self._emit(self._buffer[:index])
                self._buffer = self._buffer[index + len(tag):]
                self.in_reasoning = not self.in_reasoning
                continue

            keep = 0
            for size in range(min(len(tag) - 1, len(self._buffer)), 0, -1):
                if tag.startswith(self._buffer[-size:]):
                    keep = size
                    break
            split = len(self._buffer) - keep
            yield from self._emit(self._buffer[:split])
            self._buffer = self._buffer[split:]
            return

    def flush(self) -> Iterator[ChatChunk]:
        text, self._buffer = self._buffer, ""
        yield from self._emit(text)


class LanguageModel:
    """A model served through the OpenAI-compatible chat completions API."""

    def __init__(self, client: AsyncOpenAI, model_id: str):
        if not model_id or model_id != model_id.strip() or any(c.isspace() for c in model_id):
            raise ValueError(f"Invalid model id: {model_id!r}")
        self.client = client
        self.model_id = model_id

    def _request(
        self,
        messages: list[dict],
        temperature: float | None,
        max_tokens: int | None,
    ) -> dict:
        kwargs: dict = {"model": self.model_id, "messages": messages}
        if temperature is not None:
            kwargs["temperature"] = temperature
        if max_tokens:
            kwargs["max_tokens"] = max_tokens
        return kwargs

    async def generate(
        self,
        messages: list[dict],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ChatResult:
        response = await self.client.chat.completions.create(
            **self._request(messages, temperature, max_tokens)
        )
        return ChatResult(text=response.choices[0].message.content or "")

    async def stream(
        self,
        messages: list[dict],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[ChatChunk]:
        stream = await self.client.chat.completions.create(
            **self._request(messages, temperature, max_tokens), stream=True
        )
        async for event in stream:
            if not event.choices:
                continue
            delta = event.choices[0].delta.content
            if delta:
                yield ChatChunk("text", delta)


class ReasoningLanguageModel:
    """Wraps a model whose output embeds its reasoning in delimiter tags."""

    def __init__(self, model: LanguageModel, tag_name: str = REASONING_TAG):
        self.model = model
        self.tag_name = tag_name

    @property
    def model_id(self) -> str:
        return self.model.model_id

    async def generate(
        self,
        messages: list[dict],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ChatResult:
        result = await self.model.generate(messages, temperature, max_tokens)
        return extract_reasoning(result.text, self.tag_name)

    async def stream(
        self,
        messages: list[dict],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[ChatChunk]:
        parser = ReasoningStreamParser(self.tag_name)
        async for chunk in self.model.stream(messages, temperature, max_tokens):
            for out in parser.feed(chunk.delta):
                yield out
        for out in parser.flush():
            yield out


ModelHandle = LanguageModel | ReasoningLanguageModel
ClientFactory = Callable[[str], AsyncOpenAI]


def create_openai_client(base_url: str) -> AsyncOpenAI:
    return AsyncOpenAI(
        base_url=base_url,
        api_key=settings.OLLAMA_API_KEY,
        timeout=settings.CHAT_REQUEST_TIMEOUT,
    )


def create_model_handle(client: AsyncOpenAI, model_id: str, reasoning: bool) -> ModelHandle:
    """Build a handle, wrapping it when the model emits reasoning tags."""
    model = LanguageModel(client, model_id)
    return ReasoningLanguageModel(model) if reasoning else model


def select_special_model(configs: list[ModelConfig]) -> str:
    """Model backing the title and artifact aliases."""
    enabled = [c for c in configs if c.enabled]
    default = next((c for c in enabled if c.is_default), None)
    if default:
        return default.id
    if enabled:
        return enabled[0].id
    return FALLBACK_SPECIAL_MODEL_ID


class ModelProvider:
    """Mapping from model id (or alias) to a callable model handle."""

    def __init__(self, models: dict[str, ModelHandle], base_url: str):
        self.models = models
        self.base_url = base_url

    def __contains__(self, model_id: object) -> bool:
        return model_id in self.models

    def language_model(self, model_id: str) -> ModelHandle:
        try:
            return self.models[model_id]
        except KeyError:
            raise ModelNotAvailableError(model_id) from None


async def build_provider(
    db: AsyncSession,
    client_factory: ClientFactory | None = None,
) -> ModelProvider:
    """Assemble handles for every enabled model plus the special aliases.

    Built fresh on each call; configuration reads go through the config
    service cache. A model whose handle cannot be built is skipped.
    """
    service = OllamaConfigService(db)
    configured_url = await service.get_base_url()
    configs = await service.get_model_configs()

    base_url = to_openai_base_url(configured_url)
    client = (client_factory or create_openai_client)(base_url)

    models: dict[str, ModelHandle] = {}
    for config in configs:
        if not config.enabled:
            continue
        try:
            models[config.id] = create_model_handle(client, config.id, config.reasoning)
        except ValueError as e:
            logger.warning(f"Skipping model '{config.id}': {e}")

    special_id = select_special_model(configs)
    special_config = next((c for c in configs if c.id == special_id), None)
    try:
        special = create_model_handle(
            client, special_id, bool(special_config and special_config.reasoning)
        )
    except ValueError as e:
        logger.warning(f"Cannot bind title/artifact models to '{special_id}': {e}")
    else:
        models[TITLE_MODEL] = special
        models[ARTIFACT_MODEL] = special

    logger.info(
        f"Provider created at {base_url} with {len(models)} handles "
        f"(special model: {special_id})"
    )
    return ModelProvider(models, base_url)
