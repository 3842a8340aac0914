"""Runtime configuration of the Ollama server and the exposed chat models."""

import logging
from collections.abc import Sequence
from typing import Any

from cachetools import TTLCache
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import ModelConfigValidationError
from app.db.repositories.config import ConfigRepository
from app.schemas.ollama import ApiFormat, ChatModel, ModelConfig

logger = logging.getLogger(__name__)

# Keys used in the config table
OLLAMA_URL_KEY = "ollama_base_url"
OLLAMA_API_FORMAT_KEY = "ollama_api_format"
OLLAMA_MODELS_KEY = "ollama_models_config"

DEFAULT_OLLAMA_URL = "http://localhost:11434/v1"
DEFAULT_API_FORMAT = ApiFormat.OPENAI
DEFAULT_CHAT_MODEL = "chat-model"

REASONING_DESCRIPTION = "Reasoning model with advanced problem-solving capabilities"
CHAT_DESCRIPTION = "Fast and efficient chat model"


def default_model_configs() -> list[ModelConfig]:
    """Model list used until an administrator saves one."""
    return [
        ModelConfig(
            id="chat-model",
            display_name="Qwen3 Chat",
            enabled=True,
            is_default=True,
            reasoning=False,
        ),
        ModelConfig(
            id="chat-model-reasoning",
            display_name="Qwen3 Reasoning",
            enabled=True,
            is_default=False,
            reasoning=True,
        ),
    ]


# Raw stored values per key. Writes in this process invalidate immediately;
# other workers pick up changes once their entry expires. A read that started
# before a write finished is not cached, so it cannot restore a stale value.
_value_cache: TTLCache = TTLCache(maxsize=32, ttl=max(settings.CONFIG_CACHE_TTL, 1))
_write_generation = 0


def clear_config_cache() -> None:
    """Drop every cached configuration value."""
    _value_cache.clear()


def resolve_setting(stored: Any, environment: Any, fallback: Any) -> Any:
    """Return the first configured source: stored value, environment, constant."""
    for candidate in (stored, environment):
        if candidate not in (None, ""):
            return candidate
    return fallback


def normalize_base_url(url: str, api_format: ApiFormat) -> str:
    """Shape a server URL for the given API format.

    The native API lives at the server root, the OpenAI-compatible one
    under ``/v1``.
    """
    url = url.strip().rstrip("/")
    if api_format == ApiFormat.OPENAI:
        return url if url.endswith("/v1") else f"{url}/v1"
    return url[: -len("/v1")] if url.endswith("/v1") else url


def to_openai_base_url(url: str) -> str:
    """Chat completions always go through the OpenAI-compatible API."""
    return normalize_base_url(url, ApiFormat.OPENAI)


def validate_model_configs(configs: Sequence[ModelConfig]) -> None:
    """Check a model list before it is persisted.

    Raises:
        ModelConfigValidationError: no enabled model, not exactly one enabled
            default, or a repeated model id
    """
    if not any(c.enabled for c in configs):
        raise ModelConfigValidationError(
            "no_enabled_model", "At least one model must be enabled"
        )

    default_count = sum(1 for c in configs if c.enabled and c.is_default)
    if default_count != 1:
        raise ModelConfigValidationError(
            "not_exactly_one_default",
            "Exactly one enabled model must be set as default",
        )

    seen: set[str] = set()
    for config in configs:
        if config.id in seen:
            raise ModelConfigValidationError(
                "duplicate_model_id", f"Model '{config.id}' is listed more than once"
            )
        seen.add(config.id)


class OllamaConfigService:
    """Reads and writes Ollama configuration through the config table."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = ConfigRepository(db)

    async def _read(self, key: str) -> Any | None:
        if settings.CONFIG_CACHE_TTL > 0 and key in _value_cache:
            return _value_cache[key]

        generation = _write_generation
        value = await self.repo.get_value(key)
        if settings.CONFIG_CACHE_TTL > 0 and generation == _write_generation:
            _value_cache[key] = value
        return value

    async def _write(self, values: dict[str, Any]) -> None:
        global _write_generation
        try:
            await self.repo.upsert_many(values)
        finally:
            _write_generation += 1
            for key in values:
                _value_cache.pop(key, None)

    async def get_base_url(self) -> str:
        """Get the Ollama base URL, falling back to the environment."""
        stored = await self._read(OLLAMA_URL_KEY)
        return resolve_setting(stored, settings.OLLAMA_BASE_URL, DEFAULT_OLLAMA_URL)

    async def get_api_format(self) -> ApiFormat:
        """Get the API format used for discovery."""
        stored = await self._read(OLLAMA_API_FORMAT_KEY)
        raw = resolve_setting(stored, settings.OLLAMA_API_FORMAT, DEFAULT_API_FORMAT.value)
        try:
            return ApiFormat(raw)
        except ValueError:
            logger.warning(f"Ignoring unknown Ollama API format '{raw}'")
            try:
                return ApiFormat(settings.OLLAMA_API_FORMAT)
            except ValueError:
                return DEFAULT_API_FORMAT

    async def set_server_config(self, base_url: str, api_format: ApiFormat | None = None) -> None:
        """Persist the base URL and, if given, the API format together."""
        values: dict[str, Any] = {OLLAMA_URL_KEY: base_url}
        if api_format is not None:
            values[OLLAMA_API_FORMAT_KEY] = api_format.value

        logger.info(f"Updating Ollama server config: url={base_url}, format={api_format}")
        await self._write(values)

    async def get_model_configs(self) -> list[ModelConfig]:
        """Get the configured model list, or the built-in defaults."""
        stored = await self._read(OLLAMA_MODELS_KEY)
        if stored is None:
            return default_model_configs()

        try:
            return [ModelConfig.model_validate(item) for item in stored]
        except (TypeError, ValidationError) as e:
            logger.error(f"Stored model configuration is unreadable, using defaults: {e}")
            return default_model_configs()

    async def set_model_configs(self, configs: Sequence[ModelConfig]) -> None:
        """Validate and persist the whole model list.

        Raises:
            ModelConfigValidationError: If the list breaks an invariant; nothing
                is written in that case
        """
        validate_model_configs(configs)

        logger.info(f"Updating model configurations: count={len(configs)}")
        await self._write(
            {OLLAMA_MODELS_KEY: [c.model_dump(by_alias=True) for c in configs]}
        )

    async def get_active_models(self) -> list[ChatModel]:
        """Enabled models for display in the model selector."""
        configs = await self.get_model_configs()
        return [
            ChatModel(
                id=c.id,
                name=c.display_name,
                description=REASONING_DESCRIPTION if c.reasoning else CHAT_DESCRIPTION,
                reasoning=c.reasoning,
            )
            for c in configs
            if c.enabled
        ]

    async def get_default_model_id(self) -> str:
        configs = await self.get_model_configs()
        for config in configs:
            if config.enabled and config.is_default:
                return config.id
        return DEFAULT_CHAT_MODEL

    async def get_model_config(self, model_id: str) -> ModelConfig | None:
        configs = await self.get_model_configs()
        return next((c for c in configs if c.id == model_id), None)

    async def is_model_enabled(self, model_id: str) -> bool:
        config = await self.get_model_config(model_id)
        return config.enabled if config else False
