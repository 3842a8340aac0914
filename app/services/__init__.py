"""Business logic services."""

from app.services.chat_service import ChatService
from app.services.model_validation import validate_models
from app.services.ollama_client import OllamaClient
from app.services.ollama_config import OllamaConfigService
from app.services.providers import ModelProvider, build_provider

__all__ = [
    "ChatService",
    "ModelProvider",
    "OllamaClient",
    "OllamaConfigService",
    "build_provider",
    "validate_models",
]
