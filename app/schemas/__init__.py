"""Pydantic schemas for request/response models."""

from app.schemas.chat import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    TitleRequest,
    TitleResponse,
)
from app.schemas.ollama import (
    ActiveModelsResponse,
    ApiFormat,
    ChatModel,
    ConnectionTestRequest,
    ConnectionTestResponse,
    ModelConfig,
    ModelConfigsResponse,
    ModelConfigsUpdate,
    ModelDiscoveryRequest,
    ModelDiscoveryResponse,
    OllamaConfigResponse,
    ServerConfigResponse,
    ServerConfigUpdate,
)
from app.schemas.user import AdminListResponse, CurrentUserDetail

__all__ = [
    # Chat
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "TitleRequest",
    "TitleResponse",
    # Ollama
    "ActiveModelsResponse",
    "ApiFormat",
    "ChatModel",
    "ConnectionTestRequest",
    "ConnectionTestResponse",
    "ModelConfig",
    "ModelConfigsResponse",
    "ModelConfigsUpdate",
    "ModelDiscoveryRequest",
    "ModelDiscoveryResponse",
    "OllamaConfigResponse",
    "ServerConfigResponse",
    "ServerConfigUpdate",
    # User
    "AdminListResponse",
    "CurrentUserDetail",
]
