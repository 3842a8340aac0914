"""Schemas for Ollama server and model configuration."""

from enum import Enum
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

LOCAL_HOSTNAMES = {"localhost", "127.0.0.1"}


class ApiFormat(str, Enum):
    """Shape of the model discovery API exposed by the server."""

    NATIVE = "native"
    OPENAI = "openai"


class ModelConfig(BaseModel):
    """A chat model exposed to users, stored with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(..., min_length=1, max_length=200)
    display_name: str = Field(..., min_length=1, max_length=100)
    enabled: bool = True
    is_default: bool = False
    reasoning: bool = False


class ChatModel(BaseModel):
    """An enabled model as shown in the model selector."""

    id: str
    name: str
    description: str
    reasoning: bool = False


class ActiveModelsResponse(BaseModel):
    models: list[ChatModel]
    default_model_id: str


def _check_http_url(url: str) -> str:
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise ValueError("Must be a valid http(s) URL")
    try:
        parsed.port
    except ValueError:
        raise ValueError("Port must be between 0 and 65535") from None
    return url


def _check_server_url(url: str) -> str:
    """Plain http is only accepted for a server on the local machine."""
    _check_http_url(url)
    parsed = urlparse(url)
    if parsed.hostname not in LOCAL_HOSTNAMES and parsed.scheme != "https":
        raise ValueError("Non-localhost URLs must use HTTPS")
    return url


class ServerConfigUpdate(BaseModel):
    """Schema for updating the Ollama server URL and API format."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    url: str = Field(..., description="Base URL of the Ollama server")
    format: ApiFormat | None = Field(
        default=None,
        description="API format used for discovery; keeps the stored format if omitted",
    )
    test_connection: bool = Field(
        default=True,
        description="Test the connection before saving",
    )

    @field_validator("url")
    @classmethod
    def check_url(cls, value: str) -> str:
        return _check_server_url(value)


class ServerConfigResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    base_url: str
    api_format: ApiFormat


class ModelConfigsUpdate(BaseModel):
    """Schema for replacing the model list."""

    models: list[ModelConfig]


class ModelConfigsResponse(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, protected_namespaces=()
    )

    success: bool = True
    model_configs: list[ModelConfig]


class OllamaConfigResponse(BaseModel):
    """Current Ollama configuration as seen by administrators."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, protected_namespaces=()
    )

    base_url: str
    api_format: ApiFormat
    model_configs: list[ModelConfig]


class ConnectionTestRequest(BaseModel):
    url: str
    format: ApiFormat | None = None

    @field_validator("url")
    @classmethod
    def check_url(cls, value: str) -> str:
        return _check_http_url(value)


class ConnectionTestResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    message: str
    url: str
    api_format: ApiFormat


class ModelDiscoveryRequest(BaseModel):
    """Discover models at a URL before saving it; defaults to the stored server."""

    url: str | None = None
    format: ApiFormat | None = None

    @field_validator("url")
    @classmethod
    def check_url(cls, value: str | None) -> str | None:
        if value is None:
            return value
        return _check_http_url(value)


class ModelDiscoveryResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    models: list[dict[str, Any]]
    base_url: str
    api_format: ApiFormat
