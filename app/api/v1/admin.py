"""Admin endpoints for the Ollama server and model configuration."""

import logging

from fastapi import APIRouter

from app.api.deps import AdminUser, DbSession, Ollama
from app.core.admin import get_admin_list
from app.core.exceptions import (
    BadRequestError,
    ModelConfigValidationError,
    ModelFetchError,
    OllamaAPIError,
)
from app.schemas.ollama import (
    ApiFormat,
    ConnectionTestRequest,
    ConnectionTestResponse,
    ModelConfigsResponse,
    ModelConfigsUpdate,
    ModelDiscoveryRequest,
    ModelDiscoveryResponse,
    OllamaConfigResponse,
    ServerConfigResponse,
    ServerConfigUpdate,
)
from app.schemas.user import AdminListResponse
from app.services.ollama_client import OllamaClient
from app.services.ollama_config import OllamaConfigService, normalize_base_url

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/ollama/config", response_model=OllamaConfigResponse)
async def get_ollama_config(
    db: DbSession,
    admin: AdminUser,
) -> OllamaConfigResponse:
    """Get the current Ollama configuration."""
    service = OllamaConfigService(db)
    logger.info(f"Admin {admin.email} fetched Ollama configuration")
    return OllamaConfigResponse(
        base_url=await service.get_base_url(),
        api_format=await service.get_api_format(),
        model_configs=await service.get_model_configs(),
    )


@router.post("/ollama/config", response_model=ServerConfigResponse)
async def update_server_config(
    db: DbSession,
    admin: AdminUser,
    ollama: Ollama,
    data: ServerConfigUpdate,
) -> ServerConfigResponse:
    """Update the Ollama base URL and, optionally, the API format.

    The connection is tested first unless ``testConnection`` is false; nothing is
    saved when the test fails.
    """
    service = OllamaConfigService(db)
    api_format = data.format or await service.get_api_format()
    base_url = normalize_base_url(data.url, api_format)

    if data.test_connection and not await ollama.test_connection(base_url, api_format):
        raise BadRequestError(
            "Failed to connect to Ollama server. Please check the URL and try again."
        )

    await service.set_server_config(base_url, data.format)

    logger.info(
        f"Admin {admin.email} updated Ollama configuration: "
        f"url={base_url}, format={api_format.value}"
    )
    return ServerConfigResponse(base_url=base_url, api_format=api_format)


@router.put("/ollama/config", response_model=ModelConfigsResponse)
async def update_model_configs(
    db: DbSession,
    admin: AdminUser,
    data: ModelConfigsUpdate,
) -> ModelConfigsResponse:
    """Replace the model list."""
    service = OllamaConfigService(db)
    try:
        await service.set_model_configs(data.models)
    except ModelConfigValidationError as e:
        raise BadRequestError({"reason": e.reason, "message": e.message})

    logger.info(f"Admin {admin.email} updated model configurations: count={len(data.models)}")
    return ModelConfigsResponse(model_configs=data.models)


@router.post("/ollama/test", response_model=ConnectionTestResponse)
async def test_connection(
    db: DbSession,
    admin: AdminUser,
    ollama: Ollama,
    data: ConnectionTestRequest,
) -> ConnectionTestResponse:
    """Test an Ollama server URL without saving it."""
    api_format = data.format or await OllamaConfigService(db).get_api_format()
    url = normalize_base_url(data.url, api_format)

    connected = await ollama.test_connection(url, api_format)
    logger.info(
        f"Admin {admin.email} tested Ollama connection: url={url}, "
        f"format={api_format.value}, success={connected}"
    )

    if not connected:
        message = (
            f"Failed to connect to Ollama server using {api_format.value} API format. "
            "Please verify the URL is correct and the server is running."
        )
    else:
        message = f"Successfully connected to Ollama server using {api_format.value} API format"

    return ConnectionTestResponse(
        success=connected,
        message=message,
        url=url,
        api_format=api_format,
    )


async def _discover(ollama: OllamaClient, url: str, api_format: ApiFormat) -> list[dict]:
    try:
        return await ollama.fetch_models(url, api_format)
    except ValueError as e:
        raise BadRequestError(str(e))
    except ModelFetchError as e:
        raise OllamaAPIError(f"Failed to fetch models from Ollama server: {e}")


@router.get("/ollama/models", response_model=ModelDiscoveryResponse)
async def list_server_models(
    db: DbSession,
    admin: AdminUser,
    ollama: Ollama,
) -> ModelDiscoveryResponse:
    """List the models available on the configured server."""
    service = OllamaConfigService(db)
    api_format = await service.get_api_format()
    base_url = normalize_base_url(await service.get_base_url(), api_format)

    models = await _discover(ollama, base_url, api_format)
    logger.info(f"Admin {admin.email} fetched {len(models)} Ollama models from {base_url}")
    return ModelDiscoveryResponse(models=models, base_url=base_url, api_format=api_format)


@router.post("/ollama/models", response_model=ModelDiscoveryResponse)
async def discover_models(
    db: DbSession,
    admin: AdminUser,
    ollama: Ollama,
    data: ModelDiscoveryRequest,
) -> ModelDiscoveryResponse:
    """List the models at a given URL, e.g. before saving it."""
    service = OllamaConfigService(db)
    api_format = data.format or await service.get_api_format()
    base_url = normalize_base_url(data.url or await service.get_base_url(), api_format)

    models = await _discover(ollama, base_url, api_format)
    logger.info(f"Admin {admin.email} fetched {len(models)} Ollama models from {base_url}")
    return ModelDiscoveryResponse(models=models, base_url=base_url, api_format=api_format)


@router.get("/admins", response_model=AdminListResponse)
async def list_admins(admin: AdminUser) -> AdminListResponse:
    """List the configured administrator e-mails."""
    return AdminListResponse(admins=get_admin_list(admin.email))
