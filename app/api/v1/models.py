"""Model selector endpoint."""

from fastapi import APIRouter

from app.api.deps import DbSession
from app.schemas.ollama import ActiveModelsResponse
from app.services.ollama_config import OllamaConfigService

router = APIRouter(prefix="/models", tags=["models"])


@router.get("", response_model=ActiveModelsResponse)
async def list_active_models(db: DbSession) -> ActiveModelsResponse:
    """List enabled models and the default selection."""
    service = OllamaConfigService(db)
    return ActiveModelsResponse(
        models=await service.get_active_models(),
        default_model_id=await service.get_default_model_id(),
    )
