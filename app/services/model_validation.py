"""Startup check that configured models exist on the Ollama server."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import ModelFetchError
from app.services.ollama_client import OllamaClient
from app.services.ollama_config import OllamaConfigService

logger = logging.getLogger(__name__)


async def validate_models(db: AsyncSession, client: OllamaClient | None = None) -> list[str]:
    """Compare enabled models with what the server offers.

    Returns the ids of missing models. Problems are logged; in production
    they raise RuntimeError so a misconfigured deployment fails fast.
    """
    service = OllamaConfigService(db)
    client = client or OllamaClient()

    base_url = await service.get_base_url()
    api_format = await service.get_api_format()
    configured = [c.id for c in await service.get_model_configs() if c.enabled]

    logger.info(f"Validating configured models {configured} against {base_url}")

    try:
        available = {m.get("id") for m in await client.fetch_models(base_url, api_format)}
    except (ModelFetchError, ValueError) as e:
        message = f"Model validation failed: {e}"
        if settings.is_production:
            raise RuntimeError(message) from e
        logger.warning(f"{message} (continuing outside production)")
        return []

    missing = [model_id for model_id in configured if model_id not in available]
    if not missing:
        logger.info(f"All {len(configured)} configured models are available")
        return []

    message = (
        f"Missing Ollama models: {', '.join(missing)}. Install them using: "
        + " && ".join(f"ollama pull {m}" for m in missing)
    )
    logger.error(message)
    if settings.is_production:
        raise RuntimeError(message)
    return missing
