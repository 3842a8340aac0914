"""HTTP client for probing and listing models on an Ollama server."""

import logging
from typing import Any
from urllib.parse import urlparse

import httpx

from app.config import settings
from app.core.exceptions import ModelFetchError
from app.schemas.ollama import ApiFormat
from app.services.ollama_config import normalize_base_url

logger = logging.getLogger(__name__)


def discovery_url(url: str, api_format: ApiFormat) -> str:
    """Build the model listing endpoint for a server URL and API format.

    Raises:
        ValueError: If the URL has no http(s) scheme or host, or a bad port
    """
    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise ValueError(f"Invalid Ollama server URL: {url!r}")
    try:
        parsed.port
    except ValueError as e:
        raise ValueError(f"Invalid Ollama server URL: {url!r} ({e})") from e

    base = normalize_base_url(url, api_format)
    if api_format == ApiFormat.NATIVE:
        return f"{base}/api/tags"
    return f"{base}/models"


def normalize_model_entries(payload: Any, api_format: ApiFormat) -> list[dict[str, Any]]:
    """Unwrap a discovery response into entries that all carry an ``id``."""
    if not isinstance(payload, dict):
        raise ModelFetchError("Unexpected response body from Ollama server")

    key = "models" if api_format == ApiFormat.NATIVE else "data"
    entries = payload.get(key) or []
    if not isinstance(entries, list) or not all(isinstance(e, dict) for e in entries):
        raise ModelFetchError(f"Unexpected '{key}' list in Ollama server response")

    if api_format == ApiFormat.NATIVE:
        models = []
        for entry in entries:
            entry = dict(entry)
            entry["id"] = entry.pop("name", entry.get("id"))
            models.append(entry)
        return models

    return [dict(entry) for entry in entries]


class OllamaClient:
    """Reachability checks and model discovery against an Ollama server.

    Every request carries the configured timeout so an unresponsive server
    cannot hold a request open indefinitely.
    """

    def __init__(
        self,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout if timeout is not None else settings.OLLAMA_REQUEST_TIMEOUT
        self.transport = transport

    async def _get(self, url: str) -> httpx.Response:
        async with httpx.AsyncClient(
            timeout=self.timeout,
            transport=self.transport,
            follow_redirects=True,
        ) as client:
            return await client.get(url, headers={"Content-Type": "application/json"})

    async def test_connection(self, url: str, api_format: ApiFormat) -> bool:
        """Return True if the server answers its discovery endpoint with 2xx.

        Timeouts, refused connections and error statuses return False.

        Raises:
            ValueError: If the URL is malformed
        """
        endpoint = discovery_url(url, api_format)
        logger.info(f"Testing Ollama connection: {endpoint} (format: {api_format.value})")

        try:
            response = await self._get(endpoint)
        except httpx.HTTPError as e:
            logger.error(f"Ollama connection test error for {endpoint}: {e!r}")
            return False

        if not response.is_success:
            logger.warning(f"Ollama connection test failed for {endpoint}: {response.status_code}")
            return False

        logger.info(f"Ollama connection test successful: {endpoint}")
        return True

    async def fetch_models(self, url: str, api_format: ApiFormat) -> list[dict[str, Any]]:
        """List the models the server offers.

        Raises:
            ValueError: If the URL is malformed
            ModelFetchError: On transport failure or a non-2xx status
        """
        endpoint = discovery_url(url, api_format)
        logger.debug(f"Fetching Ollama models from {endpoint}")

        try:
            response = await self._get(endpoint)
        except httpx.HTTPError as e:
            logger.error(f"Failed to reach Ollama server at {endpoint}: {e!r}")
            raise ModelFetchError(f"Connection error: {e}") from e

        if not response.is_success:
            logger.error(f"Failed to fetch models from {endpoint}: {response.status_code}")
            raise ModelFetchError(
                f"Failed to fetch models: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise ModelFetchError("Ollama server returned invalid JSON") from e

        models = normalize_model_entries(payload, api_format)
        logger.info(f"Fetched {len(models)} Ollama models from {endpoint}")
        return models
