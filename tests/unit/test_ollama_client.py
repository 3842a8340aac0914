"""Unit tests for the Ollama discovery client."""

import httpx
import pytest

from app.core.exceptions import ModelFetchError
from app.schemas.ollama import ApiFormat
from app.services.ollama_client import OllamaClient, discovery_url, normalize_model_entries

NATIVE_TAGS = {
    "models": [
        {"name": "qwen3:14b", "size": 9276198565, "digest": "abc"},
        {"name": "deepseek-r1:8b", "size": 5225376047, "digest": "def"},
    ]
}

OPENAI_MODELS = {
    "object": "list",
    "data": [
        {"id": "qwen3:14b", "object": "model", "owned_by": "library"},
        {"id": "deepseek-r1:8b", "object": "model", "owned_by": "library"},
    ],
}


def make_client(handler) -> OllamaClient:
    return OllamaClient(timeout=1.0, transport=httpx.MockTransport(handler))


class TestDiscoveryUrl:
    """Tests for discovery_url."""

    def test_native(self):
        assert discovery_url("http://localhost:11434/v1", ApiFormat.NATIVE) == (
            "http://localhost:11434/api/tags"
        )

    def test_openai(self):
        assert discovery_url("http://localhost:11434", ApiFormat.OPENAI) == (
            "http://localhost:11434/v1/models"
        )

    @pytest.mark.parametrize(
        "url",
        ["not a url", "ftp://localhost:11434", "http://", "http://localhost:99999"],
    )
    def test_malformed(self, url):
        """Test URLs without an http(s) scheme and host are rejected."""
        with pytest.raises(ValueError):
            discovery_url(url, ApiFormat.OPENAI)


class TestNormalizeModelEntries:
    """Tests for normalize_model_entries."""

    def test_native_renames_name_to_id(self):
        models = normalize_model_entries(NATIVE_TAGS, ApiFormat.NATIVE)

        assert [m["id"] for m in models] == ["qwen3:14b", "deepseek-r1:8b"]
        assert "name" not in models[0]
        assert models[0]["size"] == 9276198565

    def test_openai_passes_entries_through(self):
        models = normalize_model_entries(OPENAI_MODELS, ApiFormat.OPENAI)

        assert models == OPENAI_MODELS["data"]

    def test_missing_list_is_empty(self):
        assert normalize_model_entries({}, ApiFormat.NATIVE) == []
        assert normalize_model_entries({"data": None}, ApiFormat.OPENAI) == []

    def test_non_object_body(self):
        with pytest.raises(ModelFetchError):
            normalize_model_entries(["qwen3:14b"], ApiFormat.OPENAI)

    @pytest.mark.parametrize(
        ("payload", "api_format"),
        [
            ({"models": ["qwen3:14b"]}, ApiFormat.NATIVE),
            ({"data": [1]}, ApiFormat.OPENAI),
            ({"data": "qwen3:14b"}, ApiFormat.OPENAI),
        ],
    )
    def test_non_object_entries(self, payload, api_format):
        """Test entries that are not objects are reported as a bad response."""
        with pytest.raises(ModelFetchError):
            normalize_model_entries(payload, api_format)


class TestOllamaClient:
    """Tests for OllamaClient."""

    @pytest.mark.asyncio
    async def test_connection_success_native(self):
        """Test a 2xx on /api/tags counts as reachable."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, json=NATIVE_TAGS)

        assert await make_client(handler).test_connection(
            "http://localhost:11434", ApiFormat.NATIVE
        )
        assert seen == ["http://localhost:11434/api/tags"]

    @pytest.mark.asyncio
    async def test_connection_success_openai(self):
        """Test a 2xx on /v1/models counts as reachable."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, json=OPENAI_MODELS)

        assert await make_client(handler).test_connection(
            "http://localhost:11434/v1", ApiFormat.OPENAI
        )
        assert seen == ["http://localhost:11434/v1/models"]

    @pytest.mark.asyncio
    async def test_connection_error_status(self):
        """Test a non-2xx response is reported as unreachable."""
        client = make_client(lambda request: httpx.Response(404))

        assert await client.test_connection("http://localhost:11434", ApiFormat.OPENAI) is False

    @pytest.mark.asyncio
    async def test_connection_timeout(self):
        """Test a timeout is reported as unreachable."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        client = make_client(handler)

        assert await client.test_connection("http://localhost:11434", ApiFormat.OPENAI) is False

    @pytest.mark.asyncio
    async def test_connection_refused(self):
        """Test nothing listening on the port is reported as unreachable."""
        client = OllamaClient(timeout=1.0)

        assert await client.test_connection("http://localhost:1", ApiFormat.NATIVE) is False

    @pytest.mark.asyncio
    async def test_connection_malformed_url(self):
        """Test a malformed URL is a caller error, not an unreachable server."""
        client = make_client(lambda request: httpx.Response(200))

        with pytest.raises(ValueError):
            await client.test_connection("localhost:11434", ApiFormat.NATIVE)

    @pytest.mark.asyncio
    async def test_connection_port_out_of_range(self):
        """Test a port outside 0-65535 is rejected before any request is made."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        with pytest.raises(ValueError):
            await make_client(handler).test_connection(
                "http://localhost:99999", ApiFormat.OPENAI
            )

        assert seen == []

    @pytest.mark.asyncio
    async def test_fetch_models_native(self):
        """Test native entries are returned with an id field."""
        client = make_client(lambda request: httpx.Response(200, json=NATIVE_TAGS))

        models = await client.fetch_models("http://localhost:11434", ApiFormat.NATIVE)

        assert [m["id"] for m in models] == ["qwen3:14b", "deepseek-r1:8b"]

    @pytest.mark.asyncio
    async def test_fetch_models_openai(self):
        """Test OpenAI-format entries are unwrapped from data."""
        client = make_client(lambda request: httpx.Response(200, json=OPENAI_MODELS))

        models = await client.fetch_models("http://localhost:11434/v1", ApiFormat.OPENAI)

        assert [m["id"] for m in models] == ["qwen3:14b", "deepseek-r1:8b"]

    @pytest.mark.asyncio
    async def test_fetch_models_error_status(self):
        """Test a non-2xx status raises with the status attached."""
        client = make_client(lambda request: httpx.Response(503))

        with pytest.raises(ModelFetchError) as exc_info:
            await client.fetch_models("http://localhost:11434", ApiFormat.NATIVE)

        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_fetch_models_transport_error(self):
        """Test a connection failure raises without a status."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ModelFetchError) as exc_info:
            await make_client(handler).fetch_models("http://localhost:11434", ApiFormat.NATIVE)

        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_fetch_models_unexpected_entries(self):
        """Test a list of bare names raises a fetch error instead of a TypeError."""
        client = make_client(lambda request: httpx.Response(200, json={"models": ["qwen3"]}))

        with pytest.raises(ModelFetchError):
            await client.fetch_models("http://localhost:11434", ApiFormat.NATIVE)

    @pytest.mark.asyncio
    async def test_fetch_models_invalid_json(self):
        """Test a non-JSON body raises."""
        client = make_client(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(ModelFetchError):
            await client.fetch_models("http://localhost:11434", ApiFormat.NATIVE)
