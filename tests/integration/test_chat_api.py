"""Integration tests for the chat endpoints."""

import json
from unittest.mock import patch

import httpx
import openai
import pytest

from tests.conftest import FakeOpenAI, login_as


def chat_body(model: str = "chat-model", stream: bool = False) -> dict:
    return {
        "selectedChatModel": model,
        "messages": [{"role": "user", "content": "Hi"}],
        "stream": stream,
    }


def patch_openai(client):
    return patch("app.services.providers.create_openai_client", return_value=client)


class FailingOpenAI(FakeOpenAI):
    async def _create(self, **kwargs):
        raise openai.APIConnectionError(
            request=httpx.Request("POST", "http://localhost:11434/v1/chat/completions")
        )


class TestChatApi:
    """Tests for POST /chat."""

    @pytest.mark.asyncio
    async def test_requires_auth(self, client):
        response = await client.post("/api/v1/chat", json=chat_body())

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_chat(self, api_app, client, regular_user):
        login_as(api_app, regular_user)
        fake = FakeOpenAI(text="Hello!")

        with patch_openai(fake):
            response = await client.post("/api/v1/chat", json=chat_body())

        assert response.status_code == 200
        assert response.json() == {"model": "chat-model", "content": "Hello!", "reasoning": None}
        assert fake.calls[0]["model"] == "chat-model"

    @pytest.mark.asyncio
    async def test_chat_reasoning_model(self, api_app, client, regular_user):
        login_as(api_app, regular_user)

        with patch_openai(FakeOpenAI(text="<think>Be polite.</think>Hello!")):
            response = await client.post(
                "/api/v1/chat", json=chat_body("chat-model-reasoning")
            )

        assert response.json()["content"] == "Hello!"
        assert response.json()["reasoning"] == "Be polite."

    @pytest.mark.asyncio
    async def test_unknown_model(self, api_app, client, regular_user):
        login_as(api_app, regular_user)

        with patch_openai(FakeOpenAI()):
            response = await client.post("/api/v1/chat", json=chat_body("mistral:7b"))

        assert response.status_code == 400
        assert response.json()["detail"] == "Model 'mistral:7b' is not available"

    @pytest.mark.asyncio
    async def test_upstream_failure(self, api_app, client, regular_user):
        login_as(api_app, regular_user)

        with patch_openai(FailingOpenAI()):
            response = await client.post("/api/v1/chat", json=chat_body())

        assert response.status_code == 502

    @pytest.mark.asyncio
    async def test_empty_messages_rejected(self, api_app, client, regular_user):
        login_as(api_app, regular_user)
        body = chat_body()
        body["messages"] = []

        response = await client.post("/api/v1/chat", json=body)

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_stream(self, api_app, client, regular_user):
        login_as(api_app, regular_user)

        with patch_openai(FakeOpenAI(deltas=["<think>hm", "m</think>", "Hel", "lo"])):
            response = await client.post(
                "/api/v1/chat", json=chat_body("chat-model-reasoning", stream=True)
            )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")

        lines = [line[len("data: "):] for line in response.text.splitlines() if line]
        assert lines[-1] == "[DONE]"
        events = [json.loads(line) for line in lines[:-1]]
        assert "".join(e["delta"] for e in events if e["type"] == "reasoning") == "hmm"
        assert "".join(e["delta"] for e in events if e["type"] == "text") == "Hello"

    @pytest.mark.asyncio
    async def test_stream_upstream_failure(self, api_app, client, regular_user):
        """Test a failure after the stream starts is reported as an error event."""
        login_as(api_app, regular_user)

        with patch_openai(FailingOpenAI()):
            response = await client.post("/api/v1/chat", json=chat_body(stream=True))

        assert response.status_code == 200
        lines = [line[len("data: "):] for line in response.text.splitlines() if line]
        assert json.loads(lines[0])["type"] == "error"
        assert lines[-1] == "[DONE]"


class TestTitleApi:
    """Tests for POST /chat/title."""

    @pytest.mark.asyncio
    async def test_title(self, api_app, client, regular_user):
        login_as(api_app, regular_user)
        fake = FakeOpenAI(text="Greeting")

        with patch_openai(fake):
            response = await client.post("/api/v1/chat/title", json={"message": "Hi there"})

        assert response.status_code == 200
        assert response.json() == {"title": "Greeting"}
        assert fake.calls[0]["model"] == "chat-model"
