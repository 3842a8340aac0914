"""Chat endpoints backed by the configured Ollama models."""

import json
import logging
from collections.abc import AsyncIterator

from fastapi import APIRouter
from fastapi.responses import StreamingResponse
from openai import OpenAIError

from app.api.deps import CurrentUser, DbSession
from app.core.exceptions import BadRequestError, ModelNotAvailableError, OllamaAPIError
from app.schemas.chat import ChatRequest, ChatResponse, TitleRequest, TitleResponse
from app.services.chat_service import ChatService
from app.services.providers import ChatChunk

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


async def _sse(chunks: AsyncIterator[ChatChunk]) -> AsyncIterator[str]:
    try:
        async for chunk in chunks:
            yield f"data: {json.dumps({'type': chunk.type, 'delta': chunk.delta})}\n\n"
    except OpenAIError as e:
        logger.error(f"Chat stream interrupted: {e}")
        yield f"data: {json.dumps({'type': 'error', 'error': 'Model request failed'})}\n\n"
    yield "data: [DONE]\n\n"


@router.post("", response_model=ChatResponse)
async def chat(
    db: DbSession,
    user: CurrentUser,
    data: ChatRequest,
):
    """Send the conversation to the selected model.

    With ``stream`` set, the answer is sent as server-sent events.
    """
    service = ChatService(db)
    messages = [m.model_dump() for m in data.messages]
    model_id = data.selected_chat_model

    try:
        if data.stream:
            chunks = await service.stream_from_messages(
                model_id, messages, data.temperature, data.max_tokens
            )
            return StreamingResponse(_sse(chunks), media_type="text/event-stream")

        result = await service.generate_from_messages(
            model_id, messages, data.temperature, data.max_tokens
        )
    except ModelNotAvailableError as e:
        raise BadRequestError(str(e))
    except OpenAIError as e:
        logger.error(f"Chat completion failed for {user.email} with {model_id}: {e}")
        raise OllamaAPIError("Model request failed")

    return ChatResponse(model=model_id, content=result.text, reasoning=result.reasoning)


@router.post("/title", response_model=TitleResponse)
async def generate_title(
    db: DbSession,
    user: CurrentUser,
    data: TitleRequest,
) -> TitleResponse:
    """Generate a conversation title from the first user message."""
    service = ChatService(db)
    try:
        title = await service.generate_title(data.message)
    except ModelNotAvailableError as e:
        raise BadRequestError(str(e))
    except OpenAIError as e:
        logger.error(f"Title generation failed for {user.email}: {e}")
        raise OllamaAPIError("Model request failed")
    return TitleResponse(title=title)
