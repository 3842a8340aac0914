"""Chat completion schemas."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str = Field(..., min_length=1)


class ChatRequest(BaseModel):
    """Schema for a chat turn against one of the enabled models."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    selected_chat_model: str = Field(..., min_length=1)
    messages: list[ChatMessage] = Field(..., min_length=1)
    temperature: float | None = Field(default=None, ge=0, le=2)
    max_tokens: int | None = Field(default=None, ge=1)
    stream: bool = False


class ChatResponse(BaseModel):
    model: str
    content: str
    reasoning: str | None = None


class TitleRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=2000)


class TitleResponse(BaseModel):
    title: str
