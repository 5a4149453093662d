"""
Chat-related API schemas.

Provides request/response models for completions and conversation
history with comprehensive OpenAPI documentation.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from models.schemas.base import SuccessResponse

#: Roles accepted from callers and forwarded to the provider
MessageRole = Literal["system", "user", "assistant"]

# =============================================================================
# Request Models
# =============================================================================


class ChatMessage(BaseModel):
    """A single conversation message, also the shape of a stored turn."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "role": "user",
                "content": "Hi",
            }
        }
    )

    role: MessageRole = Field(
        ...,
        description="Author of the message",
        json_schema_extra={"example": "user"},
    )
    content: str = Field(
        ...,
        description="Message text (unbounded)",
        json_schema_extra={"example": "Hi"},
    )


class ChatRequest(BaseModel):
    """Request body for a completion."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "messages": [{"role": "user", "content": "Hi"}],
                "stream": False,
                "chatId": None,
            }
        },
    )

    messages: list[ChatMessage] = Field(
        ...,
        description="Full conversation so far, oldest first; the last entry is the new user turn",
    )
    stream: bool = Field(
        default=False,
        description="Stream the reply as Server-Sent Events",
        json_schema_extra={"example": False},
    )
    chat_id: str | None = Field(
        default=None,
        alias="chatId",
        description="Existing conversation to append to; omit to start a new one",
        json_schema_extra={"example": "550e8400-e29b-41d4-a716-446655440000"},
    )

    def as_provider_messages(self) -> list[dict[str, str]]:
        """Messages in the shape the chat-completions API expects."""
        return [message.model_dump() for message in self.messages]


# =============================================================================
# Response Models
# =============================================================================


class ChatReply(BaseModel):
    """Whole-response completion result."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "reply": "Hello! How can I help you today?",
            }
        }
    )

    reply: str = Field(
        ...,
        description="Assistant reply (empty if the provider returned no content)",
        json_schema_extra={"example": "Hello! How can I help you today?"},
    )


class ChatSummary(BaseModel):
    """Conversation entry in the recent-chats listing."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "550e8400-e29b-41d4-a716-446655440000",
                "title": "Hi",
                "updatedAt": "2025-01-15T10:30:00+00:00",
            }
        },
    )

    id: str = Field(
        ...,
        description="Conversation identifier",
        json_schema_extra={"example": "550e8400-e29b-41d4-a716-446655440000"},
    )
    title: str = Field(
        ...,
        description="First user message, truncated to 50 characters",
        json_schema_extra={"example": "Hi"},
    )
    updated_at: datetime = Field(
        ...,
        alias="updatedAt",
        description="Time of the last append",
    )


class DeleteChatResponse(SuccessResponse):
    """Response from conversation deletion."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": True,
                "message": "Chat deleted successfully",
            }
        }
    )
