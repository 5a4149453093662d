"""
Conversation history endpoints (v1).

Lists, reads and deletes the caller's conversations. Conversations owned
by other users are reported as not found.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Path

from api.dependencies import Conversations
from api.middleware.auth import CurrentUser
from api.middleware.exception_handlers import ChatNotFoundError
from api.middleware.request_context import update_request_context
from models.schemas.chat import ChatMessage, ChatSummary, DeleteChatResponse

router = APIRouter()

# =============================================================================
# Path Parameter Types
# =============================================================================

ChatIdPath = Annotated[
    str,
    Path(
        ...,
        description="Conversation identifier",
        examples=["550e8400-e29b-41d4-a716-446655440000"],
        min_length=1,
        max_length=100,
    ),
]

# =============================================================================
# Endpoints
# =============================================================================


@router.get(
    "",
    response_model=list[ChatSummary],
    summary="List recent chats",
    description="Five most recently updated conversations of the current user, newest first.",
    responses={
        200: {
            "description": "Recent conversations",
            "content": {
                "application/json": {
                    "example": [
                        {
                            "id": "550e8400-e29b-41d4-a716-446655440000",
                            "title": "Hi",
                            "updatedAt": "2025-01-15T10:30:00+00:00",
                        }
                    ]
                }
            },
        },
        401: {"description": "Not authenticated"},
    },
)
async def list_chats(user: CurrentUser, conversations: Conversations) -> list[ChatSummary]:
    """List recent conversations."""
    rows = await conversations.list_recent(user.id)
    return [ChatSummary.model_validate(row) for row in rows]


@router.get(
    "/{chat_id}",
    response_model=list[ChatMessage],
    summary="Get chat turns",
    description="All turns of a conversation in order.",
    responses={
        200: {
            "description": "Conversation turns",
            "content": {
                "application/json": {
                    "example": [
                        {"role": "user", "content": "Hi"},
                        {"role": "assistant", "content": "Hello! How can I help you today?"},
                    ]
                }
            },
        },
        401: {"description": "Not authenticated"},
        404: {"description": "Chat not found"},
    },
)
async def get_chat(chat_id: ChatIdPath, user: CurrentUser, conversations: Conversations) -> list[ChatMessage]:
    """Get the ordered turns of a conversation."""
    update_request_context(chat_id=chat_id)

    turns = await conversations.get_turns(user.id, chat_id)
    if turns is None:
        raise ChatNotFoundError(chat_id)

    return [ChatMessage.model_validate(turn) for turn in turns]


@router.delete(
    "/{chat_id}",
    response_model=DeleteChatResponse,
    summary="Delete chat",
    description="Permanently delete a conversation and all its turns.",
    responses={
        200: {
            "description": "Chat deleted successfully",
            "content": {
                "application/json": {
                    "example": {
                        "success": True,
                        "message": "Chat deleted successfully",
                    }
                }
            },
        },
        401: {"description": "Not authenticated"},
        404: {"description": "Chat not found"},
    },
)
async def delete_chat(chat_id: ChatIdPath, user: CurrentUser, conversations: Conversations) -> DeleteChatResponse:
    """Delete a conversation permanently."""
    update_request_context(chat_id=chat_id)

    deleted = await conversations.delete_conversation(user.id, chat_id)
    if not deleted:
        raise ChatNotFoundError(chat_id)

    return DeleteChatResponse(success=True, message="Chat deleted successfully")
