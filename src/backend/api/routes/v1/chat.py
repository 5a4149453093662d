"""
Completion endpoint (v1).

POST /chat relays the conversation to the completion provider and records
the exchange. With ``stream: true`` the reply arrives as Server-Sent Events:

    data: {"content": "Hel"}

    data: {"content": "lo"}

    data: [DONE]

A stream that stops without ``[DONE]`` failed part-way and was not saved.
"""

from __future__ import annotations

from fastapi import APIRouter
from starlette.responses import Response

from api.dependencies import Pipeline
from api.middleware.auth import CurrentUser
from api.middleware.request_context import update_request_context
from models.schemas.chat import ChatReply, ChatRequest

router = APIRouter()


@router.post(
    "/chat",
    response_model=ChatReply,
    summary="Chat completion",
    description=(
        "Send the conversation so far and receive the assistant reply, whole or streamed. "
        "Include chatId to continue an existing conversation; omit it to start a new one."
    ),
    responses={
        200: {
            "description": "Assistant reply (JSON) or event stream",
            "content": {
                "application/json": {"example": {"reply": "Hello! How can I help you today?"}},
                "text/event-stream": {"example": 'data: {"content": "Hello"}\n\ndata: [DONE]\n\n'},
            },
        },
        401: {"description": "Not authenticated"},
        422: {"description": "Malformed messages"},
        429: {"description": "Provider rate limit exceeded"},
        502: {"description": "Provider failure"},
    },
)
async def chat(body: ChatRequest, user: CurrentUser, pipeline: Pipeline) -> Response:
    """Relay a completion and persist the exchange."""
    if body.chat_id:
        update_request_context(chat_id=body.chat_id)

    return await pipeline.run(user.id, body)
