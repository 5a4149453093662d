"""
Chat session pipeline.

Runs one completion request end to end: budget the response length, relay
the provider output to the caller (whole or streamed), then record the
exchange in the caller's conversation history.

Persistence runs as a response background task, after the body has been
sent. Its failures are logged and never change what the caller received.
"""

from __future__ import annotations

import time

from collections.abc import Sequence
from typing import Any
from uuid import UUID

from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask
from starlette.responses import Response

from api.middleware.exception_handlers import AppException
from api.services.completion_relay import CompletionRelay, ReplyStream
from api.services.conversation_service import ConversationService
from core.constants import SSE_HEADERS, SSE_MEDIA_TYPE
from models.schemas.chat import ChatReply, ChatRequest
from utils.logger import logger
from utils.token_utils import calculate_max_tokens


def _last_user_content(messages: Sequence[dict[str, str]]) -> str:
    for message in reversed(messages):
        if message.get("role") == "user":
            return message.get("content", "")
    return ""


class ChatPipeline:
    """Orchestrates budget, relay and persistence for one authenticated caller."""

    def __init__(self, relay: CompletionRelay, conversations: ConversationService):
        self.relay = relay
        self.conversations = conversations

    async def run(self, user_id: UUID, request: ChatRequest) -> Response:
        """Relay a completion and schedule persistence of the exchange.

        Raises:
            ProviderError: If the provider fails before any output is sent
        """
        messages = request.as_provider_messages()
        max_tokens = calculate_max_tokens(messages)
        started = time.monotonic()

        logger.debug(
            "Relaying completion",
            messages=len(messages),
            max_tokens=max_tokens,
            stream=request.stream,
        )

        if request.stream:
            stream = await self.relay.open_stream(messages, max_tokens)
            return StreamingResponse(
                stream.events(),
                media_type=SSE_MEDIA_TYPE,
                headers=SSE_HEADERS,
                background=BackgroundTask(
                    self.finish_stream,
                    user_id,
                    request.chat_id,
                    messages,
                    stream,
                    max_tokens,
                    started,
                ),
            )

        reply = await self.relay.complete(messages, max_tokens)
        self._log_turn(messages, reply, max_tokens, started, streamed=False, chat_id=request.chat_id)
        return JSONResponse(
            ChatReply(reply=reply).model_dump(),
            background=BackgroundTask(self.persist, user_id, request.chat_id, messages, reply),
        )

    async def finish_stream(
        self,
        user_id: UUID,
        chat_id: str | None,
        messages: Sequence[dict[str, str]],
        stream: ReplyStream,
        max_tokens: int,
        started: float,
    ) -> None:
        """Persist a streamed reply, but only if the terminal sentinel was sent."""
        if not stream.completed:
            logger.warning(
                "Stream ended before completion; exchange not persisted",
                chat_id=chat_id,
                chars_forwarded=len(stream.reply),
            )
            return

        self._log_turn(messages, stream.reply, max_tokens, started, streamed=True, chat_id=chat_id)
        await self.persist(user_id, chat_id, messages, stream.reply)

    async def persist(
        self,
        user_id: UUID,
        chat_id: str | None,
        messages: Sequence[dict[str, str]],
        reply: str,
    ) -> dict[str, Any] | None:
        """Append to ``chat_id`` when given, otherwise start a new conversation.

        Never raises: the caller's response is already complete.
        """
        try:
            if chat_id:
                return await self.conversations.append_exchange(user_id, chat_id, messages, reply)
            return await self.conversations.create_conversation(user_id, messages, reply)
        except AppException as exc:
            logger.error(
                f"Failed to persist chat exchange: {exc.code.value} - {exc.message}",
                exc_info=True,
                error_code=exc.code.value,
                chat_id=chat_id,
            )
        except Exception as exc:
            logger.error(
                f"Unexpected error persisting chat exchange: {type(exc).__name__}: {exc}",
                exc_info=True,
                chat_id=chat_id,
            )
        return None

    def _log_turn(
        self,
        messages: Sequence[dict[str, str]],
        reply: str,
        max_tokens: int,
        started: float,
        *,
        streamed: bool,
        chat_id: str | None,
    ) -> None:
        logger.log_conversation_turn(
            user_input=_last_user_content(messages),
            response=reply,
            duration_ms=(time.monotonic() - started) * 1000,
            max_tokens=max_tokens,
            streamed=streamed,
            chat_id=chat_id,
        )
