from __future__ import annotations

from typing import Annotated

import asyncpg

from fastapi import Depends, Request
from openai import AsyncOpenAI

from api.services.chat_pipeline import ChatPipeline
from api.services.completion_relay import CompletionRelay
from api.services.conversation_service import ConversationService
from core.constants import Settings, get_settings


def get_app_settings() -> Settings:
    """Provide application settings via dependency injection.

    Settings are validated at startup and cached for performance.

    In development with CONFIG_HOT_RELOAD=true, settings are reloaded
    on each request to pick up .env file changes without restart.

    Usage in routes:
        @router.get("/example")
        async def example(settings: AppSettings):
            return {"debug": settings.debug}
    """
    return get_settings()


async def get_db(request: Request) -> asyncpg.Pool:
    """Get database connection pool from application state."""
    return request.app.state.db_pool


def get_llm_client(request: Request) -> AsyncOpenAI:
    """Get the shared completion provider client from application state."""
    return request.app.state.llm_client


def get_conversation_service(db: Annotated[asyncpg.Pool, Depends(get_db)]) -> ConversationService:
    """Provide conversation store backed by PostgreSQL."""
    return ConversationService(db)


def get_completion_relay(
    client: Annotated[AsyncOpenAI, Depends(get_llm_client)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> CompletionRelay:
    """Provide completion relay bound to the configured model."""
    return CompletionRelay(client, model=settings.llm_model)


def get_chat_pipeline(
    relay: Annotated[CompletionRelay, Depends(get_completion_relay)],
    conversations: Annotated[ConversationService, Depends(get_conversation_service)],
) -> ChatPipeline:
    return ChatPipeline(relay, conversations)


# Type aliases for cleaner route signatures
DB = Annotated[asyncpg.Pool, Depends(get_db)]
LLMClient = Annotated[AsyncOpenAI, Depends(get_llm_client)]
Conversations = Annotated[ConversationService, Depends(get_conversation_service)]
Relay = Annotated[CompletionRelay, Depends(get_completion_relay)]
Pipeline = Annotated[ChatPipeline, Depends(get_chat_pipeline)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]
