"""
Conversation persistence backed by PostgreSQL.

A conversation is a ``chats`` row owned by one user plus an ordered,
append-only list of ``chat_messages`` rows keyed by ``seq``. Every query is
scoped to the owner: a conversation that exists but belongs to someone else
is reported exactly like one that does not exist.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any
from uuid import UUID

import asyncpg

from api.middleware.exception_handlers import ChatNotFoundError, PersistenceFault
from core.constants import (
    CHAT_TITLE_ELLIPSIS,
    CHAT_TITLE_MAX_LENGTH,
    DEFAULT_CHAT_TITLE,
    RECENT_CHATS_LIMIT,
)
from utils.db_utils import PoolError, acquire_connection, transaction
from utils.logger import logger

#: Errors raised by the driver or pool that mean a write did not land
_WRITE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, PoolError, OSError)

_INSERT_TURN_SQL = """
    INSERT INTO chat_messages (chat_id, seq, role, content)
    VALUES ($1, $2, $3, $4)
"""


def derive_title(messages: Sequence[Mapping[str, Any]]) -> str:
    """Title from the first user message, truncated to CHAT_TITLE_MAX_LENGTH characters."""
    first_user = next((m.get("content") for m in messages if m.get("role") == "user"), None)
    text = first_user or DEFAULT_CHAT_TITLE
    if len(text) > CHAT_TITLE_MAX_LENGTH:
        return text[:CHAT_TITLE_MAX_LENGTH] + CHAT_TITLE_ELLIPSIS
    return text


def _parse_chat_id(chat_id: str) -> UUID | None:
    try:
        return UUID(str(chat_id))
    except ValueError:
        return None


def _assistant_turn(reply: str) -> dict[str, str]:
    return {"role": "assistant", "content": reply}


class ConversationService:
    """Owner-scoped conversation store."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def create_conversation(
        self,
        user_id: UUID,
        messages: Sequence[Mapping[str, Any]],
        reply: str,
    ) -> dict[str, Any]:
        """Start a conversation holding all ``messages`` followed by the assistant reply.

        Raises:
            PersistenceFault: If the write fails
        """
        title = derive_title(messages)
        turns = [*messages, _assistant_turn(reply)]

        try:
            async with transaction(self.pool) as conn:
                row = await conn.fetchrow(
                    """
                    INSERT INTO chats (user_id, title)
                    VALUES ($1, $2)
                    RETURNING id, title, created_at, updated_at
                    """,
                    user_id,
                    title,
                )
                await conn.executemany(
                    _INSERT_TURN_SQL,
                    [(row["id"], seq, turn["role"], turn["content"]) for seq, turn in enumerate(turns)],
                )
        except _WRITE_ERRORS as exc:
            raise PersistenceFault("Failed to create conversation", cause=exc) from exc

        logger.debug("Conversation created", chat_id=str(row["id"]), turns=len(turns))
        return self._row_to_summary(row)

    async def append_exchange(
        self,
        user_id: UUID,
        chat_id: str,
        messages: Sequence[Mapping[str, Any]],
        reply: str,
    ) -> dict[str, Any]:
        """Append the last incoming message and the assistant reply to an owned conversation.

        Earlier entries of ``messages`` are assumed to be stored already and are
        not written again. The conversation row is locked for the duration so
        concurrent appends cannot interleave.

        Raises:
            ChatNotFoundError: If the conversation is absent or owned by another user
            PersistenceFault: If the write fails
        """
        chat_uuid = _parse_chat_id(chat_id)
        if chat_uuid is None:
            raise ChatNotFoundError(chat_id)

        turns = [*messages[-1:], _assistant_turn(reply)]

        try:
            async with transaction(self.pool) as conn:
                owned = await conn.fetchval(
                    """
                    SELECT id FROM chats
                    WHERE id = $1 AND user_id = $2
                    FOR UPDATE
                    """,
                    chat_uuid,
                    user_id,
                )
                if owned is None:
                    raise ChatNotFoundError(chat_id)

                next_seq = await conn.fetchval(
                    "SELECT COALESCE(MAX(seq) + 1, 0) FROM chat_messages WHERE chat_id = $1",
                    chat_uuid,
                )
                await conn.executemany(
                    _INSERT_TURN_SQL,
                    [
                        (chat_uuid, next_seq + offset, turn["role"], turn["content"])
                        for offset, turn in enumerate(turns)
                    ],
                )
                # clock_timestamp() can repeat within a microsecond; bump past the stored value
                row = await conn.fetchrow(
                    """
                    UPDATE chats
                    SET updated_at = GREATEST(clock_timestamp(), updated_at + INTERVAL '1 microsecond')
                    WHERE id = $1
                    RETURNING id, title, created_at, updated_at
                    """,
                    chat_uuid,
                )
        except _WRITE_ERRORS as exc:
            raise PersistenceFault("Failed to append to conversation", cause=exc) from exc

        logger.debug("Conversation appended", chat_id=chat_id, turns=len(turns))
        return self._row_to_summary(row)

    async def list_recent(self, user_id: UUID, limit: int = RECENT_CHATS_LIMIT) -> list[dict[str, Any]]:
        """Most recently updated conversations, newest first."""
        async with acquire_connection(self.pool) as conn:
            rows = await conn.fetch(
                """
                SELECT id, title, updated_at FROM chats
                WHERE user_id = $1
                ORDER BY updated_at DESC
                LIMIT $2
                """,
                user_id,
                limit,
            )
        return [self._row_to_summary(r) for r in rows]

    async def get_turns(self, user_id: UUID, chat_id: str) -> list[dict[str, str]] | None:
        """Ordered turns of an owned conversation, or None if not visible to the user."""
        chat_uuid = _parse_chat_id(chat_id)
        if chat_uuid is None:
            return None

        async with acquire_connection(self.pool) as conn:
            owned = await conn.fetchval(
                "SELECT id FROM chats WHERE id = $1 AND user_id = $2",
                chat_uuid,
                user_id,
            )
            if owned is None:
                return None

            rows = await conn.fetch(
                """
                SELECT role, content FROM chat_messages
                WHERE chat_id = $1
                ORDER BY seq ASC
                """,
                chat_uuid,
            )
        return [{"role": r["role"], "content": r["content"]} for r in rows]

    async def delete_conversation(self, user_id: UUID, chat_id: str) -> bool:
        """Delete an owned conversation and its turns."""
        chat_uuid = _parse_chat_id(chat_id)
        if chat_uuid is None:
            return False

        async with acquire_connection(self.pool) as conn:
            result = await conn.execute(
                "DELETE FROM chats WHERE id = $1 AND user_id = $2",
                chat_uuid,
                user_id,
            )
        return bool(result == "DELETE 1")

    def _row_to_summary(self, row: asyncpg.Record | Mapping[str, Any]) -> dict[str, Any]:
        return {
            "id": str(row["id"]),
            "title": row["title"],
            "updatedAt": row["updated_at"],
        }
