"""Tests for the owner-scoped conversation store."""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import asyncpg
import pytest

from api.middleware.exception_handlers import ChatNotFoundError, PersistenceFault
from api.services.conversation_service import ConversationService, derive_title

USER_ID = UUID("11111111-1111-1111-1111-111111111111")
CHAT_ID = UUID("22222222-2222-2222-2222-222222222222")
NOW = datetime(2025, 1, 15, 10, 30, tzinfo=UTC)


def _chat_row(title: str = "Hi") -> dict[str, object]:
    return {"id": CHAT_ID, "title": title, "created_at": NOW, "updated_at": NOW}


@pytest.fixture
def service(mock_db_pool: MagicMock) -> ConversationService:
    return ConversationService(mock_db_pool)


class TestDeriveTitle:
    def test_first_user_message(self) -> None:
        messages = [
            {"role": "system", "content": "Be brief"},
            {"role": "user", "content": "Hi"},
            {"role": "user", "content": "Second"},
        ]
        assert derive_title(messages) == "Hi"

    def test_exactly_fifty_characters_is_not_truncated(self) -> None:
        text = "a" * 50
        assert derive_title([{"role": "user", "content": text}]) == text

    def test_longer_than_fifty_characters_is_truncated(self) -> None:
        title = derive_title([{"role": "user", "content": "b" * 51}])
        assert title == "b" * 50 + "..."

    def test_no_user_message(self) -> None:
        assert derive_title([{"role": "system", "content": "Be brief"}]) == "New Chat"
        assert derive_title([]) == "New Chat"

    def test_empty_user_message(self) -> None:
        assert derive_title([{"role": "user", "content": ""}]) == "New Chat"


class TestCreateConversation:
    @pytest.mark.asyncio
    async def test_stores_all_messages_and_reply(self, service: ConversationService, mock_conn: AsyncMock) -> None:
        mock_conn.fetchrow.return_value = _chat_row()
        messages = [
            {"role": "system", "content": "Be brief"},
            {"role": "user", "content": "Hi"},
        ]

        summary = await service.create_conversation(USER_ID, messages, "Hello!")

        assert summary == {"id": str(CHAT_ID), "title": "Hi", "updatedAt": NOW}
        insert_args = mock_conn.fetchrow.call_args.args
        assert "INSERT INTO chats" in insert_args[0]
        assert insert_args[1:] == (USER_ID, "Hi")

        rows = mock_conn.executemany.call_args.args[1]
        assert rows == [
            (CHAT_ID, 0, "system", "Be brief"),
            (CHAT_ID, 1, "user", "Hi"),
            (CHAT_ID, 2, "assistant", "Hello!"),
        ]
        mock_conn.transaction.assert_called_once()

    @pytest.mark.asyncio
    async def test_empty_reply_is_still_stored(self, service: ConversationService, mock_conn: AsyncMock) -> None:
        mock_conn.fetchrow.return_value = _chat_row()

        await service.create_conversation(USER_ID, [{"role": "user", "content": "Hi"}], "")

        rows = mock_conn.executemany.call_args.args[1]
        assert rows[-1] == (CHAT_ID, 1, "assistant", "")

    @pytest.mark.asyncio
    async def test_write_failure_raises_persistence_fault(
        self, service: ConversationService, mock_conn: AsyncMock
    ) -> None:
        mock_conn.fetchrow.side_effect = asyncpg.PostgresError("boom")

        with pytest.raises(PersistenceFault):
            await service.create_conversation(USER_ID, [{"role": "user", "content": "Hi"}], "Hello!")

    @pytest.mark.asyncio
    async def test_pool_failure_raises_persistence_fault(
        self, service: ConversationService, mock_db_pool: MagicMock
    ) -> None:
        mock_db_pool.acquire.side_effect = OSError("Connection refused")

        with pytest.raises(PersistenceFault):
            await service.create_conversation(USER_ID, [{"role": "user", "content": "Hi"}], "Hello!")


class TestAppendExchange:
    @pytest.mark.asyncio
    async def test_appends_last_message_and_reply(self, service: ConversationService, mock_conn: AsyncMock) -> None:
        mock_conn.fetchval.side_effect = [CHAT_ID, 4]
        mock_conn.fetchrow.return_value = _chat_row()
        messages = [
            {"role": "user", "content": "Hi"},
            {"role": "assistant", "content": "Hello!"},
            {"role": "user", "content": "How are you?"},
        ]

        summary = await service.append_exchange(USER_ID, str(CHAT_ID), messages, "Fine.")

        assert summary["id"] == str(CHAT_ID)
        ownership_args = mock_conn.fetchval.call_args_list[0].args
        assert "FOR UPDATE" in ownership_args[0]
        assert ownership_args[1:] == (CHAT_ID, USER_ID)

        rows = mock_conn.executemany.call_args.args[1]
        assert rows == [
            (CHAT_ID, 4, "user", "How are you?"),
            (CHAT_ID, 5, "assistant", "Fine."),
        ]
        assert "UPDATE chats" in mock_conn.fetchrow.call_args.args[0]

    @pytest.mark.asyncio
    async def test_foreign_chat_is_not_found(self, service: ConversationService, mock_conn: AsyncMock) -> None:
        mock_conn.fetchval.return_value = None

        with pytest.raises(ChatNotFoundError):
            await service.append_exchange(USER_ID, str(CHAT_ID), [{"role": "user", "content": "Hi"}], "Hello!")

        mock_conn.executemany.assert_not_called()

    @pytest.mark.asyncio
    async def test_malformed_chat_id_is_not_found(self, service: ConversationService, mock_conn: AsyncMock) -> None:
        with pytest.raises(ChatNotFoundError):
            await service.append_exchange(USER_ID, "not-a-uuid", [{"role": "user", "content": "Hi"}], "Hello!")

        mock_conn.fetchval.assert_not_called()

    @pytest.mark.asyncio
    async def test_write_failure_raises_persistence_fault(
        self, service: ConversationService, mock_conn: AsyncMock
    ) -> None:
        mock_conn.fetchval.side_effect = [CHAT_ID, 0]
        mock_conn.executemany.side_effect = asyncpg.InterfaceError("connection closed")

        with pytest.raises(PersistenceFault):
            await service.append_exchange(USER_ID, str(CHAT_ID), [{"role": "user", "content": "Hi"}], "Hello!")


class TestReads:
    @pytest.mark.asyncio
    async def test_list_recent(self, service: ConversationService, mock_conn: AsyncMock) -> None:
        other_id = uuid4()
        mock_conn.fetch.return_value = [
            {"id": CHAT_ID, "title": "Newest", "updated_at": NOW},
            {"id": other_id, "title": "Older", "updated_at": NOW},
        ]

        chats = await service.list_recent(USER_ID)

        assert [c["id"] for c in chats] == [str(CHAT_ID), str(other_id)]
        assert chats[0]["title"] == "Newest"
        query, user_arg, limit_arg = mock_conn.fetch.call_args.args
        assert "ORDER BY updated_at DESC" in query
        assert user_arg == USER_ID
        assert limit_arg == 5

    @pytest.mark.asyncio
    async def test_list_recent_empty(self, service: ConversationService, mock_conn: AsyncMock) -> None:
        mock_conn.fetch.return_value = []
        assert await service.list_recent(USER_ID) == []

    @pytest.mark.asyncio
    async def test_get_turns_in_order(self, service: ConversationService, mock_conn: AsyncMock) -> None:
        mock_conn.fetchval.return_value = CHAT_ID
        mock_conn.fetch.return_value = [
            {"role": "user", "content": "Hi"},
            {"role": "assistant", "content": "Hello!"},
        ]

        turns = await service.get_turns(USER_ID, str(CHAT_ID))

        assert turns == [
            {"role": "user", "content": "Hi"},
            {"role": "assistant", "content": "Hello!"},
        ]
        assert "ORDER BY seq" in mock_conn.fetch.call_args.args[0]

    @pytest.mark.asyncio
    async def test_get_turns_foreign_chat(self, service: ConversationService, mock_conn: AsyncMock) -> None:
        mock_conn.fetchval.return_value = None

        assert await service.get_turns(USER_ID, str(CHAT_ID)) is None
        mock_conn.fetch.assert_not_called()

    @pytest.mark.asyncio
    async def test_get_turns_malformed_id(self, service: ConversationService, mock_db_pool: MagicMock) -> None:
        assert await service.get_turns(USER_ID, "garbage") is None
        mock_db_pool.acquire.assert_not_called()


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_owned(self, service: ConversationService, mock_conn: AsyncMock) -> None:
        mock_conn.execute.return_value = "DELETE 1"

        assert await service.delete_conversation(USER_ID, str(CHAT_ID)) is True
        assert mock_conn.execute.call_args.args[1:] == (CHAT_ID, USER_ID)

    @pytest.mark.asyncio
    async def test_delete_missing_or_foreign(self, service: ConversationService, mock_conn: AsyncMock) -> None:
        mock_conn.execute.return_value = "DELETE 0"

        assert await service.delete_conversation(USER_ID, str(CHAT_ID)) is False

    @pytest.mark.asyncio
    async def test_delete_malformed_id(self, service: ConversationService, mock_db_pool: MagicMock) -> None:
        assert await service.delete_conversation(USER_ID, "garbage") is False
        mock_db_pool.acquire.assert_not_called()
