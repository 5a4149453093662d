from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID

import asyncpg
import bcrypt
import pytest

from jose import jwt

from api.services.auth_service import AuthService, UserAlreadyExistsError

USER_ID = UUID("550e8400-e29b-41d4-a716-446655440000")


def _user(password: str = "secret-password") -> dict[str, Any]:
    return {
        "id": USER_ID,
        "name": "Jane Doe",
        "email": "jane@example.com",
        "password_hash": bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=4)).decode(),
        "mobile": None,
    }


@pytest.fixture
def auth_service(mock_db_pool: MagicMock, mock_settings_for_ci: MagicMock) -> AuthService:
    return AuthService(mock_db_pool, settings=mock_settings_for_ci)


@pytest.mark.asyncio
async def test_login_success(auth_service: AuthService, mock_conn: AsyncMock) -> None:
    mock_conn.fetchrow.return_value = _user()

    result = await auth_service.login("Jane@Example.com", "secret-password")

    assert result["expires_in"] == 7 * 24 * 3600
    assert result["user"] == {
        "id": str(USER_ID),
        "name": "Jane Doe",
        "email": "jane@example.com",
        "mobile": None,
    }
    # Email lookups are case-insensitive
    assert mock_conn.fetchrow.call_args.args[1] == "jane@example.com"

    payload = auth_service.decode_access_token(result["token"])
    assert payload["sub"] == str(USER_ID)
    assert payload["type"] == "access"


@pytest.mark.asyncio
async def test_login_wrong_password(auth_service: AuthService, mock_conn: AsyncMock) -> None:
    mock_conn.fetchrow.return_value = _user()

    with pytest.raises(ValueError, match="Invalid credentials"):
        await auth_service.login("jane@example.com", "wrong-password")


@pytest.mark.asyncio
async def test_login_unknown_user(auth_service: AuthService, mock_conn: AsyncMock) -> None:
    mock_conn.fetchrow.return_value = None

    with pytest.raises(ValueError, match="Invalid credentials"):
        await auth_service.login("nobody@example.com", "secret-password")


@pytest.mark.asyncio
async def test_register_success(auth_service: AuthService, mock_conn: AsyncMock) -> None:
    created = _user()
    mock_conn.fetchrow.side_effect = [None, created]

    user = await auth_service.register("Jane Doe", "JANE@example.com", "secret-password", "+1 555 0100")

    assert user["email"] == "jane@example.com"
    insert_args = mock_conn.fetchrow.call_args_list[1].args
    assert "INSERT INTO users" in insert_args[0]
    assert insert_args[1] == "Jane Doe"
    assert insert_args[2] == "jane@example.com"
    assert bcrypt.checkpw(b"secret-password", insert_args[3].encode())
    assert insert_args[4] == "+1 555 0100"


@pytest.mark.asyncio
async def test_register_duplicate(auth_service: AuthService, mock_conn: AsyncMock) -> None:
    mock_conn.fetchrow.return_value = _user()

    with pytest.raises(UserAlreadyExistsError, match="User already exists"):
        await auth_service.register("Jane Doe", "jane@example.com", "secret-password")


@pytest.mark.asyncio
async def test_register_concurrent_duplicate(auth_service: AuthService, mock_conn: AsyncMock) -> None:
    mock_conn.fetchrow.side_effect = [None, asyncpg.UniqueViolationError("duplicate key")]

    with pytest.raises(UserAlreadyExistsError, match="User already exists"):
        await auth_service.register("Jane Doe", "jane@example.com", "secret-password")


def test_decode_rejects_garbage(auth_service: AuthService) -> None:
    with pytest.raises(ValueError, match="Invalid token"):
        auth_service.decode_access_token("not-a-jwt")


def test_decode_rejects_expired_token(auth_service: AuthService) -> None:
    token = auth_service._encode_token(_user(), "access", datetime.now(UTC) - timedelta(minutes=1))

    with pytest.raises(ValueError, match="Invalid token"):
        auth_service.decode_access_token(token)


def test_decode_rejects_wrong_type(auth_service: AuthService) -> None:
    token = auth_service._encode_token(_user(), "refresh", datetime.now(UTC) + timedelta(minutes=5))

    with pytest.raises(ValueError, match="Invalid token type"):
        auth_service.decode_access_token(token)


def test_decode_rejects_foreign_signature(auth_service: AuthService) -> None:
    token = jwt.encode(
        {"sub": str(USER_ID), "type": "access", "exp": datetime.now(UTC) + timedelta(minutes=5)},
        "another-secret",
        algorithm="HS256",
    )

    with pytest.raises(ValueError, match="Invalid token"):
        auth_service.decode_access_token(token)


def test_token_lifetime_follows_settings(auth_service: AuthService, mock_settings_for_ci: MagicMock) -> None:
    mock_settings_for_ci.access_token_expires_days = 1
    assert auth_service.token_lifetime == timedelta(days=1)
