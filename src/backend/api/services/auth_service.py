from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

import asyncpg
import bcrypt

from jose import JWTError, jwt

from core.constants import Settings, get_settings


class UserAlreadyExistsError(ValueError):
    """Signup for an email that is already registered."""


class AuthService:
    """Authentication service for user accounts and JWT access tokens."""

    def __init__(self, pool: asyncpg.Pool, settings: Settings | None = None):
        self.pool = pool
        self.settings = settings or get_settings()

    @property
    def token_lifetime(self) -> timedelta:
        return timedelta(days=self.settings.access_token_expires_days)

    async def login(self, email: str, password: str) -> dict[str, Any]:
        """Validate credentials and return an access token."""
        user = await self.get_user_by_email(email)
        if not user or not bcrypt.checkpw(password.encode(), user["password_hash"].encode()):
            raise ValueError("Invalid credentials")

        return {
            "token": self._issue_access_token(user),
            "expires_in": int(self.token_lifetime.total_seconds()),
            "user": self.user_payload(user),
        }

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        mobile: str | None = None,
    ) -> dict[str, Any]:
        """Register a new user.

        Raises:
            UserAlreadyExistsError: If the email is already registered
        """
        email = email.lower()
        existing = await self.get_user_by_email(email)
        if existing:
            raise UserAlreadyExistsError("User already exists")

        password_hash = bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()

        try:
            async with self.pool.acquire() as conn:
                user = await conn.fetchrow(
                    """
                    INSERT INTO users (name, email, password_hash, mobile)
                    VALUES ($1, $2, $3, $4)
                    RETURNING *
                    """,
                    name,
                    email,
                    password_hash,
                    mobile,
                )
        except asyncpg.UniqueViolationError as exc:
            # Lost a race with a concurrent signup for the same email
            raise UserAlreadyExistsError("User already exists") from exc

        if not user:
            raise ValueError("Failed to create user")

        return self.user_payload(user)

    def decode_access_token(self, token: str) -> dict[str, Any]:
        """Decode and validate an access token."""
        return self._decode_token(token, "access")

    async def get_user_by_email(self, email: str) -> asyncpg.Record | None:
        async with self.pool.acquire() as conn:
            return await conn.fetchrow(
                "SELECT * FROM users WHERE email = $1",
                email.lower(),
            )

    async def get_user_by_id(self, user_id: UUID) -> asyncpg.Record | None:
        async with self.pool.acquire() as conn:
            return await conn.fetchrow(
                "SELECT * FROM users WHERE id = $1",
                user_id,
            )

    def _issue_access_token(self, user: asyncpg.Record) -> str:
        expires_at = datetime.now(timezone.utc) + self.token_lifetime
        return self._encode_token(user, "access", expires_at)

    def _encode_token(self, user: asyncpg.Record, token_type: str, expires_at: datetime) -> str:
        payload = {
            "sub": str(user["id"]),
            "email": user["email"],
            "type": token_type,
            "exp": expires_at,
        }
        token: str = jwt.encode(payload, self.settings.jwt_secret, algorithm=self.settings.jwt_algorithm)
        return token

    def _decode_token(self, token: str, token_type: str) -> dict[str, Any]:
        try:
            payload: dict[str, Any] = jwt.decode(
                token,
                self.settings.jwt_secret,
                algorithms=[self.settings.jwt_algorithm],
            )
        except JWTError as exc:
            raise ValueError("Invalid token") from exc

        if payload.get("type") != token_type:
            raise ValueError("Invalid token type")
        if "sub" not in payload:
            raise ValueError("Invalid token subject")
        return payload

    def user_payload(self, user: asyncpg.Record) -> dict[str, Any]:
        return {
            "id": str(user["id"]),
            "name": user["name"],
            "email": user["email"],
            "mobile": user.get("mobile"),
        }
