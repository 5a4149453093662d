"""
Authentication-related API schemas.

Provides request/response models for signup, login and profile
with comprehensive OpenAPI documentation.
"""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.schemas.base import SuccessResponse

#: bcrypt only hashes the first 72 bytes and newer releases reject longer input
BCRYPT_MAX_PASSWORD_BYTES = 72


class SignupRequest(BaseModel):
    """User registration request."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Jane Doe",
                "email": "jane@example.com",
                "password": "secure_password_123",
                "mobile": "+1 555 0100",
            }
        }
    )

    name: str = Field(
        ...,
        min_length=2,
        max_length=100,
        description="Display name (minimum 2 characters)",
        json_schema_extra={"example": "Jane Doe"},
    )
    email: str = Field(
        ...,
        description="User email address (stored lower-cased)",
        pattern=r"^[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+$",
        json_schema_extra={"example": "jane@example.com"},
    )
    password: str = Field(
        ...,
        min_length=8,
        description="User password (minimum 8 characters, at most 72 bytes)",
        json_schema_extra={"example": "secure_password_123"},
    )
    mobile: str | None = Field(
        default=None,
        max_length=30,
        description="Optional mobile number",
        json_schema_extra={"example": "+1 555 0100"},
    )

    @field_validator("name", "email", mode="before")
    @classmethod
    def strip_whitespace(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        if len(v.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes")
        return v


class LoginRequest(BaseModel):
    """Login credentials."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "email": "jane@example.com",
                "password": "secure_password_123",
            }
        }
    )

    email: str = Field(
        ...,
        description="User email address",
        json_schema_extra={"example": "jane@example.com"},
    )
    password: str = Field(
        ...,
        min_length=1,
        max_length=128,
        description="User password",
        json_schema_extra={"example": "secure_password_123"},
    )

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.strip().lower()


class UserInfo(BaseModel):
    """Public user information."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "550e8400-e29b-41d4-a716-446655440000",
                "name": "Jane Doe",
                "email": "jane@example.com",
                "mobile": "+1 555 0100",
            }
        }
    )

    id: UUID = Field(
        ...,
        description="User UUID",
        json_schema_extra={"example": "550e8400-e29b-41d4-a716-446655440000"},
    )
    name: str = Field(
        ...,
        description="Display name",
        json_schema_extra={"example": "Jane Doe"},
    )
    email: str = Field(
        ...,
        description="User email address",
        json_schema_extra={"example": "jane@example.com"},
    )
    mobile: str | None = Field(
        default=None,
        description="Mobile number, if provided at signup",
        json_schema_extra={"example": "+1 555 0100"},
    )


class SignupResponse(SuccessResponse):
    """Response from a successful signup."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": True,
                "message": "User registered successfully",
            }
        }
    )


class LoginResponse(BaseModel):
    """Authentication token response."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": True,
                "token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
                "token_type": "bearer",
                "expires_in": 604800,
                "user": {
                    "id": "550e8400-e29b-41d4-a716-446655440000",
                    "name": "Jane Doe",
                    "email": "jane@example.com",
                    "mobile": None,
                },
            }
        }
    )

    success: bool = Field(default=True, description="Whether the login succeeded")
    token: str = Field(
        ...,
        description="JWT access token",
        json_schema_extra={"example": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9..."},
    )
    token_type: str = Field(
        default="bearer",
        description="Token type (always 'bearer')",
        json_schema_extra={"example": "bearer"},
    )
    expires_in: int = Field(
        ...,
        ge=0,
        description="Access token expiry in seconds",
        json_schema_extra={"example": 604800},
    )
    user: UserInfo = Field(..., description="Authenticated user")
