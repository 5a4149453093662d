"""
Standardized error response models for Chat Relay API.

Provides consistent error formatting across REST endpoints with support
for request tracking, error categorization, and debugging context.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """Application-specific error codes for categorization."""

    # Authentication errors (1xxx)
    AUTH_REQUIRED = "AUTH_1001"
    AUTH_INVALID_TOKEN = "AUTH_1002"
    AUTH_USER_NOT_FOUND = "AUTH_1005"
    AUTH_INVALID_CREDENTIALS = "AUTH_1006"

    # Validation errors (2xxx)
    VALIDATION_ERROR = "VAL_2001"

    # Resource errors (3xxx)
    RESOURCE_NOT_FOUND = "RES_3001"
    RESOURCE_ALREADY_EXISTS = "RES_3002"

    # Conversation errors (4xxx)
    CHAT_NOT_FOUND = "CHAT_4001"

    # External service errors (7xxx)
    EXTERNAL_SERVICE_ERROR = "EXT_7001"
    EXTERNAL_TIMEOUT = "EXT_7002"
    EXTERNAL_RATE_LIMITED = "EXT_7003"
    PROVIDER_ERROR = "EXT_7010"
    PROVIDER_AUTH_FAILED = "EXT_7011"

    # Database errors (8xxx)
    DATABASE_ERROR = "DB_8001"
    PERSISTENCE_FAULT = "DB_8005"

    # Internal errors (9xxx)
    INTERNAL_ERROR = "INT_9001"
    INTERNAL_UNEXPECTED = "INT_9999"


class ErrorDetail(BaseModel):
    """Detailed information about a specific validation or sub-error."""

    field: str | None = None
    message: str
    code: str | None = None
    value: Any | None = Field(default=None, exclude=True)  # Excluded from response for security


class ErrorResponse(BaseModel):
    """Standardized error response model for REST endpoints.

    All API errors return this consistent format for easy client handling.

    Example response:
    {
        "error": {
            "code": "CHAT_4001",
            "message": "Chat not found",
            "request_id": "req_abc123",
            "timestamp": "2025-01-15T10:30:00Z",
            "details": null,
            "path": "/api/v1/chats/invalid-id"
        }
    }
    """

    code: ErrorCode
    message: str
    request_id: str | None = None
    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    details: list[ErrorDetail] | None = None
    path: str | None = None
    # Debug info - only included in development mode
    debug: dict[str, Any] | None = Field(default=None, exclude=True)

    def to_dict(self, include_debug: bool = False) -> dict[str, Any]:
        """Convert to dictionary for JSON response.

        Args:
            include_debug: Include debug information (only in development)
        """
        data = self.model_dump(exclude_none=True)
        if include_debug and self.debug:
            data["debug"] = self.debug
        return {"error": data}


# HTTP status code mappings for error codes
ERROR_CODE_TO_STATUS: dict[ErrorCode, int] = {
    # 401 Unauthorized
    ErrorCode.AUTH_REQUIRED: 401,
    ErrorCode.AUTH_INVALID_TOKEN: 401,
    ErrorCode.AUTH_USER_NOT_FOUND: 401,
    ErrorCode.AUTH_INVALID_CREDENTIALS: 401,
    # 404 Not Found
    ErrorCode.RESOURCE_NOT_FOUND: 404,
    ErrorCode.CHAT_NOT_FOUND: 404,
    # 409 Conflict
    ErrorCode.RESOURCE_ALREADY_EXISTS: 409,
    # 422 Unprocessable Entity
    ErrorCode.VALIDATION_ERROR: 422,
    # 500 Internal Server Error
    ErrorCode.INTERNAL_ERROR: 500,
    ErrorCode.INTERNAL_UNEXPECTED: 500,
    ErrorCode.DATABASE_ERROR: 500,
    ErrorCode.PERSISTENCE_FAULT: 500,
    # 502 Bad Gateway
    ErrorCode.EXTERNAL_SERVICE_ERROR: 502,
    ErrorCode.PROVIDER_ERROR: 502,
    ErrorCode.PROVIDER_AUTH_FAILED: 502,
    # 503 Service Unavailable
    ErrorCode.EXTERNAL_TIMEOUT: 503,
    # 429 Too Many Requests
    ErrorCode.EXTERNAL_RATE_LIMITED: 429,
}

def get_status_code(error_code: ErrorCode) -> int:
    """Get HTTP status code for an error code."""
    return ERROR_CODE_TO_STATUS.get(error_code, 500)

__all__ = [
    "ERROR_CODE_TO_STATUS",
    "ErrorCode",
    "ErrorDetail",
    "ErrorResponse",
    "get_status_code",
]
