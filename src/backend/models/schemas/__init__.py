"""
Centralized API schemas for Chat Relay.

This module provides:
- Request/response models organized by domain
- OpenAPI documentation with examples
- Reusable field definitions and validators
"""

from models.error_models import ErrorDetail, ErrorResponse
from models.schemas.auth import (
    LoginRequest,
    LoginResponse,
    SignupRequest,
    SignupResponse,
    UserInfo,
)
from models.schemas.base import SuccessResponse
from models.schemas.chat import (
    ChatMessage,
    ChatReply,
    ChatRequest,
    ChatSummary,
    DeleteChatResponse,
)
from models.schemas.health import (
    DatabaseHealth,
    HealthResponse,
    LivenessResponse,
    ProviderInfo,
    ReadinessResponse,
)

__all__ = [
    "ChatMessage",
    "ChatReply",
    "ChatRequest",
    "ChatSummary",
    "DatabaseHealth",
    "DeleteChatResponse",
    "ErrorDetail",
    "ErrorResponse",
    "HealthResponse",
    "LivenessResponse",
    "LoginRequest",
    "LoginResponse",
    "ProviderInfo",
    "ReadinessResponse",
    "SignupRequest",
    "SignupResponse",
    "SuccessResponse",
    "UserInfo",
]
