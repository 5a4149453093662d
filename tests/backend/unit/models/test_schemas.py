"""Tests for request/response schemas and error models."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from pydantic import ValidationError

from models.error_models import ERROR_CODE_TO_STATUS, ErrorCode, ErrorResponse, get_status_code
from models.schemas.auth import LoginRequest, SignupRequest
from models.schemas.chat import ChatRequest, ChatSummary


class TestChatRequest:
    def test_accepts_camel_case_chat_id(self) -> None:
        request = ChatRequest.model_validate({"messages": [], "chatId": "abc"})
        assert request.chat_id == "abc"
        assert request.stream is False

    def test_accepts_field_name(self) -> None:
        assert ChatRequest(messages=[], chat_id="abc").chat_id == "abc"

    def test_provider_messages(self) -> None:
        request = ChatRequest.model_validate(
            {"messages": [{"role": "system", "content": "Be brief"}, {"role": "user", "content": "Hi"}]}
        )
        assert request.as_provider_messages() == [
            {"role": "system", "content": "Be brief"},
            {"role": "user", "content": "Hi"},
        ]

    def test_rejects_unknown_role(self) -> None:
        with pytest.raises(ValidationError):
            ChatRequest.model_validate({"messages": [{"role": "tool", "content": "x"}]})

    def test_requires_messages(self) -> None:
        with pytest.raises(ValidationError):
            ChatRequest.model_validate({"stream": True})


class TestChatSummary:
    def test_serializes_updated_at_alias(self) -> None:
        summary = ChatSummary.model_validate(
            {"id": "abc", "title": "Hi", "updatedAt": datetime(2025, 1, 15, tzinfo=UTC)}
        )
        dumped = summary.model_dump(by_alias=True)
        assert set(dumped) == {"id", "title", "updatedAt"}


class TestAuthSchemas:
    def test_signup_normalizes_email(self) -> None:
        request = SignupRequest(name=" Jane ", email=" Jane@Example.COM ", password="secret-password")
        assert request.email == "jane@example.com"
        assert request.name == "Jane"
        assert request.mobile is None

    def test_login_normalizes_email(self) -> None:
        assert LoginRequest(email="Jane@Example.com", password="x").email == "jane@example.com"

    def test_signup_password_limited_to_bcrypt_bytes(self) -> None:
        with pytest.raises(ValidationError, match="at most 72 bytes"):
            SignupRequest(name="Jane", email="jane@example.com", password="p" * 73)

    def test_signup_mobile_fits_users_column(self) -> None:
        assert SignupRequest(name="Jane", email="jane@example.com", password="p" * 72, mobile="1" * 30).mobile
        with pytest.raises(ValidationError):
            SignupRequest(name="Jane", email="jane@example.com", password="secret-password", mobile="1" * 31)


class TestErrorModels:
    def test_error_response_envelope(self) -> None:
        response = ErrorResponse(code=ErrorCode.CHAT_NOT_FOUND, message="Chat not found", request_id="req_1")
        body = response.to_dict()

        assert body["error"]["code"] == "CHAT_4001"
        assert body["error"]["request_id"] == "req_1"
        assert "debug" not in body["error"]

    def test_debug_only_when_requested(self) -> None:
        response = ErrorResponse(code=ErrorCode.INTERNAL_ERROR, message="x", debug={"trace": "..."})

        assert "debug" not in response.to_dict()["error"]
        assert response.to_dict(include_debug=True)["error"]["debug"] == {"trace": "..."}

    def test_unknown_codes_default_to_500(self) -> None:
        assert get_status_code(ErrorCode.INTERNAL_UNEXPECTED) == 500

    def test_every_code_has_a_status(self) -> None:
        assert set(ERROR_CODE_TO_STATUS) == set(ErrorCode)
