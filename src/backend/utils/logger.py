"""
Professional logging setup for Chat Relay using Python's standard logging
with JSON formatting for structured logs.

Log destinations:
- Console (stderr): Human-readable format for debugging
- logs/conversations.jsonl: JSON format for conversation history
- logs/errors.jsonl: JSON format for error tracking
"""

from __future__ import annotations

import logging
import logging.handlers
import os
import re
import sys
import uuid

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, cast

from pythonjsonlogger import json as jsonlogger

from api.middleware.request_context import get_request_context
from core.constants import (
    LOG_BACKUP_COUNT_CONVERSATIONS,
    LOG_BACKUP_COUNT_ERRORS,
    LOG_MAX_SIZE,
    LOG_PREVIEW_LENGTH,
    PROJECT_ROOT,
    get_settings,
)

#: Length of the per-process instance id attached to every record
INSTANCE_ID_LENGTH = 8

# PII Redaction patterns
REDACTION_PATTERNS = [
    (r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b", "[EMAIL]"),
    (r"\b(?:\d{4}[- ]?){3}\d{4}\b", "[CARD]"),
    (r"\b(sk-|pk-|ak_|api[-_]?key[-_]?)[A-Za-z0-9]{20,}\b", "[API_KEY]"),
    (r"\b(password|secret|token)\s*[:=]\s*\S+", "[REDACTED]"),
]


@dataclass
class ConversationTurn:
    """Structured representation of a conversation turn for logging."""

    user_input: str
    response: str
    duration_ms: float | None = None
    max_tokens: int | None = None
    streamed: bool = False
    chat_id: str | None = None
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())


class ConversationFilter(logging.Filter):
    """Filter to allow all INFO level logs for conversations"""

    def filter(self, record: logging.LogRecord) -> bool:
        # Allow all INFO and above logs (not DEBUG)
        return record.levelno >= logging.INFO


class ErrorFilter(logging.Filter):
    """Filter to only allow ERROR and CRITICAL logs"""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


class ColoredConsoleFormatter(logging.Formatter):
    """
    Custom formatter that adds colors to log levels and standardizes format.
    Format: HH:MM:SS [LEVEL] logger_name - message
    """

    # ANSI color codes
    GREY = "\x1b[38;20m"
    GREEN = "\x1b[32;20m"
    YELLOW = "\x1b[33;20m"
    RED = "\x1b[31;20m"
    BOLD_RED = "\x1b[31;1m"
    RESET = "\x1b[0m"

    # We only color the level part: [LEVEL]
    def format(self, record: logging.LogRecord) -> str:
        level_fmt = f"[{record.levelname}]"

        if record.levelno == logging.DEBUG:
            level_fmt = f"{self.GREY}{level_fmt}{self.RESET}"
        elif record.levelno == logging.INFO:
            level_fmt = f"{self.GREEN}{level_fmt}{self.RESET}"
        elif record.levelno == logging.WARNING:
            level_fmt = f"{self.YELLOW}{level_fmt}{self.RESET}"
        elif record.levelno == logging.ERROR:
            level_fmt = f"{self.RED}{level_fmt}{self.RESET}"
        elif record.levelno == logging.CRITICAL:
            level_fmt = f"{self.BOLD_RED}{level_fmt}{self.RESET}"

        record.asctime = self.formatTime(record, "%H:%M:%S")

        # uvicorn access log args: (client_addr, method, full_path, http_version, status_code)
        if record.name == "uvicorn.access" and record.args and len(record.args) == 5:
            client_addr, method, full_path, http_version, status_code = record.args

            status_code_num = int(cast(Any, status_code))
            if status_code_num < 400:
                status_code_fmt = f"{self.GREEN}{status_code}{self.RESET}"
            elif status_code_num < 500:
                status_code_fmt = f"{self.YELLOW}{status_code}{self.RESET}"
            else:
                status_code_fmt = f"{self.RED}{status_code}{self.RESET}"

            method_fmt = f"\x1b[1m{method}\x1b[0m"

            message = f'{client_addr} - "{method_fmt} {full_path} HTTP/{http_version}" {status_code_fmt}'
            return f"{record.asctime} {level_fmt} {record.name} - {message}"

        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return f"{record.asctime} {level_fmt} {record.name} - {message}"


def configure_uvicorn_logging() -> None:
    """
    Configure uvicorn loggers to use our standard colored formatting.
    This ensures uvicorn logs (access, error) match the application log style.
    """
    formatter = ColoredConsoleFormatter()

    main_logger = logging.getLogger("uvicorn")
    main_logger.handlers = []
    main_logger.setLevel(logging.INFO)

    access_logger = logging.getLogger("uvicorn.access")
    access_logger.handlers = []
    access_logger.setLevel(logging.INFO)
    access_handler = logging.StreamHandler(sys.stderr)
    access_handler.setFormatter(formatter)
    access_logger.addHandler(access_handler)
    access_logger.propagate = False

    error_logger = logging.getLogger("uvicorn.error")
    error_logger.handlers = []
    error_logger.setLevel(logging.INFO)
    error_handler = logging.StreamHandler(sys.stderr)
    error_handler.setFormatter(formatter)
    error_logger.addHandler(error_handler)
    error_logger.propagate = False


def setup_logging(name: str = "chat-relay", debug: bool | None = None) -> logging.Logger:
    """
    Set up professional logging with multiple handlers.

    Args:
        name: Logger name
        debug: Enable debug logging (overrides DEBUG env var)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)  # Capture all, filter at handler level

    # Remove any existing handlers
    logger.handlers = []

    if debug is None:
        debug = os.getenv("DEBUG", "false").lower() in ("true", "1", "yes")

    # --- Console Handler (Human-readable) ---
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.DEBUG if debug else logging.INFO)
    console_handler.setFormatter(ColoredConsoleFormatter())
    logger.addHandler(console_handler)

    # --- Conversation Log Handler (JSON) ---
    log_dir = PROJECT_ROOT / "logs"
    log_dir.mkdir(exist_ok=True)

    conv_handler = logging.handlers.RotatingFileHandler(
        log_dir / "conversations.jsonl",
        maxBytes=LOG_MAX_SIZE,
        backupCount=LOG_BACKUP_COUNT_CONVERSATIONS,
        encoding="utf-8",
    )
    conv_handler.setLevel(logging.INFO)
    conv_handler.addFilter(ConversationFilter())

    conv_formatter = jsonlogger.JsonFormatter(
        "%(timestamp)s %(levelname)s %(message)s %(instance_id)s %(chat_id)s %(max_tokens)s",
        timestamp=True,
    )

    conv_handler.setFormatter(conv_formatter)
    logger.addHandler(conv_handler)

    # --- Error Log Handler (JSON) ---
    error_handler = logging.handlers.RotatingFileHandler(
        log_dir / "errors.jsonl",
        maxBytes=LOG_MAX_SIZE,
        backupCount=LOG_BACKUP_COUNT_ERRORS,
        encoding="utf-8",
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.addFilter(ErrorFilter())

    error_formatter = jsonlogger.JsonFormatter(
        "%(timestamp)s %(levelname)s %(name)s %(message)s",
        timestamp=True,
    )

    error_handler.setFormatter(error_formatter)
    logger.addHandler(error_handler)

    return logger


class ChatLogger:
    """
    High-level logging interface for Chat Relay.
    Wraps standard Python logging with convenience methods.
    """

    def __init__(self, name: str = "chat-relay"):
        self.logger = setup_logging(name)
        self.instance_id = str(uuid.uuid4())[:INSTANCE_ID_LENGTH]

    def _enrich_context(self, kwargs: dict[str, Any]) -> dict[str, Any]:
        """Enrich log arguments with request context and instance ID."""
        kwargs.setdefault("instance_id", self.instance_id)

        if ctx := get_request_context():
            for key, value in ctx.to_log_context().items():
                kwargs.setdefault(key, value)

        return kwargs

    def debug(self, message: str, **kwargs: Any) -> None:
        """Debug level logging"""
        kwargs = self._enrich_context(kwargs)
        self.logger.debug(message, extra=kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        """Info level logging"""
        kwargs = self._enrich_context(kwargs)
        self.logger.info(message, extra=kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Warning level logging"""
        kwargs = self._enrich_context(kwargs)
        self.logger.warning(message, extra=kwargs)

    def error(self, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        """Error level logging with optional exception info"""
        kwargs = self._enrich_context(kwargs)
        self.logger.error(message, extra=kwargs, exc_info=exc_info)

    def _should_log_content(self) -> bool:
        """Check if content logging is enabled via settings."""
        try:
            return bool(get_settings().enable_content_logging)
        except Exception:
            # Fallback if settings not loaded
            return False

    def _redact_content(self, text: str) -> str:
        """Redact PII from text using defined patterns."""
        if not text:
            return text

        redacted = text
        for pattern, replacement in REDACTION_PATTERNS:
            redacted = re.sub(pattern, replacement, redacted)
        return redacted

    def _preview(self, text: str) -> str:
        preview = self._redact_content(text[:LOG_PREVIEW_LENGTH].replace("\n", " "))
        if len(text) > LOG_PREVIEW_LENGTH:
            preview += "..."
        return preview

    def log_conversation_turn(
        self,
        user_input: str,
        response: str,
        duration_ms: float | None = None,
        max_tokens: int | None = None,
        streamed: bool = False,
        chat_id: str | None = None,
    ) -> None:
        """
        Log a completed exchange securely.

        Content is hidden unless ENABLE_CONTENT_LOGGING is set, and redacted when shown.
        """
        turn = ConversationTurn(
            user_input=user_input,
            response=response,
            duration_ms=duration_ms,
            max_tokens=max_tokens,
            streamed=streamed,
            chat_id=chat_id,
        )

        should_log_content = self._should_log_content()

        if should_log_content:
            user_preview = self._preview(turn.user_input)
            response_preview = self._preview(turn.response)
        else:
            user_preview = "[HIDDEN]"
            response_preview = "[HIDDEN]"

        msg_parts = [f"User: {user_preview} → AI: {response_preview}"]

        if turn.streamed:
            msg_parts.append("[stream]")

        if turn.duration_ms:
            msg_parts.append(f"[{turn.duration_ms:.0f}ms]")

        if turn.max_tokens:
            msg_parts.append(f"[max {turn.max_tokens} tokens]")

        extra_data: dict[str, Any] = {
            "conversation_turn": True,
            "timestamp": turn.timestamp,
            "chars_input": len(turn.user_input),
            "chars_response": len(turn.response),
            "streamed": turn.streamed,
            "content_logging": should_log_content,
        }

        if turn.chat_id:
            extra_data["chat_id"] = turn.chat_id
        if turn.duration_ms is not None:
            extra_data["ms"] = int(turn.duration_ms)
        if turn.max_tokens is not None:
            extra_data["max_tokens"] = turn.max_tokens

        extra_data = self._enrich_context(extra_data)

        self.logger.info(" ".join(msg_parts), extra=extra_data)


# Global logger instance
logger = ChatLogger()
