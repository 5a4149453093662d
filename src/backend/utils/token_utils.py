"""
Utility functions for response-length budgeting.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from core.constants import (
    CHARS_PER_TOKEN,
    CONTEXT_TOKEN_CAPACITY,
    MAX_RESPONSE_TOKENS,
    MIN_RESPONSE_TOKENS,
)


def _content_of(message: Mapping[str, Any] | Any) -> str:
    """Read ``content`` from a dict or an attribute-style message."""
    if isinstance(message, Mapping):
        content = message.get("content")
    else:
        content = getattr(message, "content", None)
    return content if isinstance(content, str) else ""


def estimate_prompt_tokens(messages: Iterable[Mapping[str, Any] | Any]) -> int:
    """Approximate prompt size as total content characters divided by CHARS_PER_TOKEN."""
    total_chars = sum(len(_content_of(message)) for message in messages)
    return total_chars // CHARS_PER_TOKEN


def calculate_max_tokens(messages: Iterable[Mapping[str, Any] | Any]) -> int:
    """
    Compute the response-length ceiling for a completion request.

    The ceiling is what remains of the context capacity after the estimated
    prompt size, clamped to [MIN_RESPONSE_TOKENS, MAX_RESPONSE_TOKENS].

    Args:
        messages: Conversation messages, either dicts or objects with a ``content`` attribute

    Returns:
        Maximum number of tokens the provider may generate
    """
    remaining = CONTEXT_TOKEN_CAPACITY - estimate_prompt_tokens(messages)
    return max(MIN_RESPONSE_TOKENS, min(remaining, MAX_RESPONSE_TOKENS))
