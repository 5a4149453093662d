"""
Completion relay to an OpenAI-compatible chat-completions provider.

Two modes:
- whole: await the full completion and return its text
- streaming: open the provider stream, then forward each fragment to the
  caller as a Server-Sent Event while accumulating the full reply

Provider failures before the stream is open become ProviderError subclasses
(rendered as JSON errors). Failures after the first byte reached the caller
only end the stream; no error document is written into an event stream.
"""

from __future__ import annotations

import asyncio
import json

from collections.abc import AsyncIterator, Sequence
from typing import Any

import httpx

from openai import APIError, AsyncOpenAI

from api.middleware.exception_handlers import ProviderError, translate_provider_error
from core.constants import COMPLETION_TEMPERATURE, DEFAULT_MODEL, SSE_DONE_SENTINEL
from utils.logger import logger


def format_sse_event(data: str) -> str:
    """Frame one Server-Sent Event carrying ``data``."""
    return f"data: {data}\n\n"


def format_content_event(fragment: str) -> str:
    """Frame a reply fragment as ``data: {"content": ...}``."""
    return format_sse_event(json.dumps({"content": fragment}, ensure_ascii=False))


def _chunk_content(chunk: Any) -> str:
    """Text delta of a streamed chunk, or "" for role/keep-alive/finish chunks."""
    choices = getattr(chunk, "choices", None)
    if not choices:
        return ""
    delta = getattr(choices[0], "delta", None)
    content = getattr(delta, "content", None) if delta is not None else None
    return content or ""


class ReplyStream:
    """Single-consumer relay of one provider stream.

    ``events()`` yields SSE lines; ``reply`` holds the text forwarded so far and
    ``completed`` becomes True only once the terminal sentinel was yielded.
    """

    def __init__(self, source: Any):
        self._source = source
        self._fragments: list[str] = []
        self._consumed = False
        self.completed = False
        self.error: BaseException | None = None

    @property
    def reply(self) -> str:
        return "".join(self._fragments)

    async def events(self) -> AsyncIterator[str]:
        if self._consumed:
            raise RuntimeError("ReplyStream can only be consumed once")
        self._consumed = True

        try:
            async for chunk in self._source:
                fragment = _chunk_content(chunk)
                if not fragment:
                    continue
                self._fragments.append(fragment)
                yield format_content_event(fragment)
        except (APIError, httpx.HTTPError) as exc:
            # Response is already committed as an event stream; just end it
            self.error = exc
            logger.error(
                f"Completion stream failed mid-stream: {type(exc).__name__}: {exc}",
                exc_info=True,
                chars_forwarded=len(self.reply),
            )
            return
        except (asyncio.CancelledError, GeneratorExit):
            logger.warning("Completion stream aborted by client", chars_forwarded=len(self.reply))
            raise
        finally:
            await self._close_source()

        self.completed = True
        yield format_sse_event(SSE_DONE_SENTINEL)

    async def _close_source(self) -> None:
        close = getattr(self._source, "close", None)
        if close is None:
            return
        try:
            await close()
        except Exception as exc:
            logger.warning(f"Failed to close provider stream: {exc}")


class CompletionRelay:
    """Issues completion requests with the configured model and temperature."""

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str = DEFAULT_MODEL,
        temperature: float = COMPLETION_TEMPERATURE,
    ):
        self.client = client
        self.model = model
        self.temperature = temperature

    async def complete(self, messages: Sequence[dict[str, str]], max_tokens: int) -> str:
        """Whole mode: full reply text, "" when the provider returned no content.

        Raises:
            ProviderError: If the provider call fails
        """
        response = await self._create(messages, max_tokens, stream=False)
        choices = getattr(response, "choices", None)
        if not choices:
            return ""
        message = getattr(choices[0], "message", None)
        return (getattr(message, "content", None) if message is not None else None) or ""

    async def open_stream(self, messages: Sequence[dict[str, str]], max_tokens: int) -> ReplyStream:
        """Streaming mode: open the provider stream before anything is sent to the caller.

        Raises:
            ProviderError: If the provider refuses the request
        """
        source = await self._create(messages, max_tokens, stream=True)
        return ReplyStream(source)

    async def _create(self, messages: Sequence[dict[str, str]], max_tokens: int, *, stream: bool) -> Any:
        try:
            return await self.client.chat.completions.create(
                model=self.model,
                messages=list(messages),  # type: ignore[arg-type]
                temperature=self.temperature,
                max_tokens=max_tokens,
                stream=stream,
            )
        except APIError as exc:
            error = translate_provider_error(exc)
            logger.error(
                f"Completion request failed: {type(exc).__name__}: {exc}",
                error_code=error.code.value,
                stream=stream,
            )
            raise error from exc


__all__ = [
    "CompletionRelay",
    "ProviderError",
    "ReplyStream",
    "format_content_event",
    "format_sse_event",
]
