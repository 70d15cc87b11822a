"""Shared utility functions used across the app."""

from __future__ import annotations

import asyncio
import functools
import logging
from datetime import datetime, timezone
from typing import Any

import openai

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 60 * 60 * 24


def retry_openai(
    max_retries: int = 3,
    backoff: float = 1.0,
):
    """Decorator that retries async OpenAI calls on transient errors.

    Retries on RateLimitError and APITimeoutError with exponential backoff.
    """
    def decorator(fn):
        @functools.wraps(fn)
        async def wrapper(*args, **kwargs):
            last_exc = None
            for attempt in range(max_retries):
                try:
                    return await fn(*args, **kwargs)
                except (openai.RateLimitError, openai.APITimeoutError) as exc:
                    last_exc = exc
                    wait = backoff * (2 ** attempt)
                    logger.warning(
                        "OpenAI %s on attempt %d/%d for %s — retrying in %.1fs",
                        type(exc).__name__, attempt + 1, max_retries, fn.__name__, wait,
                    )
                    await asyncio.sleep(wait)
            raise last_exc  # type: ignore[misc]
        return wrapper
    return decorator


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (SQLite round-trips) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def days_between(start: datetime, end: datetime) -> float:
    """Elapsed wall-clock days from *start* to *end*, never negative."""
    seconds = (as_utc(end) - as_utc(start)).total_seconds()
    return max(0.0, seconds / SECONDS_PER_DAY)


def extract_output_text(response: Any) -> str:
    """Pull the generated text out of a Responses API result.

    Prefers the ``output_text`` shortcut, then scans ``output[*].content[*]``
    for ``output_text`` parts. Returns an empty string when nothing is found.
    """
    shortcut = getattr(response, "output_text", None)
    if isinstance(shortcut, str) and shortcut.strip():
        return shortcut.strip()

    parts: list[str] = []
    for item in getattr(response, "output", None) or []:
        for part in getattr(item, "content", None) or []:
            text = getattr(part, "text", None)
            if getattr(part, "type", None) == "output_text" and isinstance(text, str):
                parts.append(text)
    return "\n".join(parts).strip()
