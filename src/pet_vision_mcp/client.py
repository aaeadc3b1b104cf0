"""Shared Gemini client singleton."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any

from google import genai
from google.genai import types

from .config import get_config
from .retry import with_retry

logger = logging.getLogger(__name__)


class GeminiClient:
    """Process-wide Gemini client pool (one client per API key)."""

    _clients: dict[str, genai.Client] = {}

    @classmethod
    def get(cls, api_key: str | None = None) -> genai.Client:
        """Return (or create) the shared client for *api_key*."""
        key = api_key or get_config().gemini_api_key or os.getenv("GEMINI_API_KEY", "")
        if not key:
            raise ValueError("No Gemini API key — set GEMINI_API_KEY or pass api_key explicitly")
        if key not in cls._clients:
            cls._clients[key] = genai.Client(api_key=key)
            logger.info("Created Gemini client (key …%s)", key[-4:])
        return cls._clients[key]

    @classmethod
    async def generate(
        cls,
        contents: Any,
        *,
        model: str | None = None,
        temperature: float | None = None,
        timeout: float | None = None,
        **kwargs: Any,
    ) -> str:
        """Generate text via Gemini, retrying transient errors.

        Args:
            contents: Prompt contents (text and image parts).
            model: Override model ID (defaults to config's model).
            temperature: Optional sampling temperature.
            timeout: Seconds for the whole call including retries
                (defaults to config's upstream_timeout_seconds).
            **kwargs: Forwarded to the underlying generate_content call.

        Returns:
            The model's text response; empty string when it returned no text.

        Raises:
            TimeoutError: If the call does not finish within *timeout*.
        """
        cfg = get_config()
        resolved_model = model or cfg.model
        config = types.GenerateContentConfig()
        if temperature is not None:
            config.temperature = temperature

        client = cls.get()
        response = await asyncio.wait_for(
            with_retry(
                lambda: client.aio.models.generate_content(
                    model=resolved_model,
                    contents=contents,
                    config=config,
                    **kwargs,
                )
            ),
            timeout=timeout if timeout is not None else cfg.upstream_timeout_seconds,
        )

        parts = response.candidates[0].content.parts if response.candidates else []
        text_parts = [p.text for p in parts or [] if p.text and not getattr(p, "thought", False)]
        return "\n".join(text_parts) if text_parts else (response.text or "")

    @classmethod
    async def close_all(cls) -> int:
        """Shut down all shared clients. Returns count closed."""
        count = 0
        for client in list(cls._clients.values()):
            try:
                await client.aio.aclose()
            except Exception:
                logger.debug("Async client close failed", exc_info=True)
            try:
                client.close()
            except Exception:
                logger.debug("Sync client close failed", exc_info=True)
            count += 1
        cls._clients.clear()
        logger.info("Closed %d Gemini client(s)", count)
        return count
