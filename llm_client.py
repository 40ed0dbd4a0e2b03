#!/usr/bin/env python3
"""
LLM Client for OpenRouter Chat Completions
==========================================

Single-shot chat completion calls over aiohttp. Every failure is raised as
LLMServiceError with enough information (HTTP status, message) for the retry
policy to tell transient failures from permanent ones. Retrying and model
cascading live in retry_policy / shopping_aggregator, not here.

Usage:
    from llm_client import LLMClient, LLMServiceError

    client = LLMClient()
    try:
        text = await client.complete(prompt, model="google/gemini-2.0-flash-001")
    except LLMServiceError as e:
        if e.is_transient:
            ...
"""

import asyncio
import json
import re
from typing import Optional

import aiohttp

from config import CHAT_API_URL, CHAT_TIMEOUT, load_chat_api_key
from tools.logging_utils import get_logger

logger = get_logger(__name__)

TRANSIENT_STATUS_CODES = {429, 503}
TRANSIENT_CODE_PATTERN = re.compile(r"\b(429|503)\b")
TRANSIENT_MESSAGE_MARKERS = (
    "rate limit",
    "overloaded",
    "resource_exhausted",
    "unavailable",
)


class LLMServiceError(Exception):
    """A failed call to the model service."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status
        self.message = message

    @property
    def is_transient(self) -> bool:
        """Rate-limit or overload signals.

        A known HTTP status decides on its own; message text is only
        consulted for transport or payload errors without one.
        """
        if self.status is not None:
            return self.status in TRANSIENT_STATUS_CODES
        lowered = (self.message or "").lower()
        if TRANSIENT_CODE_PATTERN.search(lowered):
            return True
        return any(marker in lowered for marker in TRANSIENT_MESSAGE_MARKERS)


class LLMClient:
    """Thin OpenRouter client: one prompt in, one response text out."""

    def __init__(self, api_url: str = CHAT_API_URL, api_key: Optional[str] = None,
                 timeout: float = CHAT_TIMEOUT):
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key if api_key is not None else load_chat_api_key()
        self.timeout = timeout

    async def complete(self, prompt: str, model: str, temperature: float = 0.1,
                       max_tokens: int = 8000) -> str:
        """
        Send one prompt to one model.

        Returns:
            Response text (stripped)

        Raises:
            LLMServiceError: on any transport, HTTP or payload problem
        """
        if not self.api_key:
            raise LLMServiceError("OPENROUTER_API_KEY is not set")

        payload = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
            "max_tokens": max_tokens,
            "stream": False,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
            "X-Title": "Kondate Shopping List Builder",
        }

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    f"{self.api_url}/chat/completions",
                    json=payload,
                    headers=headers,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as response:
                    if response.status != 200:
                        error_body = await response.text()
                        raise LLMServiceError(
                            f"OpenRouter error {response.status}: {error_body[:500]}",
                            status=response.status,
                        )
                    data = await response.json(content_type=None)
        except asyncio.TimeoutError as e:
            raise LLMServiceError(f"Timed out after {self.timeout}s calling {model}") from e
        except aiohttp.ClientError as e:
            raise LLMServiceError(f"HTTP error calling {model}: {e}") from e

        return self._extract_content(data, model)

    @staticmethod
    def _extract_content(data: dict, model: str) -> str:
        # OpenRouter reports upstream errors inside a 200 body as well
        if "error" in data:
            error = data.get("error") or {}
            if isinstance(error, dict):
                raise LLMServiceError(
                    f"OpenRouter API error: {error.get('message', error)}",
                    status=error.get("code") if isinstance(error.get("code"), int) else None,
                )
            raise LLMServiceError(f"OpenRouter API error: {error}")

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            logger.error(f"❌ Unexpected response structure from {model}: {json.dumps(data)[:500]}")
            raise LLMServiceError(f"Unexpected response format: missing {e}") from e

        if content is None or not content.strip():
            raise LLMServiceError(f"{model} returned empty content")

        return content.strip()
