"""
Anthropic Messages API client.

Used when AI_BACKEND=anthropic and ANTHROPIC_API_KEY is configured.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

MESSAGES_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
DEFAULT_MODEL = "claude-3-5-haiku-latest"


class AnthropicAPIError(Exception):
    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"Anthropic API returned {status_code}")
        self.status_code = status_code
        self.body = body


class AnthropicMessagesClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = MESSAGES_URL,
        timeout_seconds: float = 60.0,
    ) -> None:
        self.api_key = api_key or os.getenv("ANTHROPIC_API_KEY", "")
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds

    async def create_message(
        self,
        *,
        system: str,
        content: List[Dict[str, Any]],
        model: str = DEFAULT_MODEL,
        max_tokens: int = 2000,
        temperature: Optional[float] = None,
    ) -> str:
        """Send one user turn and return the text of the first content block."""
        if not self.api_key:
            raise ValueError("ANTHROPIC_API_KEY is not configured.")

        headers = {
            "content-type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }
        payload: Dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "system": system,
            "messages": [{"role": "user", "content": content}],
        }
        if temperature is not None:
            payload["temperature"] = temperature

        async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
            response = await client.post(self.base_url, json=payload, headers=headers)

        if response.status_code >= 400:
            raise AnthropicAPIError(response.status_code, response.text)

        data = response.json() if response.content else {}
        blocks = data.get("content") or []
        if not blocks:
            return ""
        return blocks[0].get("text", "") or ""
