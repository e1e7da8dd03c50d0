from __future__ import annotations

import os
from typing import Any, List, Optional, Protocol

import httpx

ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
DEFAULT_MODEL = "claude-3-5-sonnet-latest"
API_KEY_ENV = "ANTHROPIC_API_KEY"


class AIClientError(RuntimeError):
    pass


class AIClient(Protocol):
    async def send_prompt(self, prompt: str, max_tokens: int) -> str:
        ...


class AnthropicClient:
    """Minimal Messages API client.

    Transport and HTTP errors propagate; a reply without text blocks is "".
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        *,
        base_url: str = ANTHROPIC_API_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else os.environ.get(API_KEY_ENV, "")
        self.model = model
        self.base_url = base_url
        self.transport = transport

    async def send_prompt(self, prompt: str, max_tokens: int) -> str:
        if not self.api_key:
            raise AIClientError(f"{API_KEY_ENV} is not set")
        payload = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }
        async with httpx.AsyncClient(timeout=None, transport=self.transport) as client:
            response = await client.post(self.base_url, headers=headers, json=payload)
            response.raise_for_status()
            result = response.json()
        return _response_text(result)


def _response_text(result: Any) -> str:
    if not isinstance(result, dict):
        return ""
    blocks: List[Any] = result.get("content") or []
    parts = [
        block.get("text", "")
        for block in blocks
        if isinstance(block, dict) and block.get("type") == "text"
    ]
    return "".join(parts).strip()
