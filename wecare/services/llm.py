# wecare/services/llm.py
import asyncio
import logging
from typing import Optional

import httpx

from wecare.core.errors import MatchingError

logger = logging.getLogger(__name__)

class ChatCompletionClient:
    """Minimal async client for an OpenAI-compatible ``/chat/completions`` endpoint.

    Every call is bounded by ``timeout`` seconds end to end. Cancelling the
    awaiting task cancels the in-flight request. Transport failures, timeouts
    and non-2xx answers all surface as ``MatchingError``.
    """

    def __init__(self, base_url: str, api_key: str, model: str, timeout: float = 30.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> dict:
        h = {"Content-Type": "application/json"}
        if self.api_key:
            h["Authorization"] = f"Bearer {self.api_key}"
        return h

    async def complete_json(self, system: str, prompt: str) -> str:
        """Ask for a JSON object answer and return the raw message content."""
        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "response_format": {"type": "json_object"},
        }
        timeout = httpx.Timeout(self.timeout, connect=min(5.0, self.timeout))
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                r = await asyncio.wait_for(
                    client.post(f"{self.base_url}/chat/completions", json=body, headers=self._headers()),
                    timeout=self.timeout,
                )
        except asyncio.TimeoutError:
            logger.warning("model call timed out after %.1fs", self.timeout)
            raise MatchingError()
        except (httpx.HTTPError, httpx.InvalidURL) as ex:
            logger.warning("model call failed: %s", ex.__class__.__name__)
            raise MatchingError()

        if not 200 <= r.status_code < 300:
            logger.warning("model call returned HTTP %s", r.status_code)
            raise MatchingError()

        try:
            content = r.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError):
            logger.warning("model reply has no message content")
            raise MatchingError()
        if not isinstance(content, str):
            raise MatchingError()
        return content
