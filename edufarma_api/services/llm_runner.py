"""
Client for an OpenAI-compatible chat completions endpoint (Groq by default).
Upstream failures are reported in the result dict instead of raised so callers
can route straight to their fallback path.
"""

from __future__ import annotations

import os
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx


@dataclass
class LLMRunner:
    base_url: str
    model: str
    api_key: Optional[str]
    timeout: float
    transport: Optional[httpx.AsyncBaseTransport] = None
    _client: Optional[httpx.AsyncClient] = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self.base_url = self.base_url.rstrip("/")
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        self._client = httpx.AsyncClient(timeout=self.timeout, headers=headers, transport=self.transport)

    @classmethod
    def from_env(cls) -> "LLMRunner":
        base_url = os.getenv("LLM_BASE_URL", "https://api.groq.com/openai/v1")
        model = os.getenv("LLM_MODEL", "llama-3.1-8b-instant")
        api_key = os.getenv("GROQ_API_KEY") or None
        timeout = float(os.getenv("LLM_TIMEOUT", "30"))
        return cls(base_url=base_url, model=model, api_key=api_key, timeout=timeout)

    async def generate(self, prompt: str, *, temperature: float = 0.2) -> Dict[str, Any]:
        start = time.perf_counter()
        if not self.api_key:
            return {
                "output": "",
                "model": self.model,
                "latency_ms": 0,
                "warning": "LLM API key is not configured",
            }

        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
        }

        async def _post() -> Dict[str, Any]:
            client = self._client
            assert client is not None
            response = await client.post(f"{self.base_url}/chat/completions", json=payload)
            response.raise_for_status()
            return response.json()

        try:
            data = await _post()
            output = data["choices"][0]["message"]["content"] or ""
        except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as exc:
            latency_ms = int((time.perf_counter() - start) * 1000)
            return {
                "output": "",
                "model": self.model,
                "latency_ms": latency_ms,
                "warning": f"LLM call failed: {exc!r}",
            }

        latency_ms = int((time.perf_counter() - start) * 1000)
        return {
            "output": output,
            "model": data.get("model", self.model),
            "latency_ms": latency_ms,
        }

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()

    async def health(self) -> bool:
        """Readiness probe for the completion provider."""

        client = self._client
        if client is None or not self.api_key:
            return False
        try:
            response = await client.get(f"{self.base_url}/models")
            response.raise_for_status()
        except httpx.HTTPError:
            return False
        return True
