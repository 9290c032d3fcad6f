"""Field-by-field translation of a finished diagnosis via the MyMemory API."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

import httpx

from .diagnosis_result import DiagnosisResult

logger = logging.getLogger(__name__)

SUPPORTED_TARGETS = ("en", "hi")


@dataclass
class Translator:
    base_url: str
    timeout: float
    email: Optional[str] = None
    transport: Optional[httpx.AsyncBaseTransport] = None
    _client: Optional[httpx.AsyncClient] = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self.base_url = self.base_url.rstrip("/")
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    @classmethod
    def from_env(cls) -> "Translator":
        base_url = os.getenv("TRANSLATE_BASE_URL", "https://api.mymemory.translated.net")
        timeout = float(os.getenv("TRANSLATE_TIMEOUT", "10"))
        email = os.getenv("TRANSLATE_EMAIL") or None
        return cls(base_url=base_url, timeout=timeout, email=email)

    async def translate_text(self, text: str, target: str, *, source: str = "en") -> str:
        """Translate one string; returns ``text`` unchanged if the provider fails."""

        if not text.strip() or target == source:
            return text
        params = {"q": text, "langpair": f"{source}|{target}"}
        if self.email:
            params["de"] = self.email
        client = self._client
        assert client is not None
        try:
            response = await client.get(f"{self.base_url}/get", params=params)
            response.raise_for_status()
            data = response.json()
            translated = data["responseData"]["translatedText"]
            status = data.get("responseStatus", 200)
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Translation failed target=%s: %s", target, exc)
            return text
        # Quota and usage errors arrive as HTTP 200 with the status in the body.
        if str(status) != "200" or (isinstance(translated, str) and translated.upper().startswith("MYMEMORY WARNING")):
            logger.warning("Translation rejected by provider target=%s status=%s", target, status)
            return text
        if not isinstance(translated, str) or not translated.strip():
            return text
        return translated

    async def translate_diagnosis(self, diagnosis: DiagnosisResult, target: str = "hi") -> DiagnosisResult:
        if target not in SUPPORTED_TARGETS:
            raise ValueError(f"unsupported target language '{target}'")
        if target == "en":
            return diagnosis

        fields = [diagnosis.disease, diagnosis.severity, diagnosis.description, diagnosis.cause]
        texts: List[str] = fields + list(diagnosis.treatment)
        translated = await asyncio.gather(*(self.translate_text(text, target) for text in texts))
        disease, severity, description, cause = translated[:4]
        return DiagnosisResult(
            disease=disease,
            severity=severity,
            description=description,
            cause=cause,
            treatment=list(translated[4:]),
        )

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
