"""Schema and parsing helpers for the diagnosis payload returned to farmers."""

from __future__ import annotations

import json
import re
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

__all__ = ["DiagnosisParseError", "DiagnosisResult", "parse_diagnosis_text"]

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")


class DiagnosisParseError(ValueError):
    """Raised when filtered or fallback text is not a valid diagnosis payload."""

    def __init__(self, msg: str, errors: List[Dict[str, Any]] | None = None) -> None:
        super().__init__(msg)
        self.detail = {"stage": "parse", "msg": msg, "errors": list(errors or [])}


class DiagnosisResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    disease: str
    severity: str
    description: str
    cause: str
    treatment: List[str]

    @field_validator("disease", "severity", "description", "cause", mode="before")
    @classmethod
    def _require_text(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("must be a string")
        return value.strip()

    @field_validator("treatment", mode="before")
    @classmethod
    def _coerce_steps(cls, value: Any) -> List[str]:
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, list):
            raise ValueError("treatment must be a list of steps")
        return [step.strip() for step in value if isinstance(step, str) and step.strip()]

    def to_json(self) -> str:
        return json.dumps(self.model_dump(), ensure_ascii=False)


def _extract_json_object(text: str) -> str:
    cleaned = _FENCE_RE.sub("", text.strip())
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end <= start:
        return cleaned
    return cleaned[start : end + 1]


def parse_diagnosis_text(text: str | None) -> DiagnosisResult:
    """Parse model or fallback text into a :class:`DiagnosisResult`.

    A surrounding Markdown fence or stray prose around the single JSON object
    is tolerated; anything else raises :class:`DiagnosisParseError`.
    """

    if not text or not text.strip():
        raise DiagnosisParseError("empty diagnosis text")
    candidate = _extract_json_object(text)
    try:
        payload = json.loads(candidate)
    except json.JSONDecodeError as exc:
        raise DiagnosisParseError(f"invalid JSON: {exc.msg}") from exc
    if not isinstance(payload, dict):
        raise DiagnosisParseError("diagnosis JSON must be an object")
    try:
        return DiagnosisResult.model_validate(payload)
    except ValidationError as exc:
        raise DiagnosisParseError("diagnosis schema mismatch", errors=exc.errors()) from exc
