"""Symptom text → vetted diagnosis, with a single model call per request."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Literal, Protocol

from .diagnosis_result import DiagnosisResult, parse_diagnosis_text
from .fallback import fallback_text
from .fallback_meta import FallbackMeta
from .heuristics import infer_issue_type, infer_plant_part
from .safety_filter import SafetyFilter

logger = logging.getLogger(__name__)

Language = Literal["en", "hi"]

_LANGUAGE_NAMES: Dict[str, str] = {"en": "English", "hi": "Hindi"}

MAX_TEMPERATURE = 0.3

DIAGNOSIS_TEMPLATE = """You are an agricultural plant-protection expert helping a small farmer.

Symptoms described by the farmer:
"{symptoms}"

Respond ONLY with one valid JSON object in exactly this shape and key order:
{{
  "disease": "short generic name of the problem",
  "severity": "Low | Moderate | High",
  "description": "what the farmer can see",
  "cause": "likely cause in simple words",
  "treatment": ["step 1", "step 2", "step 3", "step 4"]
}}

Rules:
- Never mention banned or highly hazardous chemicals.
- The crop is not confirmed: do not guess any pest species or genus name. Describe the problem generically.
- Follow integrated pest management order in "treatment": cultural control first, then biological or organic control, then chemical control only if really needed, and end with safety precautions.
- Give dosages only as ml/L or g/L of water. Do not give fertilizer or nutrient doses.
- Biological agents such as Bt are not chemicals.
- Do not write anything outside the JSON object.

Language of every value: {language}. Use very simple words for farmers.
"""


class CompletionClient(Protocol):
    async def generate(self, prompt: str, *, temperature: float = ...) -> Dict[str, Any]: ...


@dataclass(frozen=True)
class DiagnosisOutcome:
    result: DiagnosisResult
    fallback: FallbackMeta


def build_prompt(symptoms: str, language: Language | str = "en") -> str:
    return DIAGNOSIS_TEMPLATE.format(
        symptoms=symptoms,
        language=_LANGUAGE_NAMES.get(language, _LANGUAGE_NAMES["en"]),
    )


class DiagnosisService:
    """Orchestrates prompt → model → safety filter (or fallback) → parse."""

    def __init__(self, llm: CompletionClient, safety: SafetyFilter, *, temperature: float = 0.2) -> None:
        if not 0.0 <= temperature <= MAX_TEMPERATURE:
            raise ValueError(f"temperature must be between 0.0 and {MAX_TEMPERATURE}")
        self.llm = llm
        self.safety = safety
        self.temperature = temperature

    @classmethod
    def from_env(cls, llm: CompletionClient) -> "DiagnosisService":
        temperature = float(os.getenv("LLM_TEMPERATURE", "0.2"))
        return cls(llm, SafetyFilter.from_env(), temperature=temperature)

    async def run(self, symptoms: str, language: Language | str = "en") -> DiagnosisOutcome:
        prompt = build_prompt(symptoms, language)
        try:
            result = await self.llm.generate(prompt, temperature=self.temperature)
        except Exception as exc:
            result = {"output": "", "warning": f"LLM call raised: {exc!r}"}
        raw = str(result.get("output") or "")
        warning = result.get("warning")

        if warning or not raw.strip():
            part = infer_plant_part(symptoms)
            meta = FallbackMeta().mark_used(
                "upstream_error" if warning else "empty_output",
                plant_part=part,
                issue_type=infer_issue_type(symptoms),
            )
            logger.warning("Diagnosis model unavailable; using fallback %s warning=%s", meta.log_fields(), warning)
            text = fallback_text(part)
        else:
            text, meta = self.safety.review(raw, symptoms)

        diagnosis = parse_diagnosis_text(text)
        logger.info(
            "Diagnosis ready language=%s fallback=%s latency_ms=%s",
            language,
            meta.used,
            result.get("latency_ms"),
        )
        return DiagnosisOutcome(result=diagnosis, fallback=meta)

    async def diagnose(self, symptoms: str, language: Language | str = "en") -> DiagnosisResult:
        """Return a policy-compliant diagnosis; raises ``DiagnosisParseError`` only on a fatal parse."""

        outcome = await self.run(symptoms, language)
        return outcome.result
