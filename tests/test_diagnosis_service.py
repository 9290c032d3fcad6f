from __future__ import annotations

import json
from typing import Any, Dict, List, Tuple

import httpx
import pytest

from edufarma_api.services.diagnosis import DiagnosisService, build_prompt
from edufarma_api.services.diagnosis_result import DiagnosisParseError
from edufarma_api.services.fallback import generate_fallback
from edufarma_api.services.safety_filter import SafetyFilter

SCENARIO_A = "small holes in brinjal fruit, caterpillar visible"


class _StubLLMRunner:
    model = "stub-llm"

    def __init__(self, payload: Dict[str, Any]) -> None:
        self._payload = payload
        self.calls: List[Tuple[str, float]] = []

    async def generate(self, prompt: str, *, temperature: float = 0.2) -> Dict[str, Any]:
        self.calls.append((prompt, temperature))
        return dict(self._payload)


def _clean_output() -> str:
    return json.dumps(
        {
            "disease": "Leaf blight",
            "severity": "Medium",
            "description": "Brown patches on older leaves",
            "cause": "Fungal infection after long wet weather",
            "treatment": ["Remove infected leaves", "Use pesticides only as a last step"],
        }
    )


@pytest.mark.asyncio
async def test_unreachable_model_returns_fruit_fallback() -> None:
    runner = _StubLLMRunner({"output": "", "warning": "LLM call failed: ConnectError()"})
    service = DiagnosisService(runner, SafetyFilter())

    outcome = await service.run(SCENARIO_A, "en")

    assert len(runner.calls) == 1
    assert outcome.result == generate_fallback("fruit")
    assert outcome.result.disease == "Fruit-related damage or rot"
    assert len(outcome.result.treatment) == 4
    assert outcome.fallback.used is True
    assert outcome.fallback.reason == "upstream_error"
    assert outcome.fallback.issue_type == "insect"


@pytest.mark.asyncio
async def test_empty_output_uses_fallback() -> None:
    service = DiagnosisService(_StubLLMRunner({"output": "   "}), SafetyFilter())
    outcome = await service.run("white powder on leaves")
    assert outcome.result == generate_fallback("leaf")
    assert outcome.fallback.reason == "empty_output"


@pytest.mark.asyncio
async def test_clean_output_is_sanitised_and_returned() -> None:
    service = DiagnosisService(_StubLLMRunner({"output": _clean_output()}), SafetyFilter())
    outcome = await service.run("brown patches on leaves")
    assert outcome.fallback.used is False
    assert outcome.result.disease == "Leaf blight"
    assert outcome.result.treatment[1] == "Use control measures only as a last step"


@pytest.mark.asyncio
async def test_banned_output_is_replaced() -> None:
    raw = _clean_output().replace("Remove infected leaves", "spray monocrotophos 2ml/l")
    service = DiagnosisService(_StubLLMRunner({"output": raw}), SafetyFilter())
    result = await service.diagnose(SCENARIO_A)
    assert result == generate_fallback("fruit")


@pytest.mark.asyncio
async def test_fenced_model_output_is_accepted() -> None:
    fenced = f"```json\n{_clean_output()}\n```"
    service = DiagnosisService(_StubLLMRunner({"output": fenced}), SafetyFilter())
    result = await service.diagnose("brown patches on leaves")
    assert result.severity == "Medium"


@pytest.mark.asyncio
async def test_unparseable_clean_output_is_fatal() -> None:
    service = DiagnosisService(_StubLLMRunner({"output": "Sorry, I cannot help with that."}), SafetyFilter())
    with pytest.raises(DiagnosisParseError):
        await service.diagnose("brown patches on leaves")


@pytest.mark.asyncio
async def test_prompt_and_temperature_sent_once() -> None:
    runner = _StubLLMRunner({"output": _clean_output()})
    service = DiagnosisService(runner, SafetyFilter(), temperature=0.1)
    await service.diagnose("curling leaves on chilli", "hi")

    assert len(runner.calls) == 1
    prompt, temperature = runner.calls[0]
    assert temperature == 0.1
    assert '"curling leaves on chilli"' in prompt
    assert "Hindi" in prompt


def test_prompt_carries_schema_and_rules() -> None:
    prompt = build_prompt("yellow leaves", "en")
    for key in ("disease", "severity", "description", "cause", "treatment"):
        assert f'"{key}"' in prompt
    assert prompt.index('"disease"') < prompt.index('"treatment"')
    assert "English" in prompt
    assert "ml/L or g/L" in prompt
    assert "Bt" in prompt
    assert "do not guess any pest species" in prompt
    assert "Do not write anything outside the JSON object" in prompt


def test_unknown_language_prompts_in_english() -> None:
    assert "English" in build_prompt("yellow leaves", "fr")


def test_high_temperature_is_rejected() -> None:
    with pytest.raises(ValueError):
        DiagnosisService(_StubLLMRunner({}), SafetyFilter(), temperature=0.7)


def test_from_env_reads_temperature(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LLM_TEMPERATURE", "0.15")
    monkeypatch.setenv("SAFETY_POLICY_MODE", "denylist")
    service = DiagnosisService.from_env(_StubLLMRunner({}))
    assert service.temperature == 0.15


class _RaisingLLMRunner:
    model = "closed-llm"

    def __init__(self, exc: Exception) -> None:
        self._exc = exc
        self.calls = 0

    async def generate(self, prompt: str, *, temperature: float = 0.2) -> Dict[str, Any]:
        self.calls += 1
        raise self._exc


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "exc",
    [
        RuntimeError("Cannot send a request, as the client has been closed."),
        httpx.InvalidURL("bad url"),
    ],
)
async def test_raising_client_falls_back(exc: Exception) -> None:
    runner = _RaisingLLMRunner(exc)
    outcome = await DiagnosisService(runner, SafetyFilter()).run("small holes in brinjal fruit")
    assert runner.calls == 1
    assert outcome.result == generate_fallback("fruit")
    assert outcome.fallback.reason == "upstream_error"
