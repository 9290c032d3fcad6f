"""Service layer for the diagnosis API."""

from .diagnosis import DiagnosisService  # noqa: F401
from .diagnosis_result import DiagnosisParseError, DiagnosisResult  # noqa: F401
from .llm_runner import LLMRunner  # noqa: F401
from .safety_filter import SafetyFilter  # noqa: F401
from .translator import Translator  # noqa: F401

__all__ = [
    "DiagnosisParseError",
    "DiagnosisResult",
    "DiagnosisService",
    "LLMRunner",
    "SafetyFilter",
    "Translator",
]
