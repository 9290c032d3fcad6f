"""Offline diagnosis templates used when the model is unavailable or unsafe."""

from __future__ import annotations

from typing import Dict, Tuple

from .diagnosis_result import DiagnosisResult
from .heuristics import PlantPart

__all__ = ["FALLBACK_SEVERITY", "FALLBACK_TREATMENT", "fallback_text", "generate_fallback"]

_PART_TEMPLATES: Dict[str, Tuple[str, str]] = {
    "leaf": (
        "Leaf spot or leaf damage",
        "Spots, holes, curling or discoloration are seen on the leaves.",
    ),
    "fruit": (
        "Fruit-related damage or rot",
        "Holes, soft patches or rotting are seen on the fruits or pods.",
    ),
    "stem": (
        "Stem or shoot damage",
        "Drying, cracking or damage is seen on the stems or growing shoots.",
    ),
    "root": (
        "Root or wilting problem",
        "The plant is wilting or growing weakly, which points to trouble near the roots.",
    ),
    "unknown": (
        "General crop health problem",
        "The symptoms are not clear enough to tell which part of the plant is affected.",
    ),
}

FALLBACK_SEVERITY = "Moderate"

_FALLBACK_CAUSE = (
    "Usually caused by a mix of factors such as insects, fungal or bacterial infection, "
    "weather stress or poor field hygiene."
)

# Order is fixed: cultural, organic, soil and crop care, safety.
FALLBACK_TREATMENT: Tuple[str, ...] = (
    "Cultural control: Remove and destroy badly affected plant parts, keep the field clean "
    "and avoid overcrowding of plants.",
    "Organic control: Spray Neem oil at 3-5 ml per liter of water in the evening, and repeat "
    "after 7 days if the problem continues.",
    "Soil and crop care: Avoid water stagnation, keep proper spacing between plants and use "
    "healthy seeds or seedlings next season.",
    "Safety: Wear gloves and a mask while spraying, follow the product label, and contact "
    "your local agriculture officer if the problem spreads.",
)


def generate_fallback(part: PlantPart | str) -> DiagnosisResult:
    """Build the fallback diagnosis for ``part``; unknown values use the generic template."""

    disease, description = _PART_TEMPLATES.get(part, _PART_TEMPLATES["unknown"])
    return DiagnosisResult(
        disease=disease,
        severity=FALLBACK_SEVERITY,
        description=description,
        cause=_FALLBACK_CAUSE,
        treatment=list(FALLBACK_TREATMENT),
    )


def fallback_text(part: PlantPart | str) -> str:
    return generate_fallback(part).to_json()
