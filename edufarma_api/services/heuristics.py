"""Keyword heuristics over free-text symptom reports.

Both classifiers are ordered rule lists evaluated first-match-wins, so the
tie-break order is the order of the tuples below.
"""

from __future__ import annotations

import re
from typing import Literal, Sequence, Tuple

PlantPart = Literal["leaf", "fruit", "stem", "root", "unknown"]
IssueType = Literal["insect", "disease", "nutrient", "environmental", "unknown"]

PLANT_PARTS: Tuple[PlantPart, ...] = ("leaf", "fruit", "stem", "root", "unknown")

_PLANT_PART_RULES: Tuple[Tuple[PlantPart, Tuple[str, ...]], ...] = (
    ("leaf", ("leaf", "leaves", "foliage", "पत्ती", "पत्ते", "पत्तियों")),
    ("fruit", ("fruit", "pod", "boll", "berry", "फल", "फली")),
    ("stem", ("stem", "shoot", "stalk", "branch", "tiller", "तना", "टहनी")),
    ("root", ("root", "wilt", "collar", "जड़", "मुरझा")),
)

_ISSUE_TYPE_RULES: Tuple[Tuple[IssueType, Tuple[str, ...]], ...] = (
    ("insect", ("hole", "tunnel", "chew", "bore", "caterpillar", "larva", "insect", "worm", "कीड़")),
    ("disease", ("rot", "fung", "spot", "blight", "mildew", "mold", "mould", "rust", "lesion", "धब्बे", "सड़")),
    ("nutrient", ("yellow", "deficien", "stunted", "chlorosis", "pale", "पीला", "पीली")),
    ("environmental", ("heat", "drought", "waterlog", "flood", "frost", "scorch", "सूखा")),
)


def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    # Latin keywords must start a word ("stem" not in "system", "rot" not in
    # "carrot"); they may still be a prefix ("rotting", "fungal").
    if keyword.isascii():
        return re.compile(r"\b" + re.escape(keyword))
    return re.compile(re.escape(keyword))


def _compile(
    rules: Sequence[Tuple[str, Tuple[str, ...]]]
) -> Tuple[Tuple[str, Tuple[re.Pattern[str], ...]], ...]:
    return tuple((label, tuple(_keyword_pattern(keyword) for keyword in keywords)) for label, keywords in rules)


_PLANT_PART_PATTERNS = _compile(_PLANT_PART_RULES)
_ISSUE_TYPE_PATTERNS = _compile(_ISSUE_TYPE_RULES)


def _first_match(text: str, rules: Sequence[Tuple[str, Tuple[re.Pattern[str], ...]]]) -> str | None:
    lowered = (text or "").lower()
    if not lowered.strip():
        return None
    for label, patterns in rules:
        if any(pattern.search(lowered) for pattern in patterns):
            return label
    return None


def infer_plant_part(symptoms: str) -> PlantPart:
    """Return the affected plant part mentioned in ``symptoms``.

    Leaf terms win over fruit, fruit over stem, stem over root. Text without
    any known keyword (including empty text) yields ``"unknown"``.
    """

    return _first_match(symptoms, _PLANT_PART_PATTERNS) or "unknown"  # type: ignore[return-value]


def infer_issue_type(text: str) -> IssueType:
    """Coarse insect/disease/nutrient/environmental classification."""

    return _first_match(text, _ISSUE_TYPE_PATTERNS) or "unknown"  # type: ignore[return-value]


__all__ = [
    "IssueType",
    "PLANT_PARTS",
    "PlantPart",
    "infer_issue_type",
    "infer_plant_part",
]
