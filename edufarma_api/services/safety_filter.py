"""Policy gate between raw model output and the farmer.

Every rule is a literal lowercase substring with a category. The first rule
that matches (in table order) sends the request to the fallback template;
clean text only goes through a deterministic wording pass.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Tuple

from .fallback import fallback_text
from .fallback_meta import FallbackMeta
from .heuristics import infer_issue_type, infer_plant_part

logger = logging.getLogger(__name__)

__all__ = [
    "ALLOWLISTED_SUBSTANCES",
    "PolicyMode",
    "RuleCategory",
    "SAFETY_RULES",
    "SafetyFilter",
    "SafetyRule",
    "SafetyVerdict",
    "sanitize_text",
]


class RuleCategory(str, Enum):
    BANNED_SUBSTANCE = "banned_substance"
    PEST_SPECIES = "pest_species"
    FERTILIZER = "fertilizer"


class PolicyMode(str, Enum):
    DENYLIST = "denylist"
    ALLOWLIST = "allowlist"


@dataclass(frozen=True)
class SafetyRule:
    term: str
    category: RuleCategory
    # Also match with spaces, hyphens, underscores and zero-width marks removed
    # ("mono-crotophos").
    compact: bool = False


_BANNED_SUBSTANCES: Tuple[str, ...] = (
    "monocrotophos",
    "endosulfan",
    "phorate",
    "carbofuran",
    "methyl parathion",
    "parathion",
    "phosphamidon",
    "dichlorvos",
    "triazophos",
    "methomyl",
    "aldicarb",
    "paraquat",
    "heptachlor",
    "chlordane",
    "dieldrin",
    "aldrin",
    "lindane",
    "benzene hexachloride",
    "bhc",
    "ddt",
    "मोनोक्रोटोफॉस",
    "मोनोक्रोटोफास",
    "एंडोसल्फान",
    "एण्डोसल्फान",
    "फोरेट",
    "कार्बोफ्यूरान",
    "कार्बोफुरान",
    "मिथाइल पैराथियान",
    "पैराथियान",
    "डाइक्लोरवोस",
    "ट्राइजोफॉस",
    "पैराक्वाट",
    "लिंडेन",
    "डीडीटी",
    "बीएचसी",
)

_PEST_SPECIES: Tuple[str, ...] = (
    "helicoverpa",
    "spodoptera",
    "leucinodes",
    "earias",
    "pectinophora",
    "scirpophaga",
    "chilo partellus",
    "tuta absoluta",
    "bemisia",
    "liriomyza",
    "stem borer",
    "fruit borer",
    "shoot borer",
    "pod borer",
    "leaf miner",
    "bollworm",
    "armyworm",
    "तना छेदक",
    "फल छेदक",
    "प्ररोह छेदक",
    "फली छेदक",
    "पत्ती सुरंगक",
    "लीफ माइनर",
)

_FERTILIZER_TERMS: Tuple[str, ...] = (
    "urea",
    "dap",
    "npk",
    "g/l",
    "यूरिया",
    "डीएपी",
    "डी.ए.पी",
    "एनपीके",
    "ग्राम/लीटर",
)

SAFETY_RULES: Tuple[SafetyRule, ...] = (
    *(SafetyRule(term, RuleCategory.BANNED_SUBSTANCE, compact=len(term) >= 6) for term in _BANNED_SUBSTANCES),
    *(SafetyRule(term, RuleCategory.PEST_SPECIES) for term in _PEST_SPECIES),
    *(SafetyRule(term, RuleCategory.FERTILIZER) for term in _FERTILIZER_TERMS),
)

ALLOWLISTED_SUBSTANCES: Tuple[str, ...] = (
    "neem oil",
    "spinosad",
    "bacillus thuringiensis",
    "trichoderma",
    "beauveria bassiana",
    "pseudomonas fluorescens",
    "नीम का तेल",
    "नीम तेल",
    "स्पिनोसैड",
)

_UNICODE_ESCAPE_RE = re.compile(r"\\u([0-9a-f]{4})")
_INVISIBLE_RE = re.compile("[\u00ad\u200b-\u200d\u2060\ufeff]")
_SEPARATORS_RE = re.compile(r"[\s\-_]+")
_PESTICIDE_RE = re.compile(r"pesticides?", re.IGNORECASE)
_HINDI_PESTICIDE = "कीटनाशक"
_CANONICAL_NAMES: Tuple[Tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"neem\s+oil", re.IGNORECASE), "Neem oil"),
    (re.compile(r"spinosad", re.IGNORECASE), "Spinosad"),
)


@dataclass(frozen=True)
class SafetyVerdict:
    reason: Optional[str] = None
    term: Optional[str] = None

    @property
    def safe(self) -> bool:
        return self.reason is None


def _matching_view(raw_text: str | None) -> str:
    # JSON may carry Devanagari or zero-width marks as \uXXXX escapes.
    lowered = (raw_text or "").lower()
    lowered = _UNICODE_ESCAPE_RE.sub(lambda match: chr(int(match.group(1), 16)), lowered)
    return _INVISIBLE_RE.sub("", lowered)


def sanitize_text(text: str) -> str:
    """Replace "pesticide(s)" with "control measures" (Hindi "कीटनाशक" with "नियंत्रण उपाय") and fix safe-name casing."""

    cleaned = _PESTICIDE_RE.sub("control measures", text).replace(_HINDI_PESTICIDE, "नियंत्रण उपाय")
    for pattern, canonical in _CANONICAL_NAMES:
        cleaned = pattern.sub(canonical, cleaned)
    return cleaned


class SafetyFilter:
    def __init__(
        self,
        mode: PolicyMode | str = PolicyMode.DENYLIST,
        *,
        rules: Iterable[SafetyRule] = SAFETY_RULES,
        allowlist: Iterable[str] = ALLOWLISTED_SUBSTANCES,
    ) -> None:
        self.mode = PolicyMode(mode)
        self.rules: Tuple[SafetyRule, ...] = tuple(rules)
        self.allowlist: Tuple[str, ...] = tuple(term.lower() for term in allowlist)

    @classmethod
    def from_env(cls) -> "SafetyFilter":
        raw_mode = os.getenv("SAFETY_POLICY_MODE", PolicyMode.DENYLIST.value).strip().lower()
        try:
            mode = PolicyMode(raw_mode)
        except ValueError:
            logger.warning("Unknown SAFETY_POLICY_MODE=%s; falling back to %s", raw_mode, PolicyMode.DENYLIST.value)
            mode = PolicyMode.DENYLIST
        return cls(mode)

    def inspect(self, raw_text: str | None) -> SafetyVerdict:
        """Return the first policy violation in ``raw_text``, if any."""

        lowered = _matching_view(raw_text)
        if not lowered.strip():
            return SafetyVerdict(reason="empty_output")
        spaced = _SEPARATORS_RE.sub(" ", lowered)
        compact = _SEPARATORS_RE.sub("", lowered)
        for rule in self.rules:
            if rule.term in spaced:
                return SafetyVerdict(reason=rule.category.value, term=rule.term)
            if rule.compact and rule.term.replace(" ", "") in compact:
                return SafetyVerdict(reason=rule.category.value, term=rule.term)
        if self.mode is PolicyMode.ALLOWLIST and not any(term in spaced for term in self.allowlist):
            return SafetyVerdict(reason="allowlist_miss")
        return SafetyVerdict()

    def review(self, raw_text: str | None, original_symptoms: str) -> Tuple[str, FallbackMeta]:
        """Filter ``raw_text`` and report whether the fallback replaced it."""

        verdict = self.inspect(raw_text)
        if verdict.safe:
            return sanitize_text(raw_text or ""), FallbackMeta()

        part = infer_plant_part(original_symptoms)
        meta = FallbackMeta().mark_used(
            verdict.reason,  # type: ignore[arg-type]
            plant_part=part,
            issue_type=infer_issue_type(original_symptoms),
            matched_term=verdict.term,
        )
        logger.info(
            "Model output rejected by safety filter mode=%s reason=%s term=%s part=%s",
            self.mode.value,
            verdict.reason,
            verdict.term,
            part,
        )
        return fallback_text(part), meta

    def filter(self, raw_text: str | None, original_symptoms: str) -> str:
        text, _ = self.review(raw_text, original_symptoms)
        return text
