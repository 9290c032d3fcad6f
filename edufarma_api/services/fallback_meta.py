"""Typed record of why a diagnosis request ended on the fallback template."""

from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict

__all__ = ["FallbackMeta", "FallbackReason"]

FallbackReason = Literal[
    "upstream_error",
    "empty_output",
    "banned_substance",
    "pest_species",
    "fertilizer",
    "allowlist_miss",
]


class FallbackMeta(BaseModel):
    model_config = ConfigDict(frozen=True)

    used: bool = False
    reason: Optional[FallbackReason] = None
    matched_term: Optional[str] = None
    plant_part: Optional[str] = None
    issue_type: Optional[str] = None

    def mark_used(
        self,
        reason: FallbackReason,
        *,
        plant_part: str,
        issue_type: Optional[str] = None,
        matched_term: Optional[str] = None,
    ) -> "FallbackMeta":
        payload: Dict[str, Any] = {"used": True, "reason": reason, "plant_part": plant_part}
        if issue_type is not None:
            payload["issue_type"] = issue_type
        if matched_term is not None:
            payload["matched_term"] = matched_term
        return self.model_copy(update=payload)

    def log_fields(self) -> Dict[str, Any]:
        return {key: value for key, value in self.model_dump().items() if value is not None}
