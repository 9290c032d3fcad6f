"""Crop diagnosis endpoints."""

from __future__ import annotations

import logging
from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError, field_validator

from edufarma_api.services.diagnosis import DiagnosisService
from edufarma_api.services.diagnosis_result import DiagnosisParseError, DiagnosisResult
from edufarma_api.services.translator import Translator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["diagnosis"])


class DiagnoseReq(BaseModel):
    symptoms: str
    language: Literal["en", "hi"] = "en"

    @field_validator("symptoms", mode="before")
    @classmethod
    def _require_symptoms(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("symptoms must be a non-empty string")
        return value

    @field_validator("language", mode="before")
    @classmethod
    def _default_language(cls, value: Any) -> str:
        return "hi" if value == "hi" else "en"


class TranslateReq(BaseModel):
    diagnosis: DiagnosisResult
    target: Literal["en", "hi"] = "hi"


def get_diagnosis_service(request: Request) -> DiagnosisService:
    service: DiagnosisService | None = getattr(request.app.state, "diagnosis", None)
    if service is None:
        raise HTTPException(status_code=500, detail="Diagnosis service unavailable")
    return service


def get_translator(request: Request) -> Translator:
    translator: Translator | None = getattr(request.app.state, "translator", None)
    if translator is None:
        raise HTTPException(status_code=500, detail="Translator unavailable")
    return translator


@router.post("/diagnose", response_model=DiagnosisResult)
async def diagnose(
    request: Request,
    service: DiagnosisService = Depends(get_diagnosis_service),
) -> Any:
    try:
        body = await request.json()
        payload = DiagnoseReq.model_validate(body)
    except (ValueError, ValidationError):
        return JSONResponse(status_code=400, content={"message": "Symptoms text is required"})

    try:
        return await service.diagnose(payload.symptoms, payload.language)
    except DiagnosisParseError as exc:
        logger.exception("Diagnosis failed at final parse detail=%s", exc.detail["msg"])
        return JSONResponse(status_code=500, content={"message": "AI diagnosis failed"})


@router.post("/diagnose/translate", response_model=DiagnosisResult)
async def translate_diagnosis(
    payload: TranslateReq,
    translator: Translator = Depends(get_translator),
) -> DiagnosisResult:
    return await translator.translate_diagnosis(payload.diagnosis, payload.target)
