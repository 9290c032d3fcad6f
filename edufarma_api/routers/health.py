"""Service health probes aggregated under /health."""

from __future__ import annotations

import os
from typing import Any, Dict

from fastapi import APIRouter, Request

from edufarma_api import __version__

router = APIRouter(tags=["health"])


def _app_version() -> str:
    return os.getenv("APP_VERSION") or os.getenv("GIT_SHA") or __version__


async def _llm_ok(request: Request) -> bool:
    runner = getattr(request.app.state, "llm", None)
    if runner is None:
        return False
    try:
        return bool(await runner.health())
    except Exception:
        return False


@router.get("/health", name="health_root")
async def health_root(request: Request) -> Dict[str, Any]:
    llm_ok = await _llm_ok(request)
    # The diagnosis endpoint still answers with fallbacks when the model is down.
    return {
        "ok": True,
        "version": _app_version(),
        "details": {"llm": llm_ok},
    }


@router.get("/health/llm", name="health_llm")
async def health_llm(request: Request) -> Dict[str, bool]:
    return {"ok": await _llm_ok(request)}


__all__ = ["router"]
