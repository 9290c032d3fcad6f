import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from dotenv import load_dotenv
from fastapi import FastAPI

from edufarma_api import __version__
from edufarma_api.routers import diagnose, health
from edufarma_api.services.diagnosis import DiagnosisService
from edufarma_api.services.llm_runner import LLMRunner
from edufarma_api.services.translator import Translator

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Create shared service instances during startup and close their HTTP
    clients on shutdown. Routers reach them through ``app.state``.
    """
    load_dotenv()
    llm_runner = LLMRunner.from_env()
    translator = Translator.from_env()

    app.state.llm = llm_runner
    app.state.diagnosis = DiagnosisService.from_env(llm_runner)
    app.state.translator = translator

    try:
        yield
    finally:
        await llm_runner.aclose()
        await translator.aclose()


app = FastAPI(
    title="EduFarma Crop Diagnosis API",
    version=__version__,
    lifespan=lifespan,
)


# Router registration -------------------------------------------------------
app.include_router(health.router)
app.include_router(diagnose.router, prefix="/api")
