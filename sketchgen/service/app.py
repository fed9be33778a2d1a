"""FastAPI application entrypoint for sketchgen service mode."""

from __future__ import annotations

import asyncio
import base64
import binascii
from importlib import resources
from typing import Any, Callable, Dict, Optional, TypeVar

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..logging import get_logger
from ..pipeline import Pipeline

EXAMPLE_SKETCH = "p5.example.js"

logger = get_logger("service")

T = TypeVar("T")


class AnalyzeRequest(BaseModel):
    code: str


class EncodedSketchRequest(BaseModel):
    code: str


class GenerateRequest(BaseModel):
    code: str
    contract_name: Optional[str] = None


class PreviewResponse(BaseModel):
    code: str
    warning: str


class ContractResponse(BaseModel):
    analysis: Dict[str, Any]
    contract: str


class ExampleResponse(BaseModel):
    code: str


class HealthResponse(BaseModel):
    status: str


def _default_pipeline() -> Pipeline:
    return Pipeline()


def decode_sketch(encoded: str) -> str:
    """Decode a base64 payload into sketch source."""
    if not encoded:
        raise ValueError("Missing required field: code")
    try:
        return base64.b64decode(encoded, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise ValueError(f"code is not valid base64 UTF-8 text: {exc}") from exc


def load_example_sketch() -> str:
    return (
        resources.files("sketchgen")
        .joinpath("examples", EXAMPLE_SKETCH)
        .read_text(encoding="utf-8")
    )


async def _run_blocking(func: Callable[[], T]) -> T:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, func)


def create_app(
    pipeline_factory: Callable[[], Pipeline] = _default_pipeline,
) -> FastAPI:
    """Create the FastAPI application exposing sketchgen operations."""

    app = FastAPI(title="SketchGen Service", version="1.0.0")

    async def get_pipeline() -> Pipeline:
        return pipeline_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/api/analyze")
    async def analyze_sketch(
        payload: AnalyzeRequest,
        pipeline: Pipeline = Depends(get_pipeline),
    ) -> Dict[str, Any]:
        if not payload.code:
            raise ValueError("Missing required field: code")
        analysis = await _run_blocking(lambda: pipeline.analyze(payload.code))
        return analysis.to_dict()

    @app.post("/api/preview", response_model=PreviewResponse)
    async def preview_sketch(
        payload: EncodedSketchRequest,
        pipeline: Pipeline = Depends(get_pipeline),
    ) -> PreviewResponse:
        source = decode_sketch(payload.code)
        outcome = await _run_blocking(lambda: pipeline.preview(source))
        encoded = base64.b64encode(outcome.code.encode("utf-8")).decode("ascii")
        return PreviewResponse(code=encoded, warning=outcome.warning)

    @app.post("/api/contract", response_model=ContractResponse)
    async def generate_contract(
        payload: GenerateRequest,
        pipeline: Pipeline = Depends(get_pipeline),
    ) -> ContractResponse:
        source = decode_sketch(payload.code)
        outcome = await _run_blocking(
            lambda: pipeline.generate(source, contract_name=payload.contract_name)
        )
        return ContractResponse(analysis=outcome.analysis.to_dict(), contract=outcome.contract)

    @app.get("/api/editor/example", response_model=ExampleResponse)
    async def editor_example() -> ExampleResponse:
        return ExampleResponse(code=load_example_sketch())

    @app.exception_handler(ValueError)
    async def value_error_handler(_: Any, exc: ValueError) -> JSONResponse:
        logger.warning("Rejected request: %s", exc)
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(RuntimeError)
    async def runtime_error_handler(_: Any, exc: RuntimeError) -> JSONResponse:
        logger.error("Request failed: %s", exc)
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(
    host: str = "0.0.0.0", port: int = 8000
) -> None:  # pragma: no cover - integration path
    app = create_app()
    uvicorn.run(app, host=host, port=port)


__all__ = ["create_app", "decode_sketch", "load_example_sketch", "run_service"]
