"""FastAPI application entrypoint for repodoc service mode."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..config import ConfigError, ScanRule
from ..deadline import DeadlineExceeded
from ..orchestrator import Orchestrator, PipelineResult
from ..repo_scanner import ScanError
from ..writer import MarkdownWriter


class RuleModel(BaseModel):
    pattern: str
    effect: str = "exclude"


class GenerateRequest(BaseModel):
    path: str
    rules: List[RuleModel] = Field(default_factory=list)
    max_abstractions: Optional[int] = None
    auto_repair: Optional[bool] = None
    deadline: Optional[float] = None
    output: Optional[str] = None


class FindingModel(BaseModel):
    kind: str
    stage: str
    subject: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class GenerateResponse(BaseModel):
    status: str
    pages: List[str]
    abstractions: List[str]
    findings: List[FindingModel]
    written: List[str] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str


def _default_orchestrator() -> Orchestrator:
    return Orchestrator()


def _response(result: PipelineResult, written: List[str]) -> GenerateResponse:
    return GenerateResponse(
        status=result.status,
        pages=result.pages(),
        abstractions=result.graph.ids,
        findings=[FindingModel(**finding.to_dict()) for finding in result.findings],
        written=written,
    )


def create_app(
    orchestrator_factory: Callable[[], Orchestrator] = _default_orchestrator,
    writer_factory: Callable[[], MarkdownWriter] = MarkdownWriter,
) -> FastAPI:
    """Create the FastAPI application exposing repodoc operations."""

    app = FastAPI(title="RepoDoc Service", version="0.1.0")

    async def get_orchestrator() -> Orchestrator:
        # Fresh orchestrator per request so configuration is re-read.
        return orchestrator_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/generate", response_model=GenerateResponse)
    async def generate(
        payload: GenerateRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> GenerateResponse:
        def _run() -> GenerateResponse:
            try:
                rules = [ScanRule(pattern=rule.pattern, effect=rule.effect) for rule in payload.rules]
            except ValueError as exc:
                raise ConfigError(str(exc)) from exc
            result = orchestrator.run(
                payload.path,
                rules=rules,
                deadline_seconds=payload.deadline,
                max_abstractions=payload.max_abstractions,
                auto_repair=payload.auto_repair,
            )
            written: List[str] = []
            if payload.output:
                written = [str(path) for path in writer_factory().write(result, payload.output)]
            return _response(result, written)

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, _run)

    @app.exception_handler(ScanError)
    async def scan_error_handler(_: Any, exc: ScanError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ConfigError)
    async def config_error_handler(_: Any, exc: ConfigError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(DeadlineExceeded)
    async def deadline_handler(_: Any, exc: DeadlineExceeded) -> JSONResponse:
        return JSONResponse(
            status_code=504,
            content={
                "detail": str(exc),
                "stage": exc.stage,
                "findings": [finding.to_dict() for finding in exc.findings],
            },
        )

    return app


def run_service(host: str = "127.0.0.1", port: int = 8000) -> None:  # pragma: no cover - integration path
    app = create_app()
    uvicorn.run(app, host=host, port=port)


__all__ = ["GenerateRequest", "GenerateResponse", "create_app", "run_service"]
