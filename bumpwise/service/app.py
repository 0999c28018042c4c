"""FastAPI application entrypoint for bumpwise service mode."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, Dict, Literal, Optional

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..config import EngineConfig, load_config, parse_strategy
from ..errors import BranchNotFoundError, BumpwiseError, EngineError, RepositoryNotFoundError
from ..orchestrator import DecisionEngine
from ..versioning import git_tag, increment, increment_prerelease, parse_version

_NOT_FOUND = (BranchNotFoundError, RepositoryNotFoundError)


class AnalyzeRequest(BaseModel):
    repo_path: str = "."
    head: str
    base: Optional[str] = None
    strategy: Optional[Literal["conventional", "ai", "hybrid"]] = None
    threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    current_version: Optional[str] = None
    config_path: Optional[str] = None


class AnalyzeResponse(BaseModel):
    analysis: Dict[str, Any]
    current_version: Optional[str] = None
    next_version: Optional[str] = None
    tag: Optional[str] = None


class NextVersionRequest(BaseModel):
    version: str
    bump: Literal["major", "minor", "patch", "none"]
    prerelease: Optional[str] = None
    tag_prefix: str = "v"


class NextVersionResponse(BaseModel):
    current: str
    next: str
    tag: str


class HealthResponse(BaseModel):
    status: str


def _default_engine() -> DecisionEngine:
    return DecisionEngine()


def create_app(
    engine_factory: Callable[[], DecisionEngine] = _default_engine,
    config_loader: Callable[[Path], EngineConfig] = load_config,
) -> FastAPI:
    """Create the FastAPI application exposing bumpwise operations."""

    app = FastAPI(title="Bumpwise Service", version="1.0.0")

    async def get_engine() -> DecisionEngine:
        return engine_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/analyze", response_model=AnalyzeResponse)
    async def analyze(
        payload: AnalyzeRequest,
        engine: DecisionEngine = Depends(get_engine),
    ) -> AnalyzeResponse:
        config = _config_for(payload, config_loader)
        if payload.current_version or config.current_version:
            decision = await engine.decide(config, payload.current_version)
            return AnalyzeResponse(
                analysis=decision.analysis.to_dict(),
                current_version=str(decision.current),
                next_version=str(decision.next),
                tag=decision.tag,
            )
        result = await engine.run(config)
        return AnalyzeResponse(analysis=result.to_dict())

    @app.post("/version/next", response_model=NextVersionResponse)
    async def next_version(payload: NextVersionRequest) -> NextVersionResponse:
        current = parse_version(payload.version)
        if payload.prerelease:
            upcoming = increment_prerelease(current, payload.prerelease)
        else:
            upcoming = increment(current, payload.bump)
        return NextVersionResponse(
            current=str(current),
            next=str(upcoming),
            tag=git_tag(upcoming, payload.tag_prefix),
        )

    @app.exception_handler(EngineError)
    async def engine_error_handler(_: Any, exc: EngineError) -> JSONResponse:
        status = 404 if isinstance(exc.__cause__, _NOT_FOUND) else 400
        return JSONResponse(
            status_code=status,
            content={"detail": str(exc), "code": exc.code, "context": exc.context},
        )

    @app.exception_handler(BumpwiseError)
    async def bumpwise_error_handler(_: Any, exc: BumpwiseError) -> JSONResponse:
        status = 404 if isinstance(exc, _NOT_FOUND) else 400
        return JSONResponse(status_code=status, content={"detail": str(exc)})

    return app


def _config_for(payload: AnalyzeRequest, loader: Callable[[Path], EngineConfig]) -> EngineConfig:
    repo_path = Path(payload.repo_path).expanduser()
    config = loader(Path(payload.config_path) if payload.config_path else repo_path)
    updates: Dict[str, Any] = {"feature_branch": payload.head, "repo_path": repo_path}
    if payload.base:
        updates["main_branch"] = payload.base
    if payload.strategy:
        updates["strategy"] = parse_strategy(payload.strategy)
    if payload.threshold is not None:
        updates["ai"] = replace(config.ai, confidence_threshold=payload.threshold)
    return replace(config, **updates)


def run_service(host: str = "127.0.0.1", port: int = 8000) -> None:  # pragma: no cover - integration path
    uvicorn.run(create_app(), host=host, port=port)
