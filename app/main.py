"""FastAPI 애플리케이션 엔트리포인트 — 컴포지션 루트.

FastAPI application entry point and composition root.
Configures logging, CORS, request logging, domain error rendering, the
health check, and owns the compliance scheduler lifecycle.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from app.config import settings
from app.database import async_session
from app.middleware.axiom_logging import AxiomLoggingMiddleware
from app.worker.scheduler import ComplianceScheduler, build_compliance_jobs

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """스케줄러 생성/시작/중지 — Build, start and stop the compliance scheduler."""
    scheduler = ComplianceScheduler(build_compliance_jobs(async_session))
    app.state.scheduler = scheduler
    if settings.ENABLE_SCHEDULER:
        scheduler.start()
    try:
        yield
    finally:
        scheduler.stop()


app: FastAPI = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Axiom API 로깅 미들웨어 — Axiom API request/response logging
# CORS보다 먼저 등록하여 모든 요청을 캡처 (Registered before CORS to capture all requests)
app.add_middleware(AxiomLoggingMiddleware)

# CORS 미들웨어 — Cross-Origin Resource Sharing middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(HTTPException)
async def domain_error_handler(request: Request, exc: HTTPException) -> Response:
    """도메인 오류에 code/reason/retryable 추가 — Add machine-readable fields to domain errors."""
    code: str | None = getattr(exc, "code", None)
    if code is None:
        return await http_exception_handler(request, exc)
    body: dict[str, object] = {"detail": exc.detail, "code": code}
    if hasattr(exc, "reason"):
        body["reason"] = exc.reason
    if getattr(exc, "retryable", False):
        body["retryable"] = True
    return JSONResponse(body, status_code=exc.status_code, headers=exc.headers)


@app.get("/health")
async def health_check(request: Request) -> dict[str, object]:
    """서버 상태 확인 엔드포인트.

    Health check endpoint for load balancers and monitoring, including the
    compliance scheduler state.
    """
    scheduler: ComplianceScheduler | None = getattr(request.app.state, "scheduler", None)
    return {
        "status": "ok",
        "scheduler": scheduler.status() if scheduler is not None else {"running": False, "jobs": {}},
    }
