"""Axiom API 로깅 미들웨어.

Axiom API logging middleware.
Ships one structured event per request: endpoint, method, masked body,
status code, duration, and for failed requests the error detail plus the
domain error code (REPORT_002, AUTH_003, ...).
"""

import json
import logging
import re
import time
from typing import Any

from axiom_py import Client as AxiomClient
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.config import settings

logger = logging.getLogger("app.middleware.axiom")

# 마스킹 대상 필드 패턴 — Fields to mask in request bodies
_SENSITIVE_KEYS = re.compile(
    r"(password|secret|token|authorization|api_key|apikey|credential)",
    re.IGNORECASE,
)

# 로깅 제외 경로 — Paths excluded from logging
_SKIP_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}

_MAX_DETAIL = 500


def _mask(data: Any, depth: int = 0) -> Any:
    """민감 필드 재귀 마스킹 — Recursively mask sensitive fields."""
    if depth > 5:
        return "..."
    if isinstance(data, dict):
        return {k: "***" if _SENSITIVE_KEYS.search(k) else _mask(v, depth + 1) for k, v in data.items()}
    if isinstance(data, list):
        return [_mask(item, depth + 1) for item in data[:20]]
    if isinstance(data, str) and len(data) > 2000:
        return data[:2000] + "...(truncated)"
    return data


async def _read_json(request: Request) -> Any:
    body = await request.body()
    if not body:
        return None
    try:
        return _mask(json.loads(body))
    except (json.JSONDecodeError, UnicodeDecodeError):
        return "(non-json body)"


class AxiomLoggingMiddleware(BaseHTTPMiddleware):
    """모든 API 요청/응답을 Axiom에 로깅하는 미들웨어.

    Logs every API request and response to Axiom. Passes requests through
    untouched when AXIOM_API_TOKEN/AXIOM_DATASET are not configured.
    """

    def __init__(self, app: Any) -> None:
        super().__init__(app)
        self._client: AxiomClient | None = None
        self._dataset: str = settings.AXIOM_DATASET
        if settings.AXIOM_API_TOKEN and settings.AXIOM_DATASET:
            self._client = AxiomClient(token=settings.AXIOM_API_TOKEN)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if self._client is None or request.url.path in _SKIP_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        event: dict[str, Any] = {
            "service": settings.APP_NAME,
            "method": request.method,
            "path": request.url.path,
            "status_code": 500,
        }
        if request.query_params:
            event["query_params"] = _mask(dict(request.query_params))
        if request.method in ("POST", "PUT", "PATCH"):
            request_body = await _read_json(request)
            if request_body is not None:
                event["request_body"] = request_body

        try:
            response = await call_next(request)
            event["status_code"] = response.status_code
            if response.status_code >= 400:
                response = await self._capture_error(response, event)
        except Exception as exc:
            event["error"] = f"{type(exc).__name__}: {str(exc)[:300]}"
            raise
        finally:
            event["duration_ms"] = round((time.perf_counter() - started) * 1000, 2)
            self._ingest(event)
        return response

    async def _capture_error(self, response: Response, event: dict[str, Any]) -> Response:
        """오류 응답 body에서 detail/code 추출 후 응답 재구성.

        Pull ``detail`` and ``code`` out of an error response, then rebuild
        the response since its body iterator has been consumed.
        """
        body = b""
        async for chunk in response.body_iterator:
            body += chunk if isinstance(chunk, bytes) else chunk.encode("utf-8")
        try:
            payload = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            event["error"] = body.decode("utf-8", errors="replace")[:_MAX_DETAIL]
        else:
            if isinstance(payload, dict):
                event["error"] = str(payload.get("detail", payload))[:_MAX_DETAIL]
                if "code" in payload:
                    event["error_code"] = payload["code"]
            else:
                event["error"] = str(payload)[:_MAX_DETAIL]
        return Response(
            content=body,
            status_code=response.status_code,
            headers=dict(response.headers),
            media_type=response.media_type,
        )

    def _ingest(self, event: dict[str, Any]) -> None:
        # 로깅 실패는 요청 처리에 영향 없음 — log shipping failures never fail the request
        try:
            self._client.ingest_events(self._dataset, [event])
        except Exception:
            logger.warning("Axiom ingest failed for %s %s", event["method"], event["path"], exc_info=True)
