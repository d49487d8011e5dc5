from __future__ import annotations

import logging
import time
from contextvars import ContextVar
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
principal_ctx_var: ContextVar[str | None] = ContextVar("principal", default=None)
logger = logging.getLogger("pharmapos.request")

HEADER_NAME = "X-Request-ID"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag every request with a correlation id and log its outcome."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(HEADER_NAME) or uuid4().hex
        request_token = request_id_ctx_var.set(request_id)
        principal_token = principal_ctx_var.set(None)
        request.state.request_id = request_id
        started = time.perf_counter()
        try:
            response = await call_next(request)
            duration_ms = round((time.perf_counter() - started) * 1000, 2)
            details = {
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "duration_ms": duration_ms,
            }
            principal = getattr(request.state, "principal", None)
            if principal:
                details["principal"] = principal
            logger.info("request.completed", extra={"extra_data": details})
        finally:
            request_id_ctx_var.reset(request_token)
            principal_ctx_var.reset(principal_token)
        response.headers[HEADER_NAME] = request_id
        response.headers.setdefault("X-Response-Time", f"{duration_ms:.2f}ms")
        return response
