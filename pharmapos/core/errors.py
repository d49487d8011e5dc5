"""Uniform JSON error responses.

Every failure leaves the API as ``{"code", "message", "details"}``. Domain
errors raised by the stock engine, the document store and the assistant
client are mapped to HTTP statuses here, so routers can let them propagate.
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..crud.kv_store import ConcurrentUpdate
from ..services.advisor import AdvisorNotConfigured, AdvisorUnavailable
from ..services.stock import EmptyCart, InsufficientStock, ItemNotFound


class ErrorEnvelope(JSONResponse):
    """JSON response carrying a machine-readable ``code`` and optional ``details``."""

    def __init__(
        self,
        *,
        status_code: int,
        code: str,
        message: str,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"code": code, "message": message}
        if details is not None:
            payload["details"] = details
        super().__init__(payload, status_code=status_code, headers=headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    message = detail if isinstance(detail, str) else "Error"
    details = detail if isinstance(detail, dict) else None
    return ErrorEnvelope(
        status_code=exc.status_code,
        code="http_error",
        message=message,
        details=details,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return ErrorEnvelope(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        code="validation_error",
        message="Validation failed",
        details={"errors": jsonable_encoder(exc.errors())},
    )


async def item_not_found_handler(request: Request, exc: ItemNotFound):
    return ErrorEnvelope(
        status_code=status.HTTP_404_NOT_FOUND,
        code="item_not_found",
        message=str(exc),
        details={"item_id": exc.item_id},
    )


async def insufficient_stock_handler(request: Request, exc: InsufficientStock):
    return ErrorEnvelope(
        status_code=status.HTTP_409_CONFLICT,
        code="insufficient_stock",
        message=str(exc),
        details={
            "item_id": exc.item_id,
            "item_name": exc.item_name,
            "requested": exc.requested,
            "available": exc.available,
            "shortfall": exc.shortfall,
        },
    )


async def empty_cart_handler(request: Request, exc: EmptyCart):
    return ErrorEnvelope(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, code="empty_cart", message=str(exc))


async def concurrent_update_handler(request: Request, exc: ConcurrentUpdate):
    return ErrorEnvelope(
        status_code=status.HTTP_409_CONFLICT,
        code="concurrent_update",
        message=str(exc),
        details={"keys": exc.keys},
    )


async def advisor_not_configured_handler(request: Request, exc: AdvisorNotConfigured):
    return ErrorEnvelope(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        code="assistant_not_configured",
        message=str(exc),
    )


async def advisor_unavailable_handler(request: Request, exc: AdvisorUnavailable):
    return ErrorEnvelope(status_code=status.HTTP_502_BAD_GATEWAY, code="assistant_unavailable", message=str(exc))


def register_exception_handlers(app: FastAPI) -> None:
    """Install every handler in this module on ``app``."""

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ItemNotFound, item_not_found_handler)
    app.add_exception_handler(InsufficientStock, insufficient_stock_handler)
    app.add_exception_handler(EmptyCart, empty_cart_handler)
    app.add_exception_handler(ConcurrentUpdate, concurrent_update_handler)
    app.add_exception_handler(AdvisorNotConfigured, advisor_not_configured_handler)
    app.add_exception_handler(AdvisorUnavailable, advisor_unavailable_handler)
