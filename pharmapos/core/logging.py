"""Structured logging for the service.

Every record becomes one JSON object per line on stderr. Records emitted while
a request is being served also carry its ``request_id`` and, once the bearer
token has been resolved, the ``principal``. Callers attach structured fields
with ``extra={"extra_data": {...}}``; those keys are merged into the object.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Mapping

from ..middlewares import principal_ctx_var, request_id_ctx_var


def _request_context() -> dict[str, str]:
    context = {"request_id": request_id_ctx_var.get(), "principal": principal_ctx_var.get()}
    return {name: value for name, value in context.items() if value}


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_request_context(),
        }
        extra_data = getattr(record, "extra_data", None)
        if isinstance(extra_data, Mapping):
            payload.update(extra_data)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, separators=(",", ":"), default=str)


def configure_logging(level: str = "INFO") -> None:
    """Route the root logger through a single JSON handler at ``level``."""

    handler = logging.StreamHandler()
    handler.setFormatter(JsonLogFormatter())
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level.upper())
