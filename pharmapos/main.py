"""Application factory and top-level wiring."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from . import __version__
from .core.config import settings
from .core.errors import register_exception_handlers
from .core.logging import configure_logging
from .db.session import Base, engine
from .middlewares import RequestIdMiddleware

# Importing the models registers their tables with the metadata.
from .models import kv as _kv  # noqa: F401
from .routers import (
    api_assistant,
    api_auth,
    api_dashboard,
    api_inventory,
    api_pos,
    api_transactions,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    yield


def create_app() -> FastAPI:
    configure_logging(settings.LOG_LEVEL)
    app = FastAPI(title=settings.APP_NAME, version=__version__, lifespan=lifespan)

    app.add_middleware(RequestIdMiddleware)
    if settings.ALLOWED_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.ALLOWED_ORIGINS,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    for module in (api_auth, api_inventory, api_transactions, api_pos, api_dashboard, api_assistant):
        app.include_router(module.router)
    register_exception_handlers(app)

    @app.get("/health", tags=["meta"])
    async def health() -> dict[str, bool]:
        return {"ok": True}

    Instrumentator().instrument(app).expose(app, include_in_schema=False)
    return app


app = create_app()
