from __future__ import annotations

import logging
import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from backend.clock import Clock, get_clock
from backend.errors import DashboardError, StoreError, ValidationError
from backend.routes import assistant, bills, bootstrap, notifications, subscriptions, uploads
from backend.store import EntityStore, SqlEntityStore


def create_app(store: EntityStore | None = None, clock: Clock | None = None) -> FastAPI:
    logging.basicConfig(
        level=os.getenv("BACKEND_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    app = FastAPI(title="Life Dashboard Bills API", version="0.1.0")
    app.state.store = store or SqlEntityStore()
    app.state.clock = clock or get_clock()

    app.include_router(bootstrap.router)
    app.include_router(bills.router)
    app.include_router(subscriptions.router)
    app.include_router(notifications.router)
    app.include_router(assistant.router)
    app.include_router(uploads.router)

    @app.on_event("startup")
    async def _startup():
        await app.state.store.init()

    @app.exception_handler(DashboardError)
    async def _dashboard_error_handler(request: Request, exc: DashboardError):
        if isinstance(exc, StoreError):
            logging.getLogger("backend").error("Store error on %s: %s", request.url.path, exc.message)
        content = {"detail": exc.message}
        if isinstance(exc, ValidationError) and exc.field:
            content["field"] = exc.field
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):
        logging.getLogger("backend").exception("Unhandled exception: %s", exc)
        return JSONResponse(status_code=500, content={"detail": "Internal error"})

    @app.get("/health")
    async def health():
        return {"ok": True}

    return app


app = create_app()
