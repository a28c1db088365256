from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pythonjsonlogger import jsonlogger

from .config import Settings
from .registry import load_registry
from .routers import auth as auth_router
from .routers import websockets as ws_router
from .table import Table

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    root = logging.getLogger()
    handler = logging.StreamHandler()
    if settings.log_json:
        handler.setFormatter(jsonlogger.JsonFormatter(
            '%(asctime)s %(levelname)s %(name)s %(funcName)s %(lineno)d %(message)s'
        ))
    else:
        handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s [%(name)s] %(message)s'))
    if root.hasHandlers():
        root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(settings.log_level)


# Custom StaticFiles variant that disables caching for the client assets.
class NoCacheStaticFiles(StaticFiles):
    async def get_response(self, path: str, scope):  # type: ignore[override]
        response = await super().get_response(path, scope)
        response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
        response.headers["Pragma"] = "no-cache"
        response.headers["Expires"] = "0"
        return response


def create_app(settings: Optional[Settings] = None, table: Optional[Table] = None) -> FastAPI:
    """Build the application around a single table.

    *table* may be supplied pre-built (tests); otherwise the registry is
    loaded from ``settings.users_file``.
    """
    settings = settings or Settings.from_env()
    if table is None:
        table = Table(load_registry(settings.users_file), spin_guard_seconds=settings.spin_guard_seconds)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        app.state.table.close()

    app = FastAPI(title="Roulette Table", lifespan=lifespan)
    app.state.settings = settings
    app.state.table = table

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # The only HTTP body is the code check; any malformed request is a plain "no".
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"ok": False})

    app.include_router(auth_router.router)
    app.include_router(ws_router.router)

    # Mount the browser client at root path, if present.
    static_dir = Path(settings.static_dir)
    if static_dir.is_dir():
        app.mount("/", NoCacheStaticFiles(directory=static_dir, html=True), name="client")
    else:
        logger.info("Static directory %s not found; serving API only", static_dir)

    return app


__all__ = ["configure_logging", "create_app", "NoCacheStaticFiles"]
