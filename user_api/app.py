"""
FastAPI application entry point for the user management API.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from user_api.config import Settings, get_settings
from user_api.db import UserStore
from user_api.dependencies import StoreSelection, select_user_store
from user_api.errors import UserApiError
from user_api.routes import router

logger = logging.getLogger(__name__)


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(UserApiError)
    async def handle_user_api_error(request: Request, exc: UserApiError):
        if exc.status_code >= 500:
            logger.error(
                "%s %s failed: %s", request.method, request.url.path, exc.message
            )
        return _error_response(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(
        request: Request, exc: RequestValidationError
    ):
        logger.info(
            "Rejected body for %s %s: %s",
            request.method,
            request.url.path,
            exc.errors(),
        )
        return _error_response(400, "Invalid request body")

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        # Starlette logs the traceback when it re-raises after this handler.
        logger.error(
            "Unhandled %s on %s %s",
            type(exc).__name__,
            request.method,
            request.url.path,
        )
        return _error_response(500, "Internal server error")


def create_app(
    settings: Optional[Settings] = None, store: Optional[UserStore] = None
) -> FastAPI:
    """
    Build the app. When ``store`` is given it is used as-is; otherwise the
    backend is selected once on startup. The store is closed on shutdown.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "store_selection", None) is None:
            app.state.store_selection = select_user_store(settings)
        selection: StoreSelection = app.state.store_selection
        logger.info("User API ready: backend=%s", selection.store.backend_type)
        try:
            yield
        finally:
            logger.info("Shutting down, closing %s store", selection.store.backend_type)
            selection.store.close()

    app = FastAPI(
        title="User Management API", version=settings.app_version, lifespan=lifespan
    )
    app.state.settings = settings
    app.state.store_selection = StoreSelection(store) if store is not None else None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _install_error_handlers(app)
    app.include_router(router, prefix=settings.api_prefix)

    static_dir = Path(settings.static_dir)
    if static_dir.is_dir():
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="dashboard")
    else:
        logger.debug("Static directory %s not found, dashboard disabled", static_dir)
    return app


app = create_app()
