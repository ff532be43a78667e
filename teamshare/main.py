from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from teamshare.core.exceptions import StorageUnavailable, TeamShareError
from teamshare.core.logging import RequestLoggingMiddleware, configure_logging
from teamshare.core.observability import PrometheusMiddleware, metrics_endpoint
from teamshare.core.settings import Settings, get_settings
from teamshare.core.step_up import STEP_UP_HEADER
from teamshare.routers import include_all_routers
from teamshare.services.uploads import ContentStore
from teamshare.storage import RecordStore, create_record_store, seed_default_assignments

logger = logging.getLogger(__name__)


def _check_production_settings(settings: Settings) -> None:
    if any(origin.strip() == "*" for origin in settings.allow_origins):
        raise RuntimeError("ALLOW_ORIGINS cannot include '*' in production")
    if settings.jwt_secret.startswith("change_me"):
        raise RuntimeError("JWT_SECRET must be set in production")


async def _team_share_error_handler(request: Request, exc: TeamShareError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


async def _operational_error_handler(request: Request, exc: OperationalError) -> JSONResponse:
    logger.error("Record store unavailable while serving %s: %s", request.url.path, exc)
    error = StorageUnavailable()
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


def create_app(settings: Optional[Settings] = None, store: Optional[RecordStore] = None) -> FastAPI:
    """Build the API. A ``store`` passed in is used as-is and is not seeded."""
    settings = settings or get_settings()
    configure_logging(level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_store = getattr(app.state, "store", None) is None
        if owns_store:
            app.state.store = create_record_store(settings)
            loop = asyncio.get_running_loop()
            app.state.seed_task = loop.run_in_executor(
                None,
                seed_default_assignments,
                app.state.store,
                settings.default_assignments,
            )
        try:
            yield
        finally:
            if owns_store:
                # Executor jobs cannot be cancelled once running.
                await asyncio.wait([app.state.seed_task])
                app.state.store.close()

    app = FastAPI(title=settings.project_name, version=settings.project_version, lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.content = ContentStore(settings.ensure_uploads_dir())

    # Always allow localhost during development.
    allow_origin_regex = None
    if settings.is_production:
        _check_production_settings(settings)
    else:
        allow_origin_regex = r"^http://(localhost|127\.0\.0\.1)(:\d+)?$"

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allow_origins,
        allow_origin_regex=allow_origin_regex,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-Id", "Accept", STEP_UP_HEADER],
    )
    app.add_middleware(PrometheusMiddleware)
    app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(TeamShareError, _team_share_error_handler)
    app.add_exception_handler(OperationalError, _operational_error_handler)

    app.add_api_route("/metrics", metrics_endpoint, methods=["GET"], tags=["observability"], include_in_schema=False)
    include_all_routers(app)
    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run("teamshare.main:app", host="0.0.0.0", port=8000)
