"""Central router registry."""
from __future__ import annotations

from fastapi import FastAPI

from teamshare.routers.admin import router as admin_router
from teamshare.routers.assignments import router as assignments_router
from teamshare.routers.auth import router as auth_router
from teamshare.routers.files import router as files_router
from teamshare.routers.health import router as health_router

ALL_ROUTERS = (
    auth_router,
    assignments_router,
    files_router,
    admin_router,
    health_router,
)


def include_all_routers(app: FastAPI) -> None:
    for router in ALL_ROUTERS:
        app.include_router(router)
