"""Top-level API router."""

from fastapi import APIRouter

from prodtrack.api.routes.auth import router as auth_router
from prodtrack.api.routes.dashboards import router as dashboards_router
from prodtrack.api.routes.entries import router as entries_router
from prodtrack.api.routes.exports import router as exports_router
from prodtrack.api.routes.health import router as health_router
from prodtrack.api.routes.imports import router as imports_router
from prodtrack.api.routes.me import router as me_router
from prodtrack.api.routes.reports import router as reports_router
from prodtrack.api.routes.structure import router as structure_router
from prodtrack.api.routes.team_members import router as team_members_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router)
api_router.include_router(me_router)
api_router.include_router(structure_router)
api_router.include_router(team_members_router)
api_router.include_router(entries_router)
api_router.include_router(dashboards_router)
api_router.include_router(reports_router)
api_router.include_router(exports_router)
api_router.include_router(imports_router)
