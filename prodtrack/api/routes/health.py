"""Health check endpoints."""

from fastapi import APIRouter

from prodtrack.core.config import get_settings

router = APIRouter()


@router.get("/health")
def health() -> dict[str, str]:
    """Simple liveness endpoint."""

    return {"status": "ok", "environment": get_settings().app_env}
