"""Admin gate endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from prodtrack.core.auth import verify_admin_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


class AdminLoginPayload(BaseModel):
    password: str = Field(min_length=1, max_length=255)


@router.post("/admin-login")
def admin_login(payload: AdminLoginPayload) -> dict[str, bool]:
    """Check the shared admin password before the client stores it."""

    if not verify_admin_password(payload.password):
        logger.warning("Rejected admin login attempt")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect admin password.")
    return {"authenticated": True}
