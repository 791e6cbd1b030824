"""Request context extraction and role guard utilities.

The admin gate compares a shared password header against configuration. It
separates team-lead screens from administration; it is not a security
boundary.
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from enum import Enum

from fastapi import Depends, Header, HTTPException, status

from prodtrack.core.config import get_settings

logger = logging.getLogger(__name__)


class AppRole(str, Enum):
    """Application role names."""

    ADMIN = "admin"
    TEAM_LEAD = "team_lead"


@dataclass(frozen=True)
class RequestUserContext:
    """Request actor resolved from headers."""

    display_name: str
    role: AppRole

    @property
    def is_admin(self) -> bool:
        """Whether the request passed the admin gate."""

        return self.role is AppRole.ADMIN


def verify_admin_password(candidate: str | None) -> bool:
    """Check a candidate against the configured shared admin password."""

    if not candidate:
        return False
    expected = get_settings().admin_password
    return hmac.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))


def get_current_user_context(
    x_admin_password: str | None = Header(default=None, alias="X-Admin-Password"),
    x_submitted_by: str | None = Header(default=None, alias="X-Submitted-By"),
) -> RequestUserContext:
    """Resolve the request role and submitter name.

    A wrong admin password is not an error here; the request simply proceeds
    as a team lead and admin-only routes reject it.
    """

    settings = get_settings()
    display_name = (x_submitted_by or "").strip() or settings.default_submitted_by
    role = AppRole.ADMIN if verify_admin_password(x_admin_password) else AppRole.TEAM_LEAD
    return RequestUserContext(display_name=display_name, role=role)


def has_role(context: RequestUserContext, allowed_roles: set[AppRole]) -> bool:
    """Check whether the request role is one of the allowed roles."""

    return context.role in allowed_roles


def require_roles(*roles: AppRole):
    """Dependency factory requiring at least one provided role."""

    allowed = set(roles)

    def dependency(context: RequestUserContext = Depends(get_current_user_context)) -> RequestUserContext:
        if not has_role(context, allowed):
            logger.warning("Rejected %s request to %s-only operation", context.role.value, "/".join(sorted(allowed)))
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient role permissions for this operation.",
            )
        return context

    return dependency


require_admin = require_roles(AppRole.ADMIN)
require_any_role = require_roles(AppRole.ADMIN, AppRole.TEAM_LEAD)
