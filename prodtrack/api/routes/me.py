"""Current request context endpoint."""

from fastapi import APIRouter, Depends

from prodtrack.core.auth import RequestUserContext, get_current_user_context

router = APIRouter(prefix="/me", tags=["me"])


@router.get("")
def get_me(context: RequestUserContext = Depends(get_current_user_context)) -> dict[str, object]:
    """Return the resolved submitter name and role."""

    return {
        "display_name": context.display_name,
        "role": context.role.value,
        "is_admin": context.is_admin,
    }
