from __future__ import annotations

from fastapi.testclient import TestClient

from prodtrack.core.auth import (
    AppRole,
    RequestUserContext,
    get_current_user_context,
    has_role,
    verify_admin_password,
)
from prodtrack.core.config import get_settings


def _admin_headers() -> dict[str, str]:
    return {"X-Admin-Password": get_settings().admin_password}


def test_has_role_matches_expected_roles() -> None:
    context = RequestUserContext(display_name="Team Lead", role=AppRole.TEAM_LEAD)

    assert has_role(context, {AppRole.TEAM_LEAD}) is True
    assert has_role(context, {AppRole.ADMIN}) is False
    assert context.is_admin is False


def test_verify_admin_password() -> None:
    assert verify_admin_password(get_settings().admin_password) is True
    assert verify_admin_password("definitely-wrong") is False
    assert verify_admin_password("") is False
    assert verify_admin_password(None) is False


def test_context_defaults_to_team_lead() -> None:
    context = get_current_user_context(x_admin_password=None, x_submitted_by="  ")

    assert context.role is AppRole.TEAM_LEAD
    assert context.display_name == get_settings().default_submitted_by


def test_context_with_admin_password() -> None:
    context = get_current_user_context(
        x_admin_password=get_settings().admin_password,
        x_submitted_by="Dana",
    )

    assert context.is_admin is True
    assert context.display_name == "Dana"


def test_me_reports_resolved_role(client: TestClient) -> None:
    team_lead = client.get("/api/v1/me", headers={"X-Submitted-By": "Line 3 Lead"})
    assert team_lead.status_code == 200
    assert team_lead.json() == {"display_name": "Line 3 Lead", "role": "team_lead", "is_admin": False}

    admin = client.get("/api/v1/me", headers=_admin_headers())
    assert admin.status_code == 200
    assert admin.json()["role"] == "admin"


def test_admin_login(client: TestClient) -> None:
    accepted = client.post("/api/v1/auth/admin-login", json={"password": get_settings().admin_password})
    assert accepted.status_code == 200
    assert accepted.json() == {"authenticated": True}

    rejected = client.post("/api/v1/auth/admin-login", json={"password": "nope"})
    assert rejected.status_code == 401


def test_admin_routes_reject_team_leads(client: TestClient) -> None:
    for path in (
        "/api/v1/categories",
        "/api/v1/team-members",
        "/api/v1/entries",
        "/api/v1/dashboards/analytics",
        "/api/v1/reports/years",
    ):
        response = client.get(path)
        assert response.status_code == 403, path

    wrong_password = client.get("/api/v1/categories", headers={"X-Admin-Password": "nope"})
    assert wrong_password.status_code == 403


def test_team_lead_routes_are_open(client: TestClient) -> None:
    structure = client.get("/api/v1/structure")
    assert structure.status_code == 200
    assert structure.json() == {"categories": [], "sub_categories": [], "tasks": [], "team_members": []}

    targets = client.get("/api/v1/dashboards/current-week-targets")
    assert targets.status_code == 200
    assert targets.json() == {"items": []}
