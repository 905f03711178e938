"""Seeded studio for API tests: two operational users, a five-step workflow,
a task model over all steps, one client and one task at step 1."""

from datetime import UTC, datetime, timedelta
from types import SimpleNamespace

import pytest

from app.infrastructure.security.jwt import create_user_token

CLIENT_PASSWORD = "portal-pass"

STEPS = [
    {"name": "Briefing"},
    {"name": "Design", "color": "#8B5CF6"},
    {"name": "Internal review"},
    {
        "name": "Client approval",
        "color": "#10B981",
        "settings": {"is_client_approval_step": True, "allow_client_access": True},
    },
    {"name": "Publish"},
]


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def _create_user(client, admin_headers, name: str) -> dict:
    response = await client.post(
        "/api/v1/users",
        headers=admin_headers,
        json={
            "name": name.title(),
            "email": f"{name}@example.com",
            "password": f"{name}-password",
            "position": name.title(),
        },
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
async def studio(client, admin_headers) -> SimpleNamespace:
    designer = await _create_user(client, admin_headers, "designer")
    reviewer = await _create_user(client, admin_headers, "reviewer")

    response = await client.post(
        "/api/v1/workflows",
        headers=admin_headers,
        json={"name": "Creative production", "steps": STEPS, "is_default": True},
    )
    assert response.status_code == 201, response.text
    workflow = response.json()
    step_ids = [s["id"] for s in workflow["steps"]]

    response = await client.post(
        "/api/v1/task-models",
        headers=admin_headers,
        json={
            "name": "Social post",
            "workflow_id": workflow["id"],
            "step_ids": step_ids,
            "default_assignees": {
                step_ids[0]: designer["id"],
                step_ids[1]: designer["id"],
                step_ids[2]: reviewer["id"],
                step_ids[4]: designer["id"],
            },
            "settings": {"default_priority": "high", "estimated_hours": 3},
        },
    )
    assert response.status_code == 201, response.text
    model = response.json()

    response = await client.post(
        "/api/v1/clients",
        headers=admin_headers,
        json={
            "company_name": "Acme Corp",
            "responsible_name": "Jo Acme",
            "responsible_email": "jo@acme.example.com",
            "phone": "555-0100",
            "access_password": CLIENT_PASSWORD,
        },
    )
    assert response.status_code == 201, response.text
    acme = response.json()

    response = await client.post(
        "/api/v1/tasks",
        headers=admin_headers,
        json={
            "title": "Spring launch post",
            "briefing": "Square post announcing the spring launch.",
            "client_id": acme["id"],
            "task_model_id": model["id"],
            "due_date": (datetime.now(UTC) + timedelta(days=3)).isoformat(),
            "tags": ["instagram"],
        },
    )
    assert response.status_code == 201, response.text
    task = response.json()

    return SimpleNamespace(
        admin=admin_headers,
        designer=bearer(create_user_token(designer["id"], "operational")),
        reviewer=bearer(create_user_token(reviewer["id"], "operational")),
        designer_id=designer["id"],
        reviewer_id=reviewer["id"],
        workflow=workflow,
        step_ids=step_ids,
        model=model,
        acme=acme,
        task=task,
    )


@pytest.fixture
def advance_to(client, studio):
    """Advance the seeded task as admin until it sits at the given step."""

    async def _advance(step: int) -> dict:
        url = f"/api/v1/tasks/{studio.task['id']}/advance"
        task = studio.task
        while task["current_step"] < step:
            response = await client.post(url, headers=studio.admin)
            assert response.status_code == 200, response.text
            task = response.json()
        return task

    return _advance


@pytest.fixture
async def portal_headers(client, studio) -> dict[str, str]:
    response = await client.post(
        "/api/v1/portal/access",
        json={"access_id": studio.acme["access_id"], "password": CLIENT_PASSWORD},
    )
    assert response.status_code == 200, response.text
    return bearer(response.json()["access_token"])
