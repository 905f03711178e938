"""Task API: creation, progression, deliveries, comments and administration."""

from datetime import UTC, datetime, timedelta

ATTACHMENT = {
    "filename": "post-v1.png",
    "original_name": "Post v1.png",
    "mimetype": "image/png",
    "size": 20480,
    "url": "https://files.example.com/post-v1.png",
}


def _url(task: dict, suffix: str = "") -> str:
    return f"/api/v1/tasks/{task['id']}{suffix}"


async def test_create_task_from_model(client, studio) -> None:
    task = studio.task
    assert task["current_step"] == 1
    assert task["total_steps"] == 5
    assert task["status"] == "active"
    assert task["priority"] == "high"
    assert task["estimated_hours"] == 3
    assert task["version"] == 1
    assert task["current_assignee"] == studio.designer_id
    assert task["progress_percentage"] == 0
    assert [a["step_order"] for a in task["assigned_users"]] == [1, 2, 3, 5]
    assert [h["action"] for h in task["history"]] == ["created"]


async def test_create_task_validation(client, studio) -> None:
    body = {
        "title": "Hi",
        "briefing": "Too short title.",
        "client_id": studio.acme["id"],
        "task_model_id": studio.model["id"],
        "due_date": datetime.now(UTC).isoformat(),
    }
    response = await client.post("/api/v1/tasks", headers=studio.admin, json=body)
    assert response.status_code == 422
    assert response.json()["error"] == "VALIDATION_ERROR"


async def test_create_task_requires_admin(client, studio) -> None:
    body = {
        "title": "Summer campaign",
        "briefing": "Carousel for the summer campaign.",
        "client_id": studio.acme["id"],
        "task_model_id": studio.model["id"],
        "due_date": datetime.now(UTC).isoformat(),
    }
    response = await client.post("/api/v1/tasks", headers=studio.designer, json=body)
    assert response.status_code == 403
    assert response.json()["error"] == "PERMISSION_DENIED"


async def test_create_task_unknown_client(client, studio) -> None:
    body = {
        "title": "Summer campaign",
        "briefing": "Carousel for the summer campaign.",
        "client_id": "missing",
        "task_model_id": studio.model["id"],
        "due_date": datetime.now(UTC).isoformat(),
    }
    response = await client.post("/api/v1/tasks", headers=studio.admin, json=body)
    assert response.status_code == 404


async def test_full_progression_to_completion(client, studio) -> None:
    task = studio.task
    steps = [
        (studio.designer, 2),
        (studio.designer, 3),
        (studio.reviewer, 4),
        (studio.admin, 5),
    ]
    for headers, expected in steps:
        response = await client.post(_url(task, "/advance"), headers=headers, json={})
        assert response.status_code == 200, response.text
        assert response.json()["current_step"] == expected

    response = await client.post(
        _url(task, "/advance"), headers=studio.designer, json={"notes": "Published"}
    )
    assert response.status_code == 200
    done = response.json()
    assert done["status"] == "completed"
    assert done["current_step"] == 5
    assert done["progress_percentage"] == 100
    assert done["completed_at"] is not None
    assert done["version"] == 6

    response = await client.post(_url(task, "/advance"), headers=studio.admin)
    assert response.status_code == 409
    assert response.json()["error"] == "INVALID_TRANSITION"

    model = (await client.get(f"/api/v1/task-models/{studio.model['id']}", headers=studio.admin)).json()
    assert model["stats"] == {
        "total_tasks": 1,
        "completed_tasks": 1,
        "last_used": model["stats"]["last_used"],
    }
    assert model["completion_rate"] == 100


async def test_advance_by_non_assignee_denied(client, studio) -> None:
    response = await client.post(_url(studio.task, "/advance"), headers=studio.reviewer)
    assert response.status_code == 403
    stored = (await client.get(_url(studio.task), headers=studio.admin)).json()
    assert stored["current_step"] == 1
    assert stored["version"] == 1


async def test_revert(client, studio) -> None:
    response = await client.post(_url(studio.task, "/revert"), headers=studio.designer)
    assert response.status_code == 409

    await client.post(_url(studio.task, "/advance"), headers=studio.designer)
    response = await client.post(
        _url(studio.task, "/revert"), headers=studio.designer, json={"reason": "Brief changed"}
    )
    assert response.status_code == 200
    body = response.json()
    assert body["current_step"] == 1
    assert body["history"][-1]["action"] == "step_reverted"
    assert "Brief changed" in body["history"][-1]["description"]


async def test_new_delivery_supersedes_previous(client, studio) -> None:
    url = _url(studio.task, "/deliveries")
    first = await client.post(url, headers=studio.designer, json={"attachments": [ATTACHMENT]})
    assert first.status_code == 201
    second = await client.post(
        url,
        headers=studio.designer,
        json={"attachments": [dict(ATTACHMENT, filename="post-v2.png")], "notes": "v2"},
    )
    assert second.status_code == 201
    body = second.json()
    assert [d["status"] for d in body["deliveries"]] == ["superseded", "active"]
    assert body["current_delivery"]["notes"] == "v2"
    assert body["current_delivery"]["attachments"][0]["uploaded_by"] == studio.designer_id
    assert body["current_step"] == 1


async def test_delivery_requires_attachments(client, studio) -> None:
    response = await client.post(
        _url(studio.task, "/deliveries"), headers=studio.designer, json={"attachments": []}
    )
    assert response.status_code == 422


async def test_comments(client, studio) -> None:
    response = await client.post(
        _url(studio.task, "/comments"),
        headers=studio.reviewer,
        json={"content": "Logo is too small", "mentions": [studio.designer_id]},
    )
    assert response.status_code == 201
    comment = response.json()["comments"][-1]
    assert comment["author_id"] == studio.reviewer_id
    assert comment["mentions"] == [studio.designer_id]
    assert comment["is_internal"] is True


async def test_update_details(client, studio) -> None:
    response = await client.patch(
        _url(studio.task),
        headers=studio.designer,
        json={"title": "Spring launch carousel", "tags": [" ig ", "launch"]},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["title"] == "Spring launch carousel"
    assert body["tags"] == ["ig", "launch"]
    assert body["history"][-1]["action"] == "updated"


async def test_reassign_current_step(client, studio) -> None:
    response = await client.put(
        _url(studio.task, "/assignments/1"),
        headers=studio.admin,
        json={"user_id": studio.reviewer_id},
    )
    assert response.status_code == 200
    assert response.json()["current_assignee"] == studio.reviewer_id
    response = await client.post(_url(studio.task, "/advance"), headers=studio.designer)
    assert response.status_code == 403


async def test_hold_resume_cancel_reopen(client, studio) -> None:
    url = _url(studio.task, "/status")
    response = await client.post(url, headers=studio.admin, json={"status": "on_hold"})
    assert response.status_code == 200
    assert response.json()["status"] == "on_hold"

    response = await client.post(_url(studio.task, "/advance"), headers=studio.designer)
    assert response.status_code == 409
    response = await client.post(
        _url(studio.task, "/deliveries"), headers=studio.designer, json={"attachments": [ATTACHMENT]}
    )
    assert response.status_code == 409

    response = await client.post(url, headers=studio.admin, json={"status": "active"})
    assert response.json()["status"] == "active"
    response = await client.post(url, headers=studio.admin, json={"status": "cancelled"})
    assert response.json()["status"] == "cancelled"
    response = await client.post(url, headers=studio.admin, json={"status": "on_hold"})
    assert response.status_code == 409

    response = await client.post(_url(studio.task, "/reopen"), headers=studio.admin)
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "active"
    assert body["current_step"] == 1
    assert body["history"][-1]["action"] == "reopened"


async def test_status_completed_not_accepted(client, studio) -> None:
    response = await client.post(
        _url(studio.task, "/status"), headers=studio.admin, json={"status": "completed"}
    )
    assert response.status_code == 422


async def test_status_change_requires_admin(client, studio) -> None:
    response = await client.post(
        _url(studio.task, "/status"), headers=studio.designer, json={"status": "on_hold"}
    )
    assert response.status_code == 403


async def test_operational_user_sees_only_assigned_tasks(client, studio) -> None:
    response = await client.get("/api/v1/tasks", headers=studio.designer)
    assert [t["id"] for t in response.json()] == [studio.task["id"]]

    response = await client.get("/api/v1/tasks/my", headers=studio.designer)
    assert [t["id"] for t in response.json()] == [studio.task["id"]]
    response = await client.get("/api/v1/tasks/my", headers=studio.reviewer)
    assert response.json() == []


async def test_list_filters(client, studio) -> None:
    late = await client.post(
        "/api/v1/tasks",
        headers=studio.admin,
        json={
            "title": "Late newsletter",
            "briefing": "Monthly newsletter header image.",
            "client_id": studio.acme["id"],
            "task_model_id": studio.model["id"],
            "due_date": (datetime.now(UTC) - timedelta(days=1)).isoformat(),
            "priority": "low",
        },
    )
    assert late.status_code == 201
    late_id = late.json()["id"]

    response = await client.get("/api/v1/tasks", headers=studio.admin, params={"status": "overdue"})
    assert [t["id"] for t in response.json()] == [late_id]
    assert response.json()[0]["is_overdue"] is True

    response = await client.get("/api/v1/tasks", headers=studio.admin, params={"priority": "high"})
    assert [t["id"] for t in response.json()] == [studio.task["id"]]

    response = await client.get("/api/v1/tasks", headers=studio.admin, params={"search": "NEWS"})
    assert [t["id"] for t in response.json()] == [late_id]

    response = await client.get("/api/v1/tasks", headers=studio.admin, params={"status": "archived"})
    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"


async def test_kanban_and_stats(client, studio) -> None:
    await client.post(_url(studio.task, "/advance"), headers=studio.designer)

    response = await client.get("/api/v1/tasks/kanban", headers=studio.admin)
    assert response.status_code == 200
    columns = response.json()
    assert [(c["step_order"], c["step_name"]) for c in columns] == [(2, "Design")]
    assert columns[0]["tasks"][0]["id"] == studio.task["id"]

    response = await client.get("/api/v1/tasks/stats/overview", headers=studio.admin)
    assert response.json() == {
        "total": 1,
        "total_active": 1,
        "total_completed": 0,
        "total_overdue": 0,
        "total_high_priority": 1,
        "average_completion_days": 0,
    }
    response = await client.get("/api/v1/tasks/stats/overview", headers=studio.designer)
    assert response.status_code == 403


async def test_unknown_task_returns_404(client, studio) -> None:
    response = await client.get("/api/v1/tasks/missing", headers=studio.admin)
    assert response.status_code == 404
    assert response.json()["error"] == "RESOURCE_NOT_FOUND"


async def test_requires_authentication(client) -> None:
    response = await client.get("/api/v1/tasks")
    assert response.status_code == 401
    assert response.json()["error"] == "AUTHENTICATION_ERROR"
