"""Mounts every /api/v1 router.

Staff routes authenticate with user tokens. /portal takes client tokens, and
/ws authenticates itself from the query string.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import (
    auth,
    clients,
    health,
    portal,
    task_models,
    tasks,
    users,
    websocket as ws_endpoint,
    workflows,
)

api_router = APIRouter()

_MOUNTS = (
    (health.router, "/health", "health"),
    (auth.router, "/auth", "auth"),
    (users.router, "/users", "users"),
    (clients.router, "/clients", "clients"),
    (workflows.router, "/workflows", "workflows"),
    (task_models.router, "/task-models", "task-models"),
    (tasks.router, "/tasks", "tasks"),
    (portal.router, "/portal", "portal"),
)

for _router, _prefix, _tag in _MOUNTS:
    api_router.include_router(_router, prefix=_prefix, tags=[_tag])

api_router.include_router(ws_endpoint.router, tags=["websocket"])
