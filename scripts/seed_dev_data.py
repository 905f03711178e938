"""Seed a development document store with users, a workflow, a task model, a client and a task.

Runs against the backend selected by DATABASE_BACKEND (Firestore in
practice; the memory backend only lives for the duration of the script, which
is still useful as a smoke test of the whole stack).

Usage:
    python -m scripts.seed_dev_data

Requires: SECRET_KEY and, for firestore, FIREBASE_SERVICE_ACCOUNT_KEY or
FIREBASE_SERVICE_ACCOUNT_PATH. Re-running is safe: existing users and
clients (by email) and task models (by name) are reused.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

from app.application.dtos.task import TaskCreate
from app.application.services.user_service import UserService
from app.application.use_cases.clients import ClientService
from app.application.use_cases.task_models import TaskModelService
from app.application.use_cases.tasks import TaskService
from app.application.use_cases.workflows import StepInput, WorkflowService
from app.core.config import get_settings
from app.domain.entities.workflow import StepSettings
from app.domain.enums import TaskPriority, UserRole
from app.infrastructure.firebase.client import close_document_client, init_document_client
from app.infrastructure.firebase.repositories import (
    FirestoreClientRepository,
    FirestoreTaskModelRepository,
    FirestoreTaskRepository,
    FirestoreUserRepository,
    FirestoreWorkflowRepository,
)
from app.infrastructure.security.password import BcryptPasswordHasher
from app.shared.telemetry.logging import setup_logging
from app.shared.utils.datetime import utc_now

logger = logging.getLogger("scripts.seed_dev_data")

ADMIN_EMAIL = "admin@taskflow.local"
DEV_PASSWORD = "devpassword"

TEAM = [
    ("Ana Planner", "ana@taskflow.local", "Account manager"),
    ("Bruno Designer", "bruno@taskflow.local", "Designer"),
    ("Carla Reviewer", "carla@taskflow.local", "Art director"),
]

STEPS = [
    StepInput("Briefing", "Collect requirements", "#6366F1", "clipboard"),
    StepInput("Creation", "Produce the first version", "#3B82F6", "pen"),
    StepInput("Internal review", None, "#F59E0B", "eye"),
    StepInput(
        "Client approval",
        "Client approves or requests changes",
        "#10B981",
        "check",
        StepSettings(
            allow_client_access=True,
            requires_approval=True,
            is_client_approval_step=True,
        ),
    ),
    StepInput("Delivery", "Hand over final files", "#22C55E", "send"),
]


def _project_root() -> Path:
    return Path(__file__).resolve().parent.parent


async def seed() -> None:
    settings = get_settings()
    client = init_document_client(settings)
    hasher = BcryptPasswordHasher()
    user_repo = FirestoreUserRepository(client)
    workflow_repo = FirestoreWorkflowRepository(client)
    task_model_repo = FirestoreTaskModelRepository(client)
    client_repo = FirestoreClientRepository(client)
    users = UserService(user_repo, hasher)
    workflows = WorkflowService(workflow_repo)
    task_models = TaskModelService(task_model_repo, workflow_repo, user_repo)
    clients = ClientService(client_repo, hasher)
    tasks = TaskService(
        FirestoreTaskRepository(client), task_model_repo, workflow_repo, client_repo, user_repo
    )

    try:
        admin = await users.ensure_admin(ADMIN_EMAIL, DEV_PASSWORD)
        team = []
        for name, email, position in TEAM:
            user = await user_repo.get_by_email(email)
            if user is None:
                user = await users.create_user(
                    admin, name, email, DEV_PASSWORD, position, UserRole.OPERATIONAL
                )
            team.append(user)

        workflow = await workflow_repo.get_default()
        if workflow is None:
            workflow = await workflows.create_workflow(
                admin, "Creative production", STEPS, "Default agency workflow", is_default=True
            )

        existing_models = await task_models.list_task_models(workflow_id=workflow.id)
        model = next((m for m in existing_models if m.name == "Social media post"), None)
        if model is None:
            steps = workflow.ordered_steps
            model = await task_models.create_task_model(
                admin,
                "Social media post",
                workflow.id,
                [s.id for s in steps],
                description="Single post with copy and artwork",
                default_assignees={
                    steps[0].id: team[0].id,
                    steps[1].id: team[1].id,
                    steps[2].id: team[2].id,
                    steps[4].id: team[0].id,
                },
            )

        customer = await client_repo.get_by_email("contact@acme.example")
        if customer is None:
            customer = await clients.create_client(
                admin,
                company_name="Acme Coffee",
                responsible_name="Dana Acme",
                responsible_email="contact@acme.example",
                phone="+1 555 0100",
                access_password=DEV_PASSWORD,
            )

        task = await tasks.create_task(
            admin,
            TaskCreate(
                title="Launch week announcement",
                briefing="Three-image carousel announcing the new roastery opening.",
                client_id=customer.id,
                task_model_id=model.id,
                due_date=utc_now() + timedelta(days=7),
                priority=TaskPriority.HIGH,
                tags=["launch", "instagram"],
            ),
        )
        logger.info(
            "Seeded: admin=%s workflow=%s model=%s client=%s (portal access id %s) task=%s",
            admin.email,
            workflow.id,
            model.id,
            customer.id,
            customer.access_id,
            task.id,
        )
    finally:
        await close_document_client()


def main() -> None:
    load_dotenv(_project_root() / ".env", override=True)
    get_settings.cache_clear()
    setup_logging()
    asyncio.run(seed())


if __name__ == "__main__":
    main()
