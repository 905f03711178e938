"""Application lifespan: startup and shutdown.

Single place for all startup/shutdown logic. Used by main.py; no business
logic here, only wiring of infrastructure (document client, WebSocket
manager, task notifier).
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api.websocket import ConnectionManager
from app.application.services.user_service import UserService
from app.core.config import get_settings
from app.infrastructure.firebase.client import (
    close_document_client,
    init_document_client,
)
from app.infrastructure.firebase.repositories import FirestoreUserRepository
from app.infrastructure.security.password import BcryptPasswordHasher
from app.infrastructure.services.task_notifier import (
    LogOnlyTaskNotifier,
    WebSocketTaskNotifier,
)
from app.shared.telemetry.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run startup then yield; on exit run shutdown.

    Startup order: logging, document client, WebSocket manager, notifier,
    bootstrap admin (when configured).
    Shutdown closes the document client.
    """
    settings = get_settings()
    setup_logging()

    # ---- Startup ----
    app.state.document_client = init_document_client(settings)
    app.state.ws_manager = ConnectionManager()
    if settings.notifications_enabled:
        app.state.task_notifier = WebSocketTaskNotifier(app.state.ws_manager)
    else:
        app.state.task_notifier = LogOnlyTaskNotifier()
    if settings.bootstrap_admin_email and settings.bootstrap_admin_password:
        users = UserService(
            FirestoreUserRepository(app.state.document_client), BcryptPasswordHasher()
        )
        admin = await users.ensure_admin(
            settings.bootstrap_admin_email,
            settings.bootstrap_admin_password.get_secret_value(),
        )
        logger.info("Bootstrap admin ready: %s", admin.id)
    logger.info(
        "%s %s started (backend=%s)",
        settings.app_name,
        settings.app_version,
        settings.database_backend,
    )

    yield

    # ---- Shutdown ----
    await close_document_client()
    app.state.document_client = None
