"""Client operations: maintenance (admin) and client portal login."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime

from app.application.interfaces.repositories import IClientRepository
from app.application.interfaces.services import IPasswordHasher
from app.application.services.authorization_service import TaskAuthorizationService
from app.domain.entities.client import ClientEntity
from app.domain.entities.user import UserEntity
from app.domain.exceptions import (
    AuthenticationException,
    DuplicateResourceException,
    ResourceNotFoundException,
    ValidationException,
)
from app.shared.utils.datetime import utc_now
from app.shared.utils.generators import generate_access_id, generate_cuid

logger = logging.getLogger(__name__)

ACCESS_PASSWORD_MIN_LENGTH = 6


class ClientService:
    def __init__(
        self,
        client_repo: IClientRepository,
        hasher: IPasswordHasher,
        authz: TaskAuthorizationService | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.client_repo = client_repo
        self.hasher = hasher
        self.authz = authz or TaskAuthorizationService()
        self._clock = clock

    async def get_client(self, actor: UserEntity, client_id: str) -> ClientEntity:
        self.authz.require_admin(actor, "client", "read")
        client = await self.client_repo.get_by_id(client_id)
        if client is None:
            raise ResourceNotFoundException("client", client_id)
        return client

    async def list_clients(
        self, actor: UserEntity, skip: int = 0, limit: int = 100
    ) -> list[ClientEntity]:
        self.authz.require_admin(actor, "client", "list")
        return await self.client_repo.list(skip=skip, limit=limit)

    async def create_client(
        self,
        actor: UserEntity,
        company_name: str,
        responsible_name: str,
        responsible_email: str,
        phone: str,
        access_password: str,
        logo: str | None = None,
    ) -> ClientEntity:
        """Create a client with a fresh portal access id.

        Raises:
            DuplicateResourceException: If the responsible email is taken.
        """
        self.authz.require_admin(actor, "client", "create")
        if len(access_password) < ACCESS_PASSWORD_MIN_LENGTH:
            raise ValidationException(
                f"Access password must be at least {ACCESS_PASSWORD_MIN_LENGTH} characters",
                field="access_password",
            )
        if await self.client_repo.get_by_email(responsible_email.strip().lower()):
            raise DuplicateResourceException("client", "responsible_email")
        hashed = await asyncio.to_thread(self.hasher.hash_password, access_password)
        now = self._clock()
        client = ClientEntity(
            id=generate_cuid(),
            company_name=company_name.strip(),
            responsible_name=responsible_name.strip(),
            responsible_email=responsible_email,
            phone=phone.strip(),
            access_id=generate_access_id(),
            hashed_access_password=hashed,
            logo=logo,
            created_at=now,
            updated_at=now,
        )
        created = await self.client_repo.create(client)
        logger.info("Client %s created by %s", created.id, actor.id)
        return created

    async def authenticate_portal(self, access_id: str, password: str) -> ClientEntity:
        """Verify portal credentials and record the access.

        Raises:
            AuthenticationException: On unknown access id, wrong password or inactive client.
        """
        client = await self.client_repo.get_by_access_id(access_id)
        if client is None:
            await asyncio.to_thread(self.hasher.verify_unknown, password)
            raise AuthenticationException("Invalid access credentials")
        if not await asyncio.to_thread(
            self.hasher.verify_password, password, client.hashed_access_password
        ):
            raise AuthenticationException("Invalid access credentials")
        if not client.is_active:
            raise AuthenticationException("Client access is disabled")
        client.record_access(self._clock())
        return await self.client_repo.update(client)
