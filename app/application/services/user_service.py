"""User application service: staff accounts, login and profile updates."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime

from app.application.interfaces.repositories import IUserRepository
from app.application.interfaces.services import IPasswordHasher
from app.application.services.authorization_service import TaskAuthorizationService
from app.domain import ValidationException
from app.domain.entities.user import UserEntity
from app.domain.enums import AccountStatus, UserRole
from app.domain.exceptions import (
    AuthenticationException,
    DuplicateResourceException,
    ResourceNotFoundException,
)
from app.shared.utils.datetime import utc_now
from app.shared.utils.generators import generate_cuid

logger = logging.getLogger(__name__)

PASSWORD_MIN_LENGTH = 6


class UserService:
    """Create users (admin), authenticate and update the current user's profile."""

    def __init__(
        self,
        user_repo: IUserRepository,
        hasher: IPasswordHasher,
        authz: TaskAuthorizationService | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._user_repo = user_repo
        self._hasher = hasher
        self._authz = authz or TaskAuthorizationService()
        self._clock = clock

    async def get_user(self, user_id: str) -> UserEntity:
        user = await self._user_repo.get_by_id(user_id)
        if not user:
            raise ResourceNotFoundException("user", user_id)
        return user

    async def list_users(
        self, actor: UserEntity, skip: int = 0, limit: int = 100
    ) -> list[UserEntity]:
        self._authz.require_admin(actor, "user", "list")
        return await self._user_repo.list(skip=skip, limit=limit)

    async def create_user(
        self,
        actor: UserEntity | None,
        name: str,
        email: str,
        password: str,
        position: str,
        role: UserRole = UserRole.OPERATIONAL,
        phone: str | None = None,
    ) -> UserEntity:
        """Create a user. actor None is reserved for seeding the first admin.

        Raises:
            DuplicateResourceException: If the email is already registered.
        """
        if actor is not None:
            self._authz.require_admin(actor, "user", "create")
        _check_password(password)
        if await self._user_repo.get_by_email(email.strip().lower()):
            raise DuplicateResourceException("user", "email")
        hashed = await asyncio.to_thread(self._hasher.hash_password, password)
        now = self._clock()
        user = UserEntity(
            id=generate_cuid(),
            name=name.strip(),
            email=email,
            hashed_password=hashed,
            position=position.strip(),
            phone=phone,
            role=role,
            created_at=now,
            updated_at=now,
        )
        created = await self._user_repo.create(user)
        logger.info("User %s created with role %s", created.id, created.role.value)
        return created

    async def authenticate(self, email: str, password: str) -> UserEntity:
        """Verify email/password and record the login.

        Raises:
            AuthenticationException: On unknown email, wrong password or inactive account.
        """
        user = await self._user_repo.get_by_email(email.strip().lower())
        if user is None:
            await asyncio.to_thread(self._hasher.verify_unknown, password)
            raise AuthenticationException("Invalid credentials")
        if not await asyncio.to_thread(
            self._hasher.verify_password, password, user.hashed_password
        ):
            raise AuthenticationException("Invalid credentials")
        if not user.is_active:
            raise AuthenticationException("Account is inactive")
        user.last_login = self._clock()
        return await self._user_repo.update(user)

    async def ensure_admin(
        self, email: str, password: str, name: str = "Administrator"
    ) -> UserEntity:
        """Create the bootstrap admin if missing; reactivate it if it was deactivated."""
        existing = await self._user_repo.get_by_email(email.strip().lower())
        if existing is None:
            return await self.create_user(
                None,
                name=name,
                email=email,
                password=password,
                position="Administrator",
                role=UserRole.ADMIN,
            )
        if existing.status != AccountStatus.ACTIVE:
            existing.status = AccountStatus.ACTIVE
            existing.updated_at = self._clock()
            existing = await self._user_repo.update(existing)
            logger.info("Bootstrap admin %s reactivated", existing.id)
        return existing

    async def update_me(
        self,
        user: UserEntity,
        name: str | None = None,
        phone: str | None = None,
        password: str | None = None,
    ) -> UserEntity:
        """Update name, phone and/or password of the current user."""
        if name is None and phone is None and password is None:
            raise ValidationException("At least one of name, phone or password is required")
        if name is not None:
            user.name = name.strip()
        if phone is not None:
            user.phone = phone
        if password is not None:
            _check_password(password)
            user.hashed_password = await asyncio.to_thread(
                self._hasher.hash_password, password
            )
        user.validate()
        user.updated_at = self._clock()
        return await self._user_repo.update(user)


def _check_password(password: str) -> None:
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationException(
            f"Password must be at least {PASSWORD_MIN_LENGTH} characters", field="password"
        )
