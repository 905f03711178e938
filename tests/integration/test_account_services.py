"""UserService and ClientService over the in-memory document store."""

import pytest

from app.application.services.user_service import UserService
from app.application.use_cases.clients import ClientService
from app.domain.enums import AccountStatus, UserRole
from app.domain.exceptions import AuthenticationException, AuthorizationException
from app.infrastructure.firebase.repositories import (
    FirestoreClientRepository,
    FirestoreUserRepository,
)
from app.infrastructure.memory.document_client import InMemoryDocumentClient
from app.infrastructure.security.password import BcryptPasswordHasher


@pytest.fixture
def store() -> InMemoryDocumentClient:
    return InMemoryDocumentClient()


@pytest.fixture
def users(store) -> UserService:
    return UserService(FirestoreUserRepository(store), BcryptPasswordHasher())


@pytest.fixture
def clients(store) -> ClientService:
    return ClientService(FirestoreClientRepository(store), BcryptPasswordHasher())


async def test_ensure_admin_is_idempotent_and_reactivates(users, store) -> None:
    admin = await users.ensure_admin("boss@example.com", "boss-password")
    assert admin.role == UserRole.ADMIN

    repo = FirestoreUserRepository(store)
    admin.status = AccountStatus.INACTIVE
    await repo.update(admin)

    again = await users.ensure_admin("BOSS@example.com", "ignored")
    assert again.id == admin.id
    assert again.status == AccountStatus.ACTIVE
    assert len(await repo.list()) == 1


async def test_inactive_user_cannot_log_in(users, store) -> None:
    admin = await users.ensure_admin("boss@example.com", "boss-password")
    staff = await users.create_user(
        admin, "Ana Lima", "ana@example.com", "ana-password", "Designer"
    )
    assert (await users.authenticate("ana@example.com", "ana-password")).last_login

    staff.status = AccountStatus.INACTIVE
    await FirestoreUserRepository(store).update(staff)
    with pytest.raises(AuthenticationException, match="inactive"):
        await users.authenticate("ana@example.com", "ana-password")


async def test_only_admin_creates_users(users) -> None:
    admin = await users.ensure_admin("boss@example.com", "boss-password")
    staff = await users.create_user(admin, "Ana", "ana@example.com", "ana-password", "Designer")
    with pytest.raises(AuthorizationException):
        await users.create_user(staff, "Bo", "bo@example.com", "bo-password", "Designer")


async def test_portal_authentication(users, clients) -> None:
    admin = await users.ensure_admin("boss@example.com", "boss-password")
    acme = await clients.create_client(
        admin,
        company_name="Acme Corp",
        responsible_name="Jo",
        responsible_email="jo@acme.example.com",
        phone="555",
        access_password="portal-pass",
    )
    assert acme.hashed_access_password != "portal-pass"

    visited = await clients.authenticate_portal(acme.access_id, "portal-pass")
    assert visited.access_count == 1
    with pytest.raises(AuthenticationException):
        await clients.authenticate_portal(acme.access_id, "wrong")
    with pytest.raises(AuthenticationException):
        await clients.authenticate_portal("unknown", "portal-pass")
