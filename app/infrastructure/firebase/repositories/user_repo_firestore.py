"""Document-store user repository (implements IUserRepository).

Password checks live in UserService; this repository only stores the hash.
"""

from __future__ import annotations

from app.domain.entities.user import UserEntity
from app.domain.exceptions import DuplicateResourceException
from app.infrastructure.exceptions import DocumentExistsError
from app.infrastructure.firebase.client import DocumentClient
from app.infrastructure.firebase.collections import COLLECTION_USERS
from app.infrastructure.firebase.documents import user_from_document, user_to_document


class FirestoreUserRepository:
    def __init__(self, client: DocumentClient) -> None:
        self._coll = client.collection(COLLECTION_USERS)

    async def get_by_id(self, user_id: str) -> UserEntity | None:
        doc = await self._coll.document(user_id).get()
        if not doc:
            return None
        return user_from_document(doc.id, doc.to_dict())

    async def get_by_email(self, email: str) -> UserEntity | None:
        async for doc in self._coll.where("email", "==", email.lower()).limit(1).stream():
            return user_from_document(doc.id, doc.to_dict())
        return None

    async def list(self, skip: int = 0, limit: int = 100) -> list[UserEntity]:
        users = [user_from_document(doc.id, doc.to_dict()) async for doc in self._coll.stream()]
        users.sort(key=lambda u: u.name.lower())
        return users[skip : skip + limit]

    async def create(self, user: UserEntity) -> UserEntity:
        try:
            await self._coll.create(user.id, user_to_document(user))
        except DocumentExistsError as e:
            raise DuplicateResourceException("user", "id") from e
        return user

    async def update(self, user: UserEntity) -> UserEntity:
        await self._coll.document(user.id).set(user_to_document(user))
        return user
