"""Document-store client repository (implements IClientRepository)."""

from __future__ import annotations

from app.domain.entities.client import ClientEntity
from app.domain.exceptions import DuplicateResourceException
from app.infrastructure.exceptions import DocumentExistsError
from app.infrastructure.firebase.client import DocumentClient
from app.infrastructure.firebase.collections import COLLECTION_CLIENTS
from app.infrastructure.firebase.documents import client_from_document, client_to_document


class FirestoreClientRepository:
    def __init__(self, client: DocumentClient) -> None:
        self._coll = client.collection(COLLECTION_CLIENTS)

    async def get_by_id(self, client_id: str) -> ClientEntity | None:
        doc = await self._coll.document(client_id).get()
        if not doc:
            return None
        return client_from_document(doc.id, doc.to_dict())

    async def _first(self, field: str, value: str) -> ClientEntity | None:
        async for doc in self._coll.where(field, "==", value).limit(1).stream():
            return client_from_document(doc.id, doc.to_dict())
        return None

    async def get_by_access_id(self, access_id: str) -> ClientEntity | None:
        return await self._first("access_id", access_id)

    async def get_by_email(self, email: str) -> ClientEntity | None:
        return await self._first("responsible_email", email.lower())

    async def list(self, skip: int = 0, limit: int = 100) -> list[ClientEntity]:
        clients = [
            client_from_document(doc.id, doc.to_dict()) async for doc in self._coll.stream()
        ]
        clients.sort(key=lambda c: c.company_name.lower())
        return clients[skip : skip + limit]

    async def create(self, client: ClientEntity) -> ClientEntity:
        try:
            await self._coll.create(client.id, client_to_document(client))
        except DocumentExistsError as e:
            raise DuplicateResourceException("client", "id") from e
        return client

    async def update(self, client: ClientEntity) -> ClientEntity:
        await self._coll.document(client.id).set(client_to_document(client))
        return client
