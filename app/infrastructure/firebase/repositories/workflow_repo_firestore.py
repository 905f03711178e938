"""Document-store workflow repository (implements IWorkflowRepository)."""

from __future__ import annotations

import logging

from app.domain.entities.workflow import WorkflowEntity
from app.domain.exceptions import (
    DuplicateResourceException,
    ResourceNotFoundException,
    VersionConflictException,
)
from app.infrastructure.exceptions import DocumentExistsError, PreconditionFailedError
from app.infrastructure.firebase.client import DocumentClient
from app.infrastructure.firebase.collections import COLLECTION_WORKFLOWS
from app.infrastructure.firebase.documents import (
    workflow_from_document,
    workflow_to_document,
)
from app.shared.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class FirestoreWorkflowRepository:
    def __init__(self, client: DocumentClient) -> None:
        self._client = client
        self._coll = client.collection(COLLECTION_WORKFLOWS)

    async def get_by_id(self, workflow_id: str) -> WorkflowEntity | None:
        doc = await self._coll.document(workflow_id).get()
        if not doc:
            return None
        return workflow_from_document(doc.id, doc.to_dict())

    async def get_default(self) -> WorkflowEntity | None:
        async for doc in self._coll.where("is_default", "==", True).limit(1).stream():
            return workflow_from_document(doc.id, doc.to_dict())
        return None

    async def list(self, active_only: bool = False) -> list[WorkflowEntity]:
        source = self._coll.where("is_active", "==", True) if active_only else self._coll
        workflows = [
            workflow_from_document(doc.id, doc.to_dict()) async for doc in source.stream()
        ]
        return sorted(workflows, key=lambda w: w.name.lower())

    async def create(self, workflow: WorkflowEntity) -> WorkflowEntity:
        try:
            await self._coll.create(workflow.id, workflow_to_document(workflow))
        except DocumentExistsError as e:
            raise DuplicateResourceException("workflow", "id") from e
        return workflow

    async def update(self, workflow: WorkflowEntity) -> WorkflowEntity:
        """Merge every field except is_default, which only set_default writes."""
        data = workflow_to_document(workflow)
        data.pop("is_default")
        try:
            await self._coll.document(workflow.id).update(data)
        except PreconditionFailedError as e:
            raise ResourceNotFoundException("workflow", workflow.id) from e
        return await self.get_by_id(workflow.id) or workflow

    async def set_default(self, workflow_id: str) -> WorkflowEntity:
        """Clear every other default and set this one in one atomic batch.

        Each write is conditioned on the update time just read, so a
        concurrent set_default makes one of the two batches fail as a
        whole (VersionConflictException) instead of leaving two defaults.
        """
        now = utc_now()
        batch = self._client.batch()
        target = None
        async for doc in self._coll.stream():
            data = doc.to_dict()
            if doc.id == workflow_id:
                target = doc
                continue
            if data.get("is_default"):
                batch.set(
                    self._coll.document(doc.id),
                    {**data, "is_default": False, "updated_at": now},
                    update_time=doc.update_time,
                )
        if target is None:
            raise ResourceNotFoundException("workflow", workflow_id)
        batch.set(
            self._coll.document(workflow_id),
            {**target.to_dict(), "is_default": True, "updated_at": now},
            update_time=target.update_time,
        )
        try:
            await batch.commit()
        except PreconditionFailedError as e:
            logger.warning("Concurrent default workflow change for %s", workflow_id)
            raise VersionConflictException("workflow", workflow_id) from e
        result = await self.get_by_id(workflow_id)
        if result is None:
            raise ResourceNotFoundException("workflow", workflow_id)
        return result
