"""Document-store task repository (implements ITaskRepository).

One document per task. update() is an optimistic-concurrency write: the
stored version must equal task.version, and the write carries the update
time read alongside it, so two writers racing on the same version cannot
both succeed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime

from app.application.dtos.task import TaskFilter
from app.domain.entities.task import TaskEntity
from app.domain.exceptions import (
    DuplicateResourceException,
    ResourceNotFoundException,
    VersionConflictException,
)
from app.infrastructure.exceptions import DocumentExistsError, PreconditionFailedError
from app.infrastructure.firebase.client import DocumentClient
from app.infrastructure.firebase.collections import COLLECTION_TASKS
from app.infrastructure.firebase.documents import task_from_document, task_to_document
from app.shared.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class FirestoreTaskRepository:
    def __init__(
        self, client: DocumentClient, clock: Callable[[], datetime] = utc_now
    ) -> None:
        self._client = client
        self._coll = client.collection(COLLECTION_TASKS)
        self._clock = clock

    async def get_by_id(self, task_id: str) -> TaskEntity | None:
        doc = await self._coll.document(task_id).get()
        if not doc:
            return None
        return task_from_document(doc.id, doc.to_dict())

    async def create(self, task: TaskEntity) -> TaskEntity:
        created = replace(task, version=1)
        try:
            await self._coll.create(created.id, task_to_document(created))
        except DocumentExistsError as e:
            raise DuplicateResourceException("task", "id") from e
        return created

    async def update(self, task: TaskEntity) -> TaskEntity:
        """Write task if nobody wrote it since it was read at task.version.

        Raises:
            ResourceNotFoundException: If the task no longer exists.
            VersionConflictException: If the stored version moved on.
        """
        ref = self._coll.document(task.id)
        current = await ref.get()
        if current is None:
            raise ResourceNotFoundException("task", task.id)
        stored_version = int(current.to_dict().get("version", 0))
        if stored_version != task.version:
            logger.warning(
                "Version conflict on task %s: stored %d, expected %d",
                task.id,
                stored_version,
                task.version,
            )
            raise VersionConflictException("task", task.id)
        updated = replace(task, version=task.version + 1)
        try:
            await ref.set(task_to_document(updated), update_time=current.update_time)
        except PreconditionFailedError as e:
            logger.warning("Concurrent write on task %s lost the race", task.id)
            raise VersionConflictException("task", task.id) from e
        return updated

    async def list(
        self, filters: TaskFilter | None = None, skip: int = 0, limit: int = 100
    ) -> list[TaskEntity]:
        """Return tasks matching filters, newest first.

        One equality filter is pushed to the store (no composite index
        needed); the rest is applied with TaskFilter.matches.
        """
        filters = filters or TaskFilter()
        if filters.client_id:
            source = self._coll.where("client_id", "==", filters.client_id)
        elif filters.assigned_user_id:
            source = self._coll.where(
                "assigned_user_ids", "array-contains", filters.assigned_user_id
            )
        elif filters.task_model_id:
            source = self._coll.where("task_model_id", "==", filters.task_model_id)
        elif filters.status is not None:
            source = self._coll.where("status", "==", filters.status.value)
        else:
            source = self._coll
        now = self._clock()
        tasks = []
        async for doc in source.stream():
            task = task_from_document(doc.id, doc.to_dict())
            if filters.matches(task, now):
                tasks.append(task)
        tasks.sort(key=lambda t: t.created_at or now, reverse=True)
        return tasks[skip : skip + limit]

    async def count_by_task_model(self, task_model_id: str) -> int:
        count = 0
        async for _ in self._coll.where("task_model_id", "==", task_model_id).stream():
            count += 1
        return count
