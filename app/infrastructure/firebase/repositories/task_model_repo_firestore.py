"""Document-store task model repository (implements ITaskModelRepository).

Usage stats on a model are bumped by task creation and completion while an
admin may be editing the same model, so every write here is conditional on
the update time it read. A lost race re-reads and reapplies the change.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime

from app.domain.entities.task_model import TaskModelEntity
from app.domain.exceptions import (
    DuplicateResourceException,
    ResourceNotFoundException,
    VersionConflictException,
)
from app.infrastructure.exceptions import DocumentExistsError, PreconditionFailedError
from app.infrastructure.firebase.client import DocumentClient
from app.infrastructure.firebase.collections import COLLECTION_TASK_MODELS
from app.infrastructure.firebase.documents import (
    task_model_from_document,
    task_model_to_document,
)

logger = logging.getLogger(__name__)

WRITE_ATTEMPTS = 5


class FirestoreTaskModelRepository:
    def __init__(self, client: DocumentClient) -> None:
        self._coll = client.collection(COLLECTION_TASK_MODELS)

    async def get_by_id(self, task_model_id: str) -> TaskModelEntity | None:
        doc = await self._coll.document(task_model_id).get()
        if not doc:
            return None
        return task_model_from_document(doc.id, doc.to_dict())

    async def list(
        self, workflow_id: str | None = None, active_only: bool = False
    ) -> list[TaskModelEntity]:
        source = (
            self._coll.where("workflow_id", "==", workflow_id) if workflow_id else self._coll
        )
        models = []
        async for doc in source.stream():
            model = task_model_from_document(doc.id, doc.to_dict())
            if active_only and not model.is_active:
                continue
            models.append(model)
        return sorted(models, key=lambda m: m.name.lower())

    async def create(self, task_model: TaskModelEntity) -> TaskModelEntity:
        try:
            await self._coll.create(task_model.id, task_model_to_document(task_model))
        except DocumentExistsError as e:
            raise DuplicateResourceException("task_model", "id") from e
        return task_model

    async def update(self, task_model: TaskModelEntity) -> TaskModelEntity:
        """Write an edited model, keeping the stats currently stored.

        Raises:
            ResourceNotFoundException: If the model no longer exists.
            VersionConflictException: If every attempt lost a race.
        """
        return await self._write(
            task_model.id, lambda stored: replace(task_model, stats=stored.stats)
        )

    async def record_usage(
        self,
        task_model_id: str,
        *,
        created_at: datetime | None = None,
        completed: bool = False,
    ) -> TaskModelEntity:
        """Count a new task (created_at) and/or a first completion on the stored model."""

        def bump(stored: TaskModelEntity) -> TaskModelEntity:
            if created_at is not None:
                stored.record_task_created(created_at)
            if completed:
                stored.record_task_completed()
            return stored

        return await self._write(task_model_id, bump)

    async def _write(
        self,
        task_model_id: str,
        change: Callable[[TaskModelEntity], TaskModelEntity],
    ) -> TaskModelEntity:
        ref = self._coll.document(task_model_id)
        for attempt in range(1, WRITE_ATTEMPTS + 1):
            current = await ref.get()
            if current is None:
                raise ResourceNotFoundException("task_model", task_model_id)
            updated = change(task_model_from_document(current.id, current.to_dict()))
            try:
                await ref.set(task_model_to_document(updated), update_time=current.update_time)
            except PreconditionFailedError:
                logger.debug(
                    "Task model %s changed underneath write (attempt %d)", task_model_id, attempt
                )
                continue
            return updated
        logger.warning("Gave up writing task model %s after %d attempts", task_model_id, WRITE_ATTEMPTS)
        raise VersionConflictException("task_model", task_model_id)
