"""Entity <-> document mapping for the document store.

Documents hold plain values only (enum values, UTC datetimes, nested
maps and lists); the document id is the entity id and is not repeated in
the fields. A task is one document embedding its assignments,
deliveries, comments and history.
"""

from __future__ import annotations

from typing import Any

from app.domain.entities.client import ClientEntity
from app.domain.entities.task import (
    ClientApproval,
    Comment,
    Delivery,
    HistoryEntry,
    StepAssignment,
    TaskEntity,
    TaskSettings,
)
from app.domain.entities.task_model import (
    DefaultAssignee,
    SelectedStep,
    TaskModelEntity,
    TaskModelSettings,
    TaskModelStats,
)
from app.domain.entities.user import UserEntity
from app.domain.entities.workflow import StepSettings, WorkflowEntity, WorkflowStep
from app.domain.enums import (
    AccountStatus,
    ClientApprovalStatus,
    DeliveryStatus,
    HistoryAction,
    TaskPriority,
    TaskStatus,
    UserRole,
)
from app.domain.value_objects.core import Attachment
from app.shared.utils.datetime import parse_datetime


def _attachments_out(items: list[Attachment]) -> list[dict[str, Any]]:
    return [a.to_dict() for a in items]


def _attachments_in(items: list[dict[str, Any]] | None) -> list[Attachment]:
    return [
        Attachment.from_dict({**d, "uploaded_at": parse_datetime(d.get("uploaded_at"))})
        for d in items or []
    ]


def _step_settings_out(s: StepSettings) -> dict[str, Any]:
    return {
        "allow_client_access": s.allow_client_access,
        "requires_approval": s.requires_approval,
        "allow_multiple_files": s.allow_multiple_files,
        "is_client_approval_step": s.is_client_approval_step,
    }


def _step_settings_in(d: dict[str, Any] | None) -> StepSettings:
    d = d or {}
    return StepSettings(
        allow_client_access=d.get("allow_client_access", False),
        requires_approval=d.get("requires_approval", False),
        allow_multiple_files=d.get("allow_multiple_files", True),
        is_client_approval_step=d.get("is_client_approval_step", False),
    )


# ---- Task ----


def task_to_document(task: TaskEntity) -> dict[str, Any]:
    return {
        "title": task.title,
        "briefing": task.briefing,
        "client_id": task.client_id,
        "task_model_id": task.task_model_id,
        "workflow_id": task.workflow_id,
        "current_step": task.current_step,
        "current_step_id": task.current_step_id,
        "total_steps": task.total_steps,
        "due_date": task.due_date,
        "created_by": task.created_by,
        "status": task.status.value,
        "priority": task.priority.value,
        "started_at": task.started_at,
        "completed_at": task.completed_at,
        "estimated_hours": float(task.estimated_hours),
        "tags": list(task.tags),
        "assigned_user_ids": sorted({a.user_id for a in task.assigned_users}),
        "assigned_users": [
            {
                "step_order": a.step_order,
                "step_id": a.step_id,
                "step_name": a.step_name,
                "user_id": a.user_id,
                "assigned_by": a.assigned_by,
                "assigned_at": a.assigned_at,
            }
            for a in task.assigned_users
        ],
        "initial_attachments": _attachments_out(task.initial_attachments),
        "deliveries": [
            {
                "id": d.id,
                "step_order": d.step_order,
                "step_id": d.step_id,
                "step_name": d.step_name,
                "delivered_by": d.delivered_by,
                "attachments": _attachments_out(d.attachments),
                "delivered_at": d.delivered_at,
                "notes": d.notes,
                "status": d.status.value,
            }
            for d in task.deliveries
        ],
        "comments": [
            {
                "id": c.id,
                "author_id": c.author_id,
                "content": c.content,
                "created_at": c.created_at,
                "mentions": list(c.mentions),
                "attachments": _attachments_out(c.attachments),
                "is_internal": c.is_internal,
            }
            for c in task.comments
        ],
        "history": [
            {
                "id": h.id,
                "action": h.action.value,
                "description": h.description,
                "changed_by": h.changed_by,
                "timestamp": h.timestamp,
                "previous_value": h.previous_value,
                "new_value": h.new_value,
                "metadata": dict(h.metadata),
            }
            for h in task.history
        ],
        "client_approval": {
            "status": task.client_approval.status.value,
            "approved_at": task.client_approval.approved_at,
            "rejected_at": task.client_approval.rejected_at,
            "comments": task.client_approval.comments,
            "annotated_image": task.client_approval.annotated_image,
        },
        "settings": {
            "allow_client_comments": task.settings.allow_client_comments,
            "notify_on_update": task.settings.notify_on_update,
            "auto_advance_on_approval": task.settings.auto_advance_on_approval,
        },
        "version": task.version,
        "created_at": task.created_at,
        "updated_at": task.updated_at,
    }


def task_from_document(doc_id: str, data: dict[str, Any]) -> TaskEntity:
    approval = data.get("client_approval") or {}
    settings = data.get("settings") or {}
    return TaskEntity(
        id=doc_id,
        title=data["title"],
        briefing=data["briefing"],
        client_id=data["client_id"],
        task_model_id=data["task_model_id"],
        workflow_id=data["workflow_id"],
        current_step=int(data["current_step"]),
        current_step_id=data.get("current_step_id", ""),
        total_steps=int(data["total_steps"]),
        due_date=parse_datetime(data["due_date"]),
        created_by=data.get("created_by"),
        status=TaskStatus(data.get("status", TaskStatus.ACTIVE.value)),
        priority=TaskPriority(data.get("priority", TaskPriority.MEDIUM.value)),
        started_at=parse_datetime(data.get("started_at")),
        completed_at=parse_datetime(data.get("completed_at")),
        estimated_hours=float(data.get("estimated_hours", 8.0)),
        tags=list(data.get("tags") or []),
        assigned_users=[
            StepAssignment(
                step_order=int(a["step_order"]),
                step_id=a.get("step_id", ""),
                step_name=a.get("step_name", ""),
                user_id=a["user_id"],
                assigned_by=a.get("assigned_by"),
                assigned_at=parse_datetime(a.get("assigned_at")),
            )
            for a in data.get("assigned_users") or []
        ],
        initial_attachments=_attachments_in(data.get("initial_attachments")),
        deliveries=[
            Delivery(
                id=d["id"],
                step_order=int(d["step_order"]),
                step_id=d.get("step_id", ""),
                step_name=d.get("step_name", ""),
                delivered_by=d["delivered_by"],
                attachments=_attachments_in(d.get("attachments")),
                delivered_at=parse_datetime(d["delivered_at"]),
                notes=d.get("notes"),
                status=DeliveryStatus(d.get("status", DeliveryStatus.ACTIVE.value)),
            )
            for d in data.get("deliveries") or []
        ],
        comments=[
            Comment(
                id=c["id"],
                author_id=c.get("author_id"),
                content=c.get("content", ""),
                created_at=parse_datetime(c["created_at"]),
                mentions=list(c.get("mentions") or []),
                attachments=_attachments_in(c.get("attachments")),
                is_internal=c.get("is_internal", True),
            )
            for c in data.get("comments") or []
        ],
        history=[
            HistoryEntry(
                id=h["id"],
                action=HistoryAction(h["action"]),
                description=h.get("description", ""),
                changed_by=h.get("changed_by"),
                timestamp=parse_datetime(h["timestamp"]),
                previous_value=h.get("previous_value"),
                new_value=h.get("new_value"),
                metadata=dict(h.get("metadata") or {}),
            )
            for h in data.get("history") or []
        ],
        client_approval=ClientApproval(
            status=ClientApprovalStatus(
                approval.get("status", ClientApprovalStatus.PENDING.value)
            ),
            approved_at=parse_datetime(approval.get("approved_at")),
            rejected_at=parse_datetime(approval.get("rejected_at")),
            comments=approval.get("comments"),
            annotated_image=approval.get("annotated_image"),
        ),
        settings=TaskSettings(
            allow_client_comments=settings.get("allow_client_comments", True),
            notify_on_update=settings.get("notify_on_update", True),
            auto_advance_on_approval=settings.get("auto_advance_on_approval", True),
        ),
        version=int(data.get("version", 0)),
        created_at=parse_datetime(data.get("created_at")),
        updated_at=parse_datetime(data.get("updated_at")),
    )


# ---- Workflow ----


def workflow_to_document(workflow: WorkflowEntity) -> dict[str, Any]:
    return {
        "name": workflow.name,
        "description": workflow.description,
        "steps": [
            {
                "id": s.id,
                "name": s.name,
                "order": s.order,
                "description": s.description,
                "color": s.color,
                "icon": s.icon,
                "settings": _step_settings_out(s.settings),
            }
            for s in workflow.ordered_steps
        ],
        "created_by": workflow.created_by,
        "is_active": workflow.is_active,
        "is_default": workflow.is_default,
        "created_at": workflow.created_at,
        "updated_at": workflow.updated_at,
    }


def workflow_from_document(doc_id: str, data: dict[str, Any]) -> WorkflowEntity:
    return WorkflowEntity(
        id=doc_id,
        name=data["name"],
        steps=[
            WorkflowStep(
                id=s["id"],
                name=s["name"],
                order=int(s["order"]),
                description=s.get("description"),
                color=s.get("color") or "#3B82F6",
                icon=s.get("icon") or "circle",
                settings=_step_settings_in(s.get("settings")),
            )
            for s in data.get("steps") or []
        ],
        created_by=data.get("created_by"),
        description=data.get("description"),
        is_active=data.get("is_active", True),
        is_default=data.get("is_default", False),
        created_at=parse_datetime(data.get("created_at")),
        updated_at=parse_datetime(data.get("updated_at")),
    )


# ---- Task model ----


def task_model_to_document(model: TaskModelEntity) -> dict[str, Any]:
    return {
        "name": model.name,
        "description": model.description,
        "workflow_id": model.workflow_id,
        "selected_steps": [
            {
                "step_id": s.step_id,
                "step_order": s.step_order,
                "step_name": s.step_name,
                "step_color": s.step_color,
                "step_icon": s.step_icon,
                "step_settings": _step_settings_out(s.step_settings),
            }
            for s in model.ordered_steps
        ],
        "default_assignees": [
            {
                "step_id": a.step_id,
                "step_order": a.step_order,
                "step_name": a.step_name,
                "user_id": a.user_id,
            }
            for a in model.default_assignees
        ],
        "settings": {
            "default_priority": model.settings.default_priority.value,
            "estimated_hours": float(model.settings.estimated_hours),
            "category": model.settings.category,
            "tags": list(model.settings.tags),
        },
        "stats": {
            "total_tasks": model.stats.total_tasks,
            "completed_tasks": model.stats.completed_tasks,
            "last_used": model.stats.last_used,
        },
        "created_by": model.created_by,
        "is_active": model.is_active,
        "created_at": model.created_at,
        "updated_at": model.updated_at,
    }


def task_model_from_document(doc_id: str, data: dict[str, Any]) -> TaskModelEntity:
    settings = data.get("settings") or {}
    stats = data.get("stats") or {}
    return TaskModelEntity(
        id=doc_id,
        name=data["name"],
        workflow_id=data["workflow_id"],
        selected_steps=[
            SelectedStep(
                step_id=s["step_id"],
                step_order=int(s["step_order"]),
                step_name=s["step_name"],
                step_color=s.get("step_color") or "#3B82F6",
                step_icon=s.get("step_icon") or "circle",
                step_settings=_step_settings_in(s.get("step_settings")),
            )
            for s in data.get("selected_steps") or []
        ],
        created_by=data.get("created_by"),
        description=data.get("description"),
        default_assignees=[
            DefaultAssignee(
                step_id=a["step_id"],
                step_order=int(a["step_order"]),
                step_name=a.get("step_name", ""),
                user_id=a["user_id"],
            )
            for a in data.get("default_assignees") or []
        ],
        settings=TaskModelSettings(
            default_priority=TaskPriority(
                settings.get("default_priority", TaskPriority.MEDIUM.value)
            ),
            estimated_hours=float(settings.get("estimated_hours", 8.0)),
            category=settings.get("category"),
            tags=list(settings.get("tags") or []),
        ),
        is_active=data.get("is_active", True),
        stats=TaskModelStats(
            total_tasks=int(stats.get("total_tasks", 0)),
            completed_tasks=int(stats.get("completed_tasks", 0)),
            last_used=parse_datetime(stats.get("last_used")),
        ),
        created_at=parse_datetime(data.get("created_at")),
        updated_at=parse_datetime(data.get("updated_at")),
    )


# ---- Client and user ----


def client_to_document(client: ClientEntity) -> dict[str, Any]:
    return {
        "company_name": client.company_name,
        "responsible_name": client.responsible_name,
        "responsible_email": client.responsible_email,
        "phone": client.phone,
        "access_id": client.access_id,
        "hashed_access_password": client.hashed_access_password,
        "status": client.status.value,
        "logo": client.logo,
        "last_access": client.last_access,
        "access_count": client.access_count,
        "created_at": client.created_at,
        "updated_at": client.updated_at,
    }


def client_from_document(doc_id: str, data: dict[str, Any]) -> ClientEntity:
    return ClientEntity(
        id=doc_id,
        company_name=data["company_name"],
        responsible_name=data["responsible_name"],
        responsible_email=data["responsible_email"],
        phone=data["phone"],
        access_id=data["access_id"],
        hashed_access_password=data.get("hashed_access_password", ""),
        status=AccountStatus(data.get("status", AccountStatus.ACTIVE.value)),
        logo=data.get("logo"),
        last_access=parse_datetime(data.get("last_access")),
        access_count=int(data.get("access_count", 0)),
        created_at=parse_datetime(data.get("created_at")),
        updated_at=parse_datetime(data.get("updated_at")),
    )


def user_to_document(user: UserEntity) -> dict[str, Any]:
    return {
        "name": user.name,
        "email": user.email,
        "hashed_password": user.hashed_password,
        "position": user.position,
        "phone": user.phone,
        "role": user.role.value,
        "status": user.status.value,
        "profile_image": user.profile_image,
        "last_login": user.last_login,
        "created_at": user.created_at,
        "updated_at": user.updated_at,
    }


def user_from_document(doc_id: str, data: dict[str, Any]) -> UserEntity:
    return UserEntity(
        id=doc_id,
        name=data["name"],
        email=data["email"],
        hashed_password=data.get("hashed_password", ""),
        position=data.get("position", ""),
        phone=data.get("phone"),
        role=UserRole(data.get("role", UserRole.OPERATIONAL.value)),
        status=AccountStatus(data.get("status", AccountStatus.ACTIVE.value)),
        profile_image=data.get("profile_image"),
        last_login=parse_datetime(data.get("last_login")),
        created_at=parse_datetime(data.get("created_at")),
        updated_at=parse_datetime(data.get("updated_at")),
    )
