"""Domain enumerations for the task-management application.

Enums represent fixed sets of domain values (task status, priority,
delivery and approval state, history actions, user roles).
"""

from enum import Enum


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings.

        Returns:
            List of enum value strings (e.g. for validation or serialization).
        """
        return [member.value for member in cls]


class TaskStatus(_ValuesMixin, str, Enum):
    """Task lifecycle status.

    A task is ACTIVE while it progresses through its steps. COMPLETED is
    reached only by advancing into the final step; revert, rejection and
    reopen bring it back to ACTIVE.
    """

    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ON_HOLD = "on_hold"


class TaskPriority(_ValuesMixin, str, Enum):
    """Task priority. rank orders priorities for sorting (high first)."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return {"low": 0, "medium": 1, "high": 2}[self.value]


class DeliveryStatus(_ValuesMixin, str, Enum):
    """State of a delivery. Replaced deliveries are superseded, never removed."""

    ACTIVE = "active"
    SUPERSEDED = "superseded"
    REJECTED = "rejected"


class ClientApprovalStatus(_ValuesMixin, str, Enum):
    """Client approval record status."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApprovalDecision(_ValuesMixin, str, Enum):
    """Decision a client can submit from the portal."""

    APPROVED = "approved"
    REJECTED = "rejected"


class HistoryAction(_ValuesMixin, str, Enum):
    """Action recorded on a task history entry."""

    CREATED = "created"
    UPDATED = "updated"
    STEP_ADVANCED = "step_advanced"
    STEP_REVERTED = "step_reverted"
    ASSIGNED = "assigned"
    COMPLETED = "completed"
    REOPENED = "reopened"
    STATUS_CHANGED = "status_changed"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMMENT_ADDED = "comment_added"
    DELIVERY_ADDED = "delivery_added"


class UserRole(_ValuesMixin, str, Enum):
    """System user role. Operational users act only on steps assigned to them."""

    ADMIN = "admin"
    OPERATIONAL = "operational"


class AccountStatus(_ValuesMixin, str, Enum):
    """Active/inactive flag shared by users and clients."""

    ACTIVE = "active"
    INACTIVE = "inactive"
