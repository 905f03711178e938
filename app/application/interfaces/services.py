"""Service interfaces (ports) for the application layer.

Protocols define contracts for application services (DIP).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from app.domain.entities.workflow import StepSettings


class ResolvedStep(Protocol):
    """A task step as seen by the progression engine."""

    step_id: str
    step_name: str
    step_settings: StepSettings


# Step resolver interface
class StepResolver(Protocol):
    """Maps a 1-based task step ordinal to its step (TaskModelEntity implements this)."""

    def resolve_step(self, ordinal: int) -> ResolvedStep | None:
        """Return the step at ordinal, or None if out of range."""


# Notification interface
class ITaskNotifier(Protocol):
    """Protocol for pushing task events to connected users (best-effort)."""

    async def task_assigned(self, user_id: str, task_id: str, title: str, step: int) -> None:
        """Tell a user they are now responsible for the task's current step."""

    async def task_completed(self, user_ids: list[str], task_id: str, title: str) -> None:
        """Tell users assigned to the task that it has been completed."""

    async def user_mentioned(
        self, user_id: str, task_id: str, title: str, comment_id: str
    ) -> None:
        """Tell a user they were mentioned in a comment."""


# Password hashing interface
class IPasswordHasher(Protocol):
    """Protocol for password hashing (bcrypt in infrastructure)."""

    def hash_password(self, password: str) -> str:
        """Return a salted hash of the password."""

    def verify_password(self, password: str, hashed: str) -> bool:
        """Return True if password matches the stored hash."""

    def verify_unknown(self, password: str) -> bool:
        """Spend the same time as verify_password for an unknown account; always False."""
