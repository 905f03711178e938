"""Per-request context held in contextvars.

Provides async-safe storage for request-scoped data: the request id
(set by RequestIDMiddleware, stamped on log records) and the acting
principal (set by the auth dependencies once the bearer token is verified).

Usage:
    set_request_id("abc123")
    set_current_actor("user123", ActorType.USER)
    actor = get_actor_context()
"""

from contextvars import ContextVar
from dataclasses import dataclass

from app.shared.enums import ActorType

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)
_current_actor_id: ContextVar[str | None] = ContextVar("current_actor_id", default=None)
_current_actor_type: ContextVar[ActorType] = ContextVar(
    "current_actor_type", default=ActorType.SYSTEM
)


@dataclass(frozen=True)
class ActorContext:
    """Who is acting in this request: a staff user, a portal client or the system."""

    actor_id: str | None
    actor_type: ActorType
    request_id: str | None = None


def set_request_id(request_id: str | None) -> None:
    _request_id.set(request_id)


def get_request_id() -> str | None:
    return _request_id.get()


def set_current_actor(actor_id: str | None, actor_type: ActorType) -> None:
    """Set the acting principal for this request.

    Raises:
        ValueError: If actor_type is USER or CLIENT and actor_id is empty.
    """
    if actor_type != ActorType.SYSTEM and not actor_id:
        raise ValueError(f"actor_id is required when actor_type is {actor_type.value}")
    _current_actor_id.set(actor_id)
    _current_actor_type.set(actor_type)


def clear_current_actor() -> None:
    _current_actor_id.set(None)
    _current_actor_type.set(ActorType.SYSTEM)


def get_actor_context() -> ActorContext:
    """Read the current actor; SYSTEM outside a request."""
    return ActorContext(
        actor_id=_current_actor_id.get(),
        actor_type=_current_actor_type.get(),
        request_id=_request_id.get(),
    )
