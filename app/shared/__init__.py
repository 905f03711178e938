"""Cross-cutting pieces shared by every layer: request context, actor
types, telemetry and small utilities. Nothing here knows about tasks.
"""

from app.shared.context import (
    ActorContext,
    clear_current_actor,
    get_actor_context,
    get_request_id,
    set_current_actor,
    set_request_id,
)
from app.shared.enums import ActorType
from app.shared.utils import ensure_utc, generate_access_id, generate_cuid, utc_now

__all__ = [
    "ActorContext",
    "ActorType",
    "clear_current_actor",
    "ensure_utc",
    "generate_access_id",
    "generate_cuid",
    "get_actor_context",
    "get_request_id",
    "set_current_actor",
    "set_request_id",
    "utc_now",
]
