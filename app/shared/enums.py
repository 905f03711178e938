"""Shared enumerations used across layers.

Cross-cutting enums (e.g. who is acting on a request). Domain-specific
enums (task status, priority, ...) live in app.domain.enums.
"""

from enum import Enum


class ActorType(str, Enum):
    """Kind of caller performing an action."""

    USER = "user"
    CLIENT = "client"
    SYSTEM = "system"

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]
