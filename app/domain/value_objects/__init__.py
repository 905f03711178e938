"""Domain value objects and shared value types."""

from app.domain.value_objects.core import (
    DEFAULT_STEP_COLOR,
    Attachment,
    EmailAddress,
    HexColor,
)

__all__ = [
    "DEFAULT_STEP_COLOR",
    "Attachment",
    "EmailAddress",
    "HexColor",
]
