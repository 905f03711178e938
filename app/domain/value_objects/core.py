"""Domain value objects for the task-management application.

Value objects are immutable types that represent domain concepts with
self-validation. They have no identity beyond their value.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any

_HEX_COLOR_RE = re.compile(r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$")
# Loose check; the API layer validates with pydantic's EmailStr-like rules.
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[A-Za-z]{2,}$")

DEFAULT_STEP_COLOR = "#3B82F6"


@dataclass(frozen=True)
class HexColor:
    """Value object for a step color (#RGB or #RRGGBB)."""

    value: str = DEFAULT_STEP_COLOR

    def __post_init__(self) -> None:
        """Validate hex format.

        Raises:
            ValueError: If the value is not a #RGB / #RRGGBB string.
        """
        if not self.value or not _HEX_COLOR_RE.match(self.value):
            raise ValueError("Color must be a hexadecimal value like #3B82F6")


@dataclass(frozen=True)
class EmailAddress:
    """Value object for an email address, normalized to lowercase."""

    value: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", (self.value or "").strip().lower())
        if not _EMAIL_RE.match(self.value):
            raise ValueError("Invalid email address")


@dataclass(frozen=True)
class Attachment:
    """Metadata of a stored file attached to a task, comment or delivery.

    The binary lives in external file storage; only its reference travels
    with the task document. Attachments are immutable once recorded.
    """

    id: str
    filename: str
    original_name: str
    mimetype: str
    size: int
    url: str
    uploaded_by: str | None
    uploaded_at: datetime

    def __post_init__(self) -> None:
        """Validate required fields.

        Raises:
            ValueError: If a required field is empty or size is not positive.
        """
        if not self.id:
            raise ValueError("Attachment id is required")
        if not self.filename or not self.original_name:
            raise ValueError("Attachment filename is required")
        if not self.url:
            raise ValueError("Attachment url is required")
        if self.size <= 0:
            raise ValueError("Attachment size must be positive")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "filename": self.filename,
            "original_name": self.original_name,
            "mimetype": self.mimetype,
            "size": self.size,
            "url": self.url,
            "uploaded_by": self.uploaded_by,
            "uploaded_at": self.uploaded_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Attachment":
        return cls(
            id=data["id"],
            filename=data["filename"],
            original_name=data.get("original_name") or data["filename"],
            mimetype=data.get("mimetype", "application/octet-stream"),
            size=int(data["size"]),
            url=data["url"],
            uploaded_by=data.get("uploaded_by"),
            uploaded_at=data["uploaded_at"],
        )
