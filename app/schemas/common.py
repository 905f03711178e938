"""Schemas shared by several resources (attachments, pagination)."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.domain.value_objects.core import Attachment
from app.shared.utils.generators import generate_cuid


class AttachmentIn(BaseModel):
    """Reference to an already-stored file. The API never receives file bytes."""

    filename: str = Field(..., min_length=1, max_length=255)
    original_name: str | None = Field(default=None, max_length=255)
    mimetype: str = Field(default="application/octet-stream", max_length=127)
    size: int = Field(..., gt=0, description="Size in bytes")
    url: str = Field(..., min_length=1, max_length=2048)

    def to_attachment(self, uploaded_by: str | None, uploaded_at: datetime) -> Attachment:
        return Attachment(
            id=generate_cuid(),
            filename=self.filename,
            original_name=self.original_name or self.filename,
            mimetype=self.mimetype,
            size=self.size,
            url=self.url,
            uploaded_by=uploaded_by,
            uploaded_at=uploaded_at,
        )


class AttachmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    filename: str
    original_name: str
    mimetype: str
    size: int
    url: str
    uploaded_by: str | None
    uploaded_at: datetime
