"""Client domain entity.

A client is the agency's customer. It owns tasks and reaches them through
the client portal using an access id and password; it is not a system user.
"""

from dataclasses import dataclass
from datetime import datetime

from app.domain.enums import AccountStatus
from app.domain.exceptions import ValidationException
from app.domain.value_objects.core import EmailAddress

COMPANY_NAME_MAX_LENGTH = 100
RESPONSIBLE_NAME_MAX_LENGTH = 100


@dataclass
class ClientEntity:
    """Domain entity for client. Validation runs on construction."""

    id: str
    company_name: str
    responsible_name: str
    responsible_email: str
    phone: str
    access_id: str
    hashed_access_password: str
    status: AccountStatus = AccountStatus.ACTIVE
    logo: str | None = None
    last_access: datetime | None = None
    access_count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Validate client business rules. Raises ValidationException if invalid."""
        if not self.id:
            raise ValidationException("Client ID is required", field="id")
        if not self.company_name or not self.company_name.strip():
            raise ValidationException("Company name is required", field="company_name")
        if len(self.company_name) > COMPANY_NAME_MAX_LENGTH:
            raise ValidationException(
                f"Company name must not exceed {COMPANY_NAME_MAX_LENGTH} characters",
                field="company_name",
            )
        if not self.responsible_name or not self.responsible_name.strip():
            raise ValidationException(
                "Responsible name is required", field="responsible_name"
            )
        if len(self.responsible_name) > RESPONSIBLE_NAME_MAX_LENGTH:
            raise ValidationException(
                f"Responsible name must not exceed {RESPONSIBLE_NAME_MAX_LENGTH} characters",
                field="responsible_name",
            )
        try:
            self.responsible_email = EmailAddress(self.responsible_email).value
        except ValueError as e:
            raise ValidationException(str(e), field="responsible_email") from e
        if not self.phone or not self.phone.strip():
            raise ValidationException("Phone is required", field="phone")
        if not self.access_id:
            raise ValidationException("Access id is required", field="access_id")

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE

    @property
    def company_initials(self) -> str:
        return "".join(word[0] for word in self.company_name.split() if word).upper()[:3]

    def record_access(self, at: datetime) -> None:
        """Record a successful portal login."""
        self.last_access = at
        self.access_count += 1
