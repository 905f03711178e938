"""User domain entity.

Represents an agency staff member, independent of persistence.
"""

from dataclasses import dataclass
from datetime import datetime

from app.domain.enums import AccountStatus, UserRole
from app.domain.exceptions import ValidationException
from app.domain.value_objects.core import EmailAddress

NAME_MAX_LENGTH = 100


@dataclass
class UserEntity:
    """Domain entity for user. Validation runs on construction.

    Admins may act on any task; operational users only on steps they
    are assigned to (see TaskAuthorizationService).
    """

    id: str
    name: str
    email: str
    hashed_password: str
    position: str
    phone: str | None = None
    role: UserRole = UserRole.OPERATIONAL
    status: AccountStatus = AccountStatus.ACTIVE
    profile_image: str | None = None
    last_login: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Validate user business rules. Raises ValidationException if invalid."""
        if not self.id:
            raise ValidationException("User ID is required", field="id")
        if not self.name or not self.name.strip():
            raise ValidationException("Name is required", field="name")
        if len(self.name) > NAME_MAX_LENGTH:
            raise ValidationException(
                f"Name must not exceed {NAME_MAX_LENGTH} characters", field="name"
            )
        try:
            self.email = EmailAddress(self.email).value
        except ValueError as e:
            raise ValidationException(str(e), field="email") from e
        if not self.position or not self.position.strip():
            raise ValidationException("Position is required", field="position")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE

    @property
    def first_name(self) -> str:
        return self.name.split()[0]

    @property
    def initials(self) -> str:
        return "".join(part[0] for part in self.name.split() if part).upper()[:2]
