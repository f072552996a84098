"""Domain models for the accounts service.

All models in this module use only Python standard library types,
ensuring zero external dependencies in the core domain.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from .exceptions import ValidationError

# storage ids are signed 64-bit integers
MAX_USER_ID = 2**63 - 1

# local@domain, where domain is one or more dot-separated DNS labels
EMAIL_PATTERN = re.compile(
    r"^[A-Za-z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?"
    r"(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?)*$"
)


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def validate_email(email: Any) -> str:
    """Return ``email`` unchanged if it is a well-formed address.

    Raises:
        ValidationError: If the value is blank or malformed.
    """
    if _is_blank(email):
        raise ValidationError("email must not be blank")
    if not EMAIL_PATTERN.match(email):
        raise ValidationError(f"email is not a well-formed address: {email!r}")
    return email


class UserStatus(Enum):
    """Lifecycle states for a user account.

    State transitions:
    - ACTIVE → INACTIVE (deactivate)
    - INACTIVE → ACTIVE (activate)

    LOCKED has no inbound or outbound transition through the lifecycle
    operations; a locked account stays locked under activate/deactivate.
    """

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    LOCKED = "LOCKED"

    @property
    def description(self) -> str:
        """Human-readable label for the status."""
        return _STATUS_DESCRIPTIONS[self]


_STATUS_DESCRIPTIONS = {
    UserStatus.ACTIVE: "Active",
    UserStatus.INACTIVE: "Deactivated",
    UserStatus.LOCKED: "Locked",
}


@dataclass(eq=False)
class User:
    """A single user account.

    Identity is the storage-assigned ``id``: it is None until the first
    save and never changes afterwards. Timestamps are owned by the
    repository. ``status`` must only change through activate() and
    deactivate().

    Note: This dataclass is intentionally mutable so the lifecycle
    operations can update it in place before the caller saves it.
    """

    username: str
    email: str
    password: str = field(repr=False)
    status: UserStatus = UserStatus.ACTIVE
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    created_by: str | None = None
    updated_by: str | None = None

    def __post_init__(self) -> None:
        """Validate user invariants on creation or rehydration.

        Raises:
            ValidationError: On the first violated field constraint.
        """
        if _is_blank(self.username):
            raise ValidationError("username must not be blank")
        validate_email(self.email)
        if _is_blank(self.password):
            raise ValidationError("password must not be blank")
        if not isinstance(self.status, UserStatus):
            raise ValidationError(f"status must be a UserStatus, got {self.status!r}")

    @classmethod
    def create(cls, username: str, email: str, password: str) -> "User":
        """Build a new, unsaved ACTIVE user.

        Uniqueness is not checked here; that is the caller's job.
        """
        return cls(
            username=username,
            email=email,
            password=password,
            status=UserStatus.ACTIVE,
        )

    def update_email(self, new_email: str | None) -> None:
        """Replace the email if a different, well-formed value is given."""
        if new_email is None or new_email == self.email:
            return
        self.email = validate_email(new_email)

    def activate(self) -> None:
        """Transition INACTIVE → ACTIVE. Any other status is left alone."""
        if self.status == UserStatus.INACTIVE:
            self.status = UserStatus.ACTIVE

    def deactivate(self) -> None:
        """Transition ACTIVE → INACTIVE. Any other status is left alone."""
        if self.status == UserStatus.ACTIVE:
            self.status = UserStatus.INACTIVE

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if type(other) is not type(self):
            return False
        assert isinstance(other, User)
        return self.id is not None and other.id is not None and self.id == other.id

    def __hash__(self) -> int:
        # unsaved users hash by object identity
        if self.id is None:
            return object.__hash__(self)
        return hash((type(self).__name__, self.id))


@dataclass(frozen=True)
class UserView:
    """Outward representation of a user.

    What the service hands to adapters. Carries no password.
    """

    id: int
    username: str
    email: str
    status: str  # UserStatus name
    created_at: datetime | None
    updated_at: datetime | None

    @classmethod
    def from_user(cls, user: User) -> "UserView":
        """Build a view from a persisted user.

        Raises:
            ValueError: If the user has not been saved yet.
        """
        if user.id is None:
            raise ValueError("cannot build a view of an unsaved user")
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            status=user.status.name,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
