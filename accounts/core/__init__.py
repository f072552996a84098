"""Core domain logic for the accounts service.

This package contains zero external dependencies and represents
the pure business logic of the application. All adapters and
external integrations are handled by the adapters package.
"""

from .exceptions import AccountsError, NotFoundError, ValidationError
from .models import User, UserStatus, UserView

__all__ = [
    "AccountsError",
    "NotFoundError",
    "User",
    "UserStatus",
    "UserView",
    "ValidationError",
]
