"""Port interfaces for the accounts service.

These abstract base classes define the boundaries between core
domain logic and external adapters. Implementations live in the
adapters/ package.

Port Interface Categories:

1. **Driven Ports** (core calls out to adapters)
   - UserRepositoryPort: Persist and query users

2. **Driving Ports** (adapters/external systems call into core)
   - UserManagementPort: Account use cases (create, update, activate, ...)
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager

from .models import User, UserView


# ============================================================================
# DRIVEN PORTS (Core calls out to adapters)
# ============================================================================


class UserRepositoryPort(ABC):
    """Port for persisting and querying users.

    Implementations must handle:
    - Assigning a fresh unique id and both timestamps on first insert
    - Refreshing updated_at on every save
    - Enforcing username/email uniqueness at the storage level
    - Unit-of-work boundaries via transaction()

    Users returned by any method are detached copies; mutating them has
    no effect on storage until they are passed back to save().
    """

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[None]:
        """Delimit a unit of work.

        Every repository call made inside the ``async with`` block belongs
        to the same transaction. The transaction commits when the block
        exits normally and rolls back when it exits with an exception,
        which is then re-raised. Nested blocks join the outer transaction.
        """

    @abstractmethod
    async def save(self, user: User) -> User:
        """Insert or update a user.

        Args:
            user: User to persist. If ``user.id`` is None the user is
                inserted and receives a fresh id; otherwise the existing
                row with that id is updated.

        Returns:
            A copy of the persisted user with id and timestamps assigned.

        Raises:
            ValidationError: If another user already holds the username
                or email.
            NotFoundError: If ``user.id`` is set but no such row exists.
        """

    @abstractmethod
    async def find_by_id(self, user_id: int) -> User | None:
        """Retrieve a user by id, or None if absent."""

    @abstractmethod
    async def find_by_username(self, username: str) -> User | None:
        """Retrieve a user by username, or None if absent."""

    @abstractmethod
    async def find_by_email(self, email: str) -> User | None:
        """Retrieve a user by email, or None if absent."""

    @abstractmethod
    async def delete_by_id(self, user_id: int) -> None:
        """Delete the user with this id. Deleting an absent id is a no-op."""

    @abstractmethod
    async def exists_by_username(self, username: str) -> bool:
        """Return True if any persisted user has this username."""

    @abstractmethod
    async def exists_by_email(self, email: str) -> bool:
        """Return True if any persisted user has this email."""

    @abstractmethod
    async def find_all(self) -> list[User]:
        """Return every persisted user ordered by id."""

    @abstractmethod
    async def close(self) -> None:
        """Release any connections or pools held by the repository."""


# ============================================================================
# DRIVING PORTS (Adapters/external systems call into core)
# ============================================================================


class UserManagementPort(ABC):
    """Port for account management use cases.

    Driving port: the REST and CLI adapters invoke these methods.
    Implementations live in the core (user_service.py).
    """

    @abstractmethod
    async def create_user(self, username: str, email: str, password: str) -> UserView:
        """Register a new ACTIVE user.

        Raises:
            ValidationError: If the username or email is taken or a field
                is invalid.
        """

    @abstractmethod
    async def update_user(self, user_id: int, email: str | None = None) -> UserView:
        """Update a user's email. ``email=None`` leaves it unchanged.

        Raises:
            NotFoundError: If the user does not exist.
            ValidationError: If the email is taken or malformed.
        """

    @abstractmethod
    async def get_user_by_id(self, user_id: int) -> UserView:
        """Retrieve a single user.

        Raises:
            NotFoundError: If the user does not exist.
        """

    @abstractmethod
    async def get_all_users(self) -> list[UserView]:
        """Retrieve every user."""

    @abstractmethod
    async def delete_user(self, user_id: int) -> None:
        """Delete a user.

        Raises:
            NotFoundError: If the user does not exist.
        """

    @abstractmethod
    async def activate_user(self, user_id: int) -> UserView:
        """Activate an INACTIVE user; other statuses are unchanged.

        Raises:
            NotFoundError: If the user does not exist.
        """

    @abstractmethod
    async def deactivate_user(self, user_id: int) -> UserView:
        """Deactivate an ACTIVE user; other statuses are unchanged.

        Raises:
            NotFoundError: If the user does not exist.
        """
