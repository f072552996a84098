"""User service: implements UserManagementPort for account use cases.

This is a core service that orchestrates validation, lifecycle rules and
persistence for each use case. Every mutating operation runs as a single
unit of work on the repository, so a failure anywhere rolls back all of
its writes. All state changes are logged.
"""

import logging

from .exceptions import NotFoundError, ValidationError
from .models import User, UserView
from .ports import UserManagementPort, UserRepositoryPort
from .uniqueness import UniquenessChecker

logger = logging.getLogger(__name__)


class UserService(UserManagementPort):
    """Core implementation of UserManagementPort."""

    def __init__(
        self,
        repository: UserRepositoryPort,
        uniqueness: UniquenessChecker | None = None,
        allow_own_email: bool = False,
    ):
        """Initialize the user service.

        Args:
            repository: UserRepositoryPort implementation for persistence.
            uniqueness: Checker used for username/email availability.
                Defaults to one backed by ``repository``.
            allow_own_email: If True, updating a user's email to the value
                it already holds is accepted. If False, the availability
                check counts the user's own row as a collision.
        """
        self.repository = repository
        self.uniqueness = uniqueness or UniquenessChecker(repository)
        self.allow_own_email = allow_own_email

    async def _get_or_raise(self, user_id: int) -> User:
        user = await self.repository.find_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    async def create_user(self, username: str, email: str, password: str) -> UserView:
        """Register a new ACTIVE user.

        Args:
            username: Unique, non-blank login name.
            email: Unique, well-formed email address.
            password: Non-blank password, stored as given.

        Returns:
            View of the persisted user with id and timestamps assigned.

        Raises:
            ValidationError: If a field is invalid or the username or
                email already exists.
        """
        async with self.repository.transaction():
            user = User.create(username, email, password)

            if not await self.uniqueness.can_register(username, email):
                raise ValidationError("username or email already exists")

            saved = await self.repository.save(user)

        logger.info(
            f"User {saved.id} created",
            extra={"user_id": saved.id, "username": saved.username},
        )
        return UserView.from_user(saved)

    async def update_user(self, user_id: int, email: str | None = None) -> UserView:
        """Update a user's email.

        Args:
            user_id: Id of the user to update.
            email: New email, or None to leave the email unchanged.

        Returns:
            View of the updated user.

        Raises:
            NotFoundError: If the user does not exist.
            ValidationError: If the email is already taken or malformed.
        """
        async with self.repository.transaction():
            user = await self._get_or_raise(user_id)

            if email is not None:
                exclude = user_id if self.allow_own_email else None
                if not await self.uniqueness.is_email_available(email, exclude):
                    raise ValidationError("email already exists")
                user.update_email(email)

            saved = await self.repository.save(user)

        logger.info(
            f"User {user_id} updated",
            extra={"user_id": user_id, "email_changed": email is not None},
        )
        return UserView.from_user(saved)

    async def get_user_by_id(self, user_id: int) -> UserView:
        """Retrieve a single user.

        Raises:
            NotFoundError: If the user does not exist.
        """
        user = await self._get_or_raise(user_id)
        logger.debug(f"Retrieved user {user_id}", extra={"user_id": user_id})
        return UserView.from_user(user)

    async def get_all_users(self) -> list[UserView]:
        """Retrieve every user, ordered by id."""
        users = await self.repository.find_all()
        logger.debug("Listed users", extra={"count": len(users)})
        return [UserView.from_user(user) for user in users]

    async def delete_user(self, user_id: int) -> None:
        """Delete a user.

        Raises:
            NotFoundError: If the user does not exist.
        """
        async with self.repository.transaction():
            await self._get_or_raise(user_id)
            await self.repository.delete_by_id(user_id)

        logger.info(f"User {user_id} deleted", extra={"user_id": user_id})

    async def activate_user(self, user_id: int) -> UserView:
        """Activate a user. Only INACTIVE users change status.

        Raises:
            NotFoundError: If the user does not exist.
        """
        async with self.repository.transaction():
            user = await self._get_or_raise(user_id)
            user.activate()
            saved = await self.repository.save(user)

        logger.info(
            f"User {user_id} activated, status: {saved.status.description}",
            extra={"user_id": user_id, "status": saved.status.name},
        )
        return UserView.from_user(saved)

    async def deactivate_user(self, user_id: int) -> UserView:
        """Deactivate a user. Only ACTIVE users change status.

        Raises:
            NotFoundError: If the user does not exist.
        """
        async with self.repository.transaction():
            user = await self._get_or_raise(user_id)
            user.deactivate()
            saved = await self.repository.save(user)

        logger.info(
            f"User {user_id} deactivated, status: {saved.status.description}",
            extra={"user_id": user_id, "status": saved.status.name},
        )
        return UserView.from_user(saved)
