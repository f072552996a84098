"""In-memory user repository.

Reference implementation of UserRepositoryPort: a mapping from id to
User plus secondary indexes on username and email. Used for tests and
for the ``memory`` store backend. State lives only as long as the
process.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from contextvars import ContextVar
from dataclasses import replace
from datetime import UTC, datetime

from accounts.core.exceptions import NotFoundError, ValidationError
from accounts.core.models import User
from accounts.core.ports import UserRepositoryPort

logger = logging.getLogger(__name__)


class InMemoryUserRepository(UserRepositoryPort):
    """Dictionary-backed user repository with snapshot rollback."""

    def __init__(self, clock: Callable[[], datetime] | None = None):
        """Initialize an empty repository.

        Args:
            clock: Source of timestamps for created_at/updated_at.
                Defaults to the current UTC time.
        """
        self._users: dict[int, User] = {}
        self._ids_by_username: dict[str, int] = {}
        self._ids_by_email: dict[str, int] = {}
        self._next_id = 1
        self._clock = clock or (lambda: datetime.now(UTC))
        self._lock = asyncio.Lock()
        self._in_transaction: ContextVar[bool] = ContextVar(
            f"memory_repository_tx_{id(self)}", default=False
        )

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Run a unit of work, restoring the prior state on failure.

        Outermost transactions are serialized with a lock so that one
        unit of work cannot roll back another's writes.
        """
        if self._in_transaction.get():
            yield
            return

        async with self._lock:
            snapshot = (
                dict(self._users),
                dict(self._ids_by_username),
                dict(self._ids_by_email),
                self._next_id,
            )
            token = self._in_transaction.set(True)
            try:
                yield
            except BaseException:
                (
                    self._users,
                    self._ids_by_username,
                    self._ids_by_email,
                    self._next_id,
                ) = snapshot
                logger.debug("In-memory transaction rolled back")
                raise
            finally:
                self._in_transaction.reset(token)

    def _check_unique(self, user: User) -> None:
        holder = self._ids_by_username.get(user.username)
        if holder is not None and holder != user.id:
            raise ValidationError("username already exists")
        holder = self._ids_by_email.get(user.email)
        if holder is not None and holder != user.id:
            raise ValidationError("email already exists")

    async def save(self, user: User) -> User:
        """Insert or update a user, maintaining the secondary indexes."""
        now = self._clock()
        self._check_unique(user)

        if user.id is None:
            stored = replace(user, id=self._next_id, created_at=now, updated_at=now)
            self._next_id += 1
        else:
            existing = self._users.get(user.id)
            if existing is None:
                raise NotFoundError(f"User {user.id} not found")
            stored = replace(user, created_at=existing.created_at, updated_at=now)
            del self._ids_by_username[existing.username]
            del self._ids_by_email[existing.email]

        assert stored.id is not None
        self._users[stored.id] = stored
        self._ids_by_username[stored.username] = stored.id
        self._ids_by_email[stored.email] = stored.id
        return replace(stored)

    async def find_by_id(self, user_id: int) -> User | None:
        user = self._users.get(user_id)
        return replace(user) if user is not None else None

    async def find_by_username(self, username: str) -> User | None:
        user_id = self._ids_by_username.get(username)
        return await self.find_by_id(user_id) if user_id is not None else None

    async def find_by_email(self, email: str) -> User | None:
        user_id = self._ids_by_email.get(email)
        return await self.find_by_id(user_id) if user_id is not None else None

    async def delete_by_id(self, user_id: int) -> None:
        user = self._users.pop(user_id, None)
        if user is None:
            return
        del self._ids_by_username[user.username]
        del self._ids_by_email[user.email]

    async def exists_by_username(self, username: str) -> bool:
        return username in self._ids_by_username

    async def exists_by_email(self, email: str) -> bool:
        return email in self._ids_by_email

    async def find_all(self) -> list[User]:
        return [replace(self._users[user_id]) for user_id in sorted(self._users)]

    async def close(self) -> None:
        """Nothing to release."""
