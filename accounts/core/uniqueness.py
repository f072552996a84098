"""Username and email availability checks.

These are the application-level fast path for friendly errors. The
storage unique constraint remains the source of truth, because a check
followed by a save is not atomic.
"""

import logging

from .ports import UserRepositoryPort

logger = logging.getLogger(__name__)


class UniquenessChecker:
    """Read-only collision queries against the user repository."""

    def __init__(self, repository: UserRepositoryPort):
        self.repository = repository

    async def is_username_available(self, username: str) -> bool:
        """True iff no persisted user has this username."""
        return not await self.repository.exists_by_username(username)

    async def is_email_available(
        self, email: str, exclude_user_id: int | None = None
    ) -> bool:
        """True iff no persisted user has this email.

        Args:
            email: Address to look up.
            exclude_user_id: If given, a match on this user's own row does
                not count as taken.
        """
        if exclude_user_id is None:
            return not await self.repository.exists_by_email(email)

        holder = await self.repository.find_by_email(email)
        return holder is None or holder.id == exclude_user_id

    async def can_register(self, username: str, email: str) -> bool:
        """True iff both the username and the email are available."""
        if not await self.is_username_available(username):
            logger.debug("Username already taken", extra={"username": username})
            return False
        if not await self.is_email_available(email):
            logger.debug("Email already taken", extra={"email": email})
            return False
        return True
