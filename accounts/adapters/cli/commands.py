"""CLI command implementations for account management.

Provides human-initiated actions through the command-line interface.

This adapter maps CLI commands (create, update, get, list, delete,
activate, deactivate) to UserManagementPort operations. It handles
CLI-specific formatting and error reporting.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from accounts.core.exceptions import AccountsError
from accounts.core.models import UserView
from accounts.core.ports import UserManagementPort

logger = logging.getLogger(__name__)


class CLICommandHandler:
    """Handles CLI commands by delegating to UserManagementPort.

    Domain errors are reported as ``{"status": "error", ...}`` results
    rather than raised, so an interactive session survives bad input.
    """

    def __init__(self, management: UserManagementPort):
        """Initialize the CLI command handler.

        Args:
            management: UserManagementPort implementation to execute commands.
        """
        self.management = management

    async def _run(
        self,
        operation: str,
        action: Callable[[], Awaitable[Any]],
        **context: Any,
    ) -> dict[str, Any]:
        """Run one operation and wrap its outcome in a result dict."""
        try:
            outcome = await action()
        except AccountsError as e:
            logger.error(f"Failed to {operation} user: {e}")
            return {"status": "error", "operation": operation, **context, "message": str(e)}

        result: dict[str, Any] = {"status": "success", "operation": operation, **context}
        if isinstance(outcome, UserView):
            result["user"] = outcome.to_dict()
        elif isinstance(outcome, list):
            result["users"] = [view.to_dict() for view in outcome]
            result["count"] = len(outcome)
        return result

    async def create_user(self, username: str, email: str, password: str) -> dict[str, Any]:
        """Create a user via CLI."""
        return await self._run(
            "create",
            lambda: self.management.create_user(username, email, password),
        )

    async def update_user(self, user_id: int, email: str | None = None) -> dict[str, Any]:
        """Update a user's email via CLI."""
        return await self._run(
            "update",
            lambda: self.management.update_user(user_id, email),
            user_id=user_id,
        )

    async def get_user(self, user_id: int) -> dict[str, Any]:
        """Show a single user via CLI."""
        return await self._run(
            "get", lambda: self.management.get_user_by_id(user_id), user_id=user_id
        )

    async def list_users(self) -> dict[str, Any]:
        """List all users via CLI."""
        return await self._run("list", self.management.get_all_users)

    async def delete_user(self, user_id: int) -> dict[str, Any]:
        """Delete a user via CLI."""
        result = await self._run(
            "delete", lambda: self.management.delete_user(user_id), user_id=user_id
        )
        if result["status"] == "success":
            result["message"] = f"User {user_id} deleted"
        return result

    async def activate_user(self, user_id: int) -> dict[str, Any]:
        """Activate a user via CLI."""
        return await self._run(
            "activate", lambda: self.management.activate_user(user_id), user_id=user_id
        )

    async def deactivate_user(self, user_id: int) -> dict[str, Any]:
        """Deactivate a user via CLI."""
        return await self._run(
            "deactivate",
            lambda: self.management.deactivate_user(user_id),
            user_id=user_id,
        )
