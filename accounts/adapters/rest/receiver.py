"""REST receiver for account use cases.

Maps decoded request payloads to UserManagementPort calls and the
resulting views to JSON-compatible dicts. Knows nothing about HTTP;
status codes are chosen by the HTTP server adapter.
"""

import logging
from typing import Any

from accounts.adapters.rest.schemas import CreateUserRequest, UpdateUserRequest
from accounts.core.ports import UserManagementPort

logger = logging.getLogger(__name__)


class UserRestReceiver:
    """Forwards REST requests to the UserManagementPort.

    Raises the core's ValidationError/NotFoundError and pydantic's
    ValidationError unchanged; the HTTP layer maps them to responses.
    """

    def __init__(self, management_port: UserManagementPort):
        """Initialize the receiver.

        Args:
            management_port: UserManagementPort implementation for use cases.
        """
        self.management_port = management_port

    async def handle_create(self, payload: Any) -> dict[str, Any]:
        """Handle a create-user request body."""
        request = CreateUserRequest.model_validate(payload)
        view = await self.management_port.create_user(
            request.username, request.email, request.password
        )
        logger.info(
            "User created via REST",
            extra={"user_id": view.id, "username": view.username},
        )
        return view.to_dict()

    async def handle_update(self, user_id: int, payload: Any) -> dict[str, Any]:
        """Handle an update-user request body."""
        request = UpdateUserRequest.model_validate(payload)
        view = await self.management_port.update_user(user_id, request.email)
        return view.to_dict()

    async def handle_get(self, user_id: int) -> dict[str, Any]:
        view = await self.management_port.get_user_by_id(user_id)
        return view.to_dict()

    async def handle_list(self) -> list[dict[str, Any]]:
        views = await self.management_port.get_all_users()
        return [view.to_dict() for view in views]

    async def handle_delete(self, user_id: int) -> None:
        await self.management_port.delete_user(user_id)
        logger.info("User deleted via REST", extra={"user_id": user_id})

    async def handle_activate(self, user_id: int) -> dict[str, Any]:
        view = await self.management_port.activate_user(user_id)
        return view.to_dict()

    async def handle_deactivate(self, user_id: int) -> dict[str, Any]:
        view = await self.management_port.deactivate_user(user_id)
        return view.to_dict()
