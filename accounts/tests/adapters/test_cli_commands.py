"""Unit tests for CLI command handler and command dispatch."""

import pytest

from accounts.adapters.cli.commands import CLICommandHandler
from accounts.core.user_service import UserService
from accounts.main import _execute_cli_command
from accounts.tests.fakes import FakeUserRepository


@pytest.fixture
def handler() -> CLICommandHandler:
    return CLICommandHandler(UserService(FakeUserRepository()))


class TestCLICommandHandler:
    """Tests for CLICommandHandler."""

    @pytest.mark.asyncio
    async def test_create_user_success(self, handler: CLICommandHandler) -> None:
        result = await handler.create_user("alice", "alice@x.com", "pw")

        assert result["status"] == "success"
        assert result["operation"] == "create"
        assert result["user"]["username"] == "alice"
        assert result["user"]["status"] == "ACTIVE"

    @pytest.mark.asyncio
    async def test_create_duplicate_reports_error(self, handler: CLICommandHandler) -> None:
        await handler.create_user("alice", "alice@x.com", "pw")

        result = await handler.create_user("alice", "other@x.com", "pw")

        assert result == {
            "status": "error",
            "operation": "create",
            "message": "username or email already exists",
        }

    @pytest.mark.asyncio
    async def test_get_missing_user_reports_error(self, handler: CLICommandHandler) -> None:
        result = await handler.get_user(7)

        assert result["status"] == "error"
        assert result["user_id"] == 7
        assert result["message"] == "User 7 not found"

    @pytest.mark.asyncio
    async def test_update_user(self, handler: CLICommandHandler) -> None:
        created = await handler.create_user("alice", "alice@x.com", "pw")
        user_id = created["user"]["id"]

        result = await handler.update_user(user_id, "alice@y.com")

        assert result["status"] == "success"
        assert result["user_id"] == user_id
        assert result["user"]["email"] == "alice@y.com"

    @pytest.mark.asyncio
    async def test_list_users(self, handler: CLICommandHandler) -> None:
        empty = await handler.list_users()
        assert empty["users"] == []
        assert empty["count"] == 0

        await handler.create_user("alice", "alice@x.com", "pw")
        await handler.create_user("bob", "bob@x.com", "pw")

        result = await handler.list_users()
        assert result["count"] == 2
        assert [u["username"] for u in result["users"]] == ["alice", "bob"]

    @pytest.mark.asyncio
    async def test_lifecycle_commands(self, handler: CLICommandHandler) -> None:
        user_id = (await handler.create_user("alice", "alice@x.com", "pw"))["user"]["id"]

        deactivated = await handler.deactivate_user(user_id)
        assert deactivated["user"]["status"] == "INACTIVE"

        activated = await handler.activate_user(user_id)
        assert activated["user"]["status"] == "ACTIVE"

    @pytest.mark.asyncio
    async def test_delete_user(self, handler: CLICommandHandler) -> None:
        user_id = (await handler.create_user("alice", "alice@x.com", "pw"))["user"]["id"]

        result = await handler.delete_user(user_id)
        assert result["status"] == "success"
        assert result["message"] == f"User {user_id} deleted"

        again = await handler.delete_user(user_id)
        assert again["status"] == "error"
        assert again["message"] == f"User {user_id} not found"


class TestExecuteCLICommand:
    """Tests for the interactive command dispatcher."""

    @pytest.mark.asyncio
    async def test_dispatches_create_and_get(self, handler: CLICommandHandler) -> None:
        created = await _execute_cli_command(
            handler,
            "create",
            {"username": "alice", "email": "alice@x.com", "password": "pw"},
        )
        user_id = created["user"]["id"]

        result = await _execute_cli_command(handler, "get", {"user_id": str(user_id)})

        assert result["user"]["username"] == "alice"

    @pytest.mark.asyncio
    async def test_list_needs_no_arguments(self, handler: CLICommandHandler) -> None:
        result = await _execute_cli_command(handler, "list", {})
        assert result["count"] == 0

    @pytest.mark.asyncio
    async def test_unknown_command(self, handler: CLICommandHandler) -> None:
        with pytest.raises(ValueError, match="Unknown command: purge"):
            await _execute_cli_command(handler, "purge", {})

    @pytest.mark.asyncio
    async def test_missing_create_parameters(self, handler: CLICommandHandler) -> None:
        with pytest.raises(ValueError, match="email, password"):
            await _execute_cli_command(handler, "create", {"username": "alice"})

    @pytest.mark.asyncio
    @pytest.mark.parametrize("command", ["update", "get", "delete", "activate", "deactivate"])
    async def test_missing_user_id(self, handler: CLICommandHandler, command: str) -> None:
        with pytest.raises(ValueError, match="Missing required parameter: user_id"):
            await _execute_cli_command(handler, command, {})

    @pytest.mark.asyncio
    async def test_non_integer_user_id(self, handler: CLICommandHandler) -> None:
        with pytest.raises(ValueError, match="user_id must be an integer"):
            await _execute_cli_command(handler, "get", {"user_id": "abc"})
