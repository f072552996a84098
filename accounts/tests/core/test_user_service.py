"""Unit tests for the UserService use cases.

Tests verify creation, update, lookup, deletion and the status
lifecycle, plus unit-of-work rollback, against the in-memory fake.
"""

import logging

import pytest

from accounts.core.exceptions import NotFoundError, ValidationError
from accounts.core.models import User, UserStatus
from accounts.core.user_service import UserService
from accounts.tests.fakes import FakeUserRepository

# ============================================================================
# Test Fixtures
# ============================================================================


@pytest.fixture
def repository() -> FakeUserRepository:
    return FakeUserRepository()


@pytest.fixture
def service(repository: FakeUserRepository) -> UserService:
    return UserService(repository)


# ============================================================================
# create_user
# ============================================================================


class TestCreateUser:
    @pytest.mark.asyncio
    async def test_creates_active_user_with_id_and_timestamps(
        self, service: UserService
    ) -> None:
        view = await service.create_user("alice", "alice@x.com", "pw")

        assert view.id is not None
        assert view.username == "alice"
        assert view.email == "alice@x.com"
        assert view.status == "ACTIVE"
        assert view.created_at is not None
        assert view.created_at == view.updated_at

    @pytest.mark.asyncio
    async def test_ids_are_distinct(self, service: UserService) -> None:
        first = await service.create_user("alice", "alice@x.com", "pw")
        second = await service.create_user("bob", "bob@x.com", "pw")
        assert first.id != second.id

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "username, email",
        [("alice", "other@x.com"), ("other", "alice@x.com"), ("alice", "alice@x.com")],
    )
    async def test_duplicate_username_or_email_rejected(
        self, service: UserService, repository: FakeUserRepository, username: str, email: str
    ) -> None:
        await service.create_user("alice", "alice@x.com", "pw")

        with pytest.raises(ValidationError, match="username or email already exists"):
            await service.create_user(username, email, "pw")

        assert len(await repository.find_all()) == 1

    @pytest.mark.asyncio
    async def test_invalid_fields_rejected_before_persisting(
        self, service: UserService, repository: FakeUserRepository
    ) -> None:
        with pytest.raises(ValidationError):
            await service.create_user("alice", "not-an-email", "pw")
        assert repository.saved_users == []

    @pytest.mark.asyncio
    async def test_runs_in_a_transaction(
        self, service: UserService, repository: FakeUserRepository
    ) -> None:
        await service.create_user("alice", "alice@x.com", "pw")
        assert repository.transactions_started == 1

    @pytest.mark.asyncio
    async def test_failure_after_save_rolls_back(
        self, service: UserService, repository: FakeUserRepository
    ) -> None:
        repository.fail_on_save = RuntimeError("disk full")

        with pytest.raises(RuntimeError, match="disk full"):
            await service.create_user("alice", "alice@x.com", "pw")

        assert len(repository.saved_users) == 1
        assert await repository.find_all() == []
        assert await repository.exists_by_username("alice") is False


# ============================================================================
# update_user
# ============================================================================


class TestUpdateUser:
    @pytest.mark.asyncio
    async def test_updates_email(self, service: UserService) -> None:
        created = await service.create_user("alice", "alice@x.com", "pw")

        updated = await service.update_user(created.id, "alice@y.com")

        assert updated.email == "alice@y.com"
        assert updated.created_at == created.created_at
        assert updated.updated_at > created.updated_at

    @pytest.mark.asyncio
    async def test_none_email_is_noop(self, service: UserService) -> None:
        created = await service.create_user("alice", "alice@x.com", "pw")

        updated = await service.update_user(created.id, None)

        assert updated.email == "alice@x.com"

    @pytest.mark.asyncio
    async def test_email_taken_by_another_user_rejected(
        self, service: UserService
    ) -> None:
        alice = await service.create_user("alice", "alice@x.com", "pw")
        await service.create_user("bob", "bob@x.com", "pw")

        with pytest.raises(ValidationError, match="email already exists"):
            await service.update_user(alice.id, "bob@x.com")

        assert (await service.get_user_by_id(alice.id)).email == "alice@x.com"

    @pytest.mark.asyncio
    async def test_own_current_email_rejected_by_default(
        self, service: UserService
    ) -> None:
        alice = await service.create_user("alice", "alice@x.com", "pw")

        with pytest.raises(ValidationError, match="email already exists"):
            await service.update_user(alice.id, "alice@x.com")

    @pytest.mark.asyncio
    async def test_own_current_email_accepted_when_allowed(
        self, repository: FakeUserRepository
    ) -> None:
        service = UserService(repository, allow_own_email=True)
        alice = await service.create_user("alice", "alice@x.com", "pw")
        await service.create_user("bob", "bob@x.com", "pw")

        updated = await service.update_user(alice.id, "alice@x.com")
        assert updated.email == "alice@x.com"

        with pytest.raises(ValidationError):
            await service.update_user(alice.id, "bob@x.com")

    @pytest.mark.asyncio
    async def test_malformed_email_rejected(self, service: UserService) -> None:
        alice = await service.create_user("alice", "alice@x.com", "pw")

        with pytest.raises(ValidationError):
            await service.update_user(alice.id, "nope")


# ============================================================================
# Lifecycle
# ============================================================================


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_deactivate_then_activate_restores_active(
        self, service: UserService
    ) -> None:
        alice = await service.create_user("alice", "alice@x.com", "pw")

        deactivated = await service.deactivate_user(alice.id)
        assert deactivated.status == "INACTIVE"

        activated = await service.activate_user(alice.id)
        assert activated.status == "ACTIVE"

    @pytest.mark.asyncio
    async def test_activate_locked_user_is_noop(
        self, service: UserService, repository: FakeUserRepository
    ) -> None:
        locked = await repository.seed(
            User("mallory", "mallory@x.com", "pw", status=UserStatus.LOCKED)
        )
        assert locked.id is not None

        assert (await service.activate_user(locked.id)).status == "LOCKED"
        assert (await service.deactivate_user(locked.id)).status == "LOCKED"

    @pytest.mark.asyncio
    async def test_status_change_is_persisted(
        self, service: UserService, repository: FakeUserRepository
    ) -> None:
        alice = await service.create_user("alice", "alice@x.com", "pw")
        await service.deactivate_user(alice.id)

        stored = await repository.find_by_id(alice.id)
        assert stored is not None
        assert stored.status == UserStatus.INACTIVE

    @pytest.mark.asyncio
    async def test_status_change_logs_description(
        self, service: UserService, caplog: pytest.LogCaptureFixture
    ) -> None:
        alice = await service.create_user("alice", "alice@x.com", "pw")

        with caplog.at_level(logging.INFO, logger="accounts.core.user_service"):
            await service.deactivate_user(alice.id)

        assert f"User {alice.id} deactivated, status: Deactivated" in caplog.messages


# ============================================================================
# Lookup and deletion
# ============================================================================


class TestLookupAndDelete:
    @pytest.mark.asyncio
    async def test_get_all_users(self, service: UserService) -> None:
        assert await service.get_all_users() == []

        await service.create_user("alice", "alice@x.com", "pw")
        await service.create_user("bob", "bob@x.com", "pw")

        users = await service.get_all_users()
        assert [u.username for u in users] == ["alice", "bob"]

    @pytest.mark.asyncio
    async def test_get_is_read_only(
        self, service: UserService, repository: FakeUserRepository
    ) -> None:
        alice = await service.create_user("alice", "alice@x.com", "pw")
        repository.reset_tracking()

        assert (await service.get_user_by_id(alice.id)).username == "alice"
        assert repository.saved_users == []

    @pytest.mark.asyncio
    async def test_delete_user(
        self, service: UserService, repository: FakeUserRepository
    ) -> None:
        alice = await service.create_user("alice", "alice@x.com", "pw")

        await service.delete_user(alice.id)

        assert repository.deleted_ids == [alice.id]
        assert await service.get_all_users() == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "operation",
        ["get_user_by_id", "update_user", "delete_user", "activate_user", "deactivate_user"],
    )
    async def test_missing_user_raises_not_found(
        self, service: UserService, repository: FakeUserRepository, operation: str
    ) -> None:
        with pytest.raises(NotFoundError, match="User 42 not found"):
            await getattr(service, operation)(42)

        assert repository.saved_users == []
        assert repository.deleted_ids == []


# ============================================================================
# End-to-end scenario
# ============================================================================


@pytest.mark.asyncio
async def test_account_lifecycle_scenario(service: UserService) -> None:
    alice = await service.create_user("alice", "alice@x.com", "pw")
    assert alice.status == "ACTIVE"

    with pytest.raises(ValidationError):
        await service.create_user("bob", "alice@x.com", "pw")

    assert (await service.deactivate_user(alice.id)).status == "INACTIVE"
    assert (await service.activate_user(alice.id)).status == "ACTIVE"

    await service.delete_user(alice.id)
    with pytest.raises(NotFoundError):
        await service.get_user_by_id(alice.id)
