"""SQLite user repository adapter.

Implements UserRepositoryPort using SQLite with aiosqlite for async access.
Provides ACID guarantees and UNIQUE constraints on username and email
with zero operational overhead.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import aiosqlite

from accounts.core.exceptions import NotFoundError, ValidationError
from accounts.core.models import MAX_USER_ID, User, UserStatus
from accounts.core.ports import UserRepositoryPort

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id, username, email, password, status, "
    "created_at, updated_at, created_by, updated_by"
)


class SQLiteUserRepository(UserRepositoryPort):
    """SQLite-backed user repository with connection pooling and async access."""

    def __init__(
        self,
        db_path: str,
        pool_size: int = 5,
        clock: Callable[[], datetime] | None = None,
        busy_timeout: float = 30.0,
    ):
        """Initialize SQLite repository with connection pooling.

        Args:
            db_path: Path to SQLite database file.
            pool_size: Number of connections to maintain in the pool.
            clock: Source of timestamps. Defaults to the current UTC time.
            busy_timeout: Seconds a writer waits for the database lock
                before failing.
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._pool: list[aiosqlite.Connection] = []
        self._pool_lock = asyncio.Lock()
        self._schema_lock = asyncio.Lock()
        self._pool_size = pool_size
        self.busy_timeout = busy_timeout
        self._schema_initialized = False
        self._clock = clock or (lambda: datetime.now(UTC))
        self._current: ContextVar[aiosqlite.Connection | None] = ContextVar(
            f"sqlite_repository_conn_{id(self)}", default=None
        )

    async def _get_connection(self) -> aiosqlite.Connection:
        """Get a connection from the pool or create a new one."""
        async with self._pool_lock:
            if self._pool:
                return self._pool.pop()
        conn = await aiosqlite.connect(str(self.db_path), timeout=self.busy_timeout)
        await conn.execute("PRAGMA foreign_keys = ON")
        return conn

    async def _return_connection(self, conn: aiosqlite.Connection) -> None:
        """Return a connection to the pool."""
        async with self._pool_lock:
            if len(self._pool) < self._pool_size:
                self._pool.append(conn)
                return
        await conn.close()

    async def close(self) -> None:
        """Close every connection held by the pool."""
        async with self._pool_lock:
            for conn in self._pool:
                await conn.close()
            self._pool.clear()

    async def _init_schema(self) -> None:
        """Create the users table and its indexes if missing.

        Guarded by a double-checked flag so concurrent first calls create it once.
        """
        if self._schema_initialized:
            return

        async with self._schema_lock:
            if self._schema_initialized:
                return

            conn = await self._get_connection()
            try:
                await conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS users (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        username TEXT UNIQUE NOT NULL,
                        email TEXT UNIQUE NOT NULL,
                        password TEXT NOT NULL,
                        status TEXT NOT NULL DEFAULT 'ACTIVE',
                        created_at TIMESTAMP NOT NULL,
                        updated_at TIMESTAMP NOT NULL,
                        created_by TEXT,
                        updated_by TEXT
                    )
                    """
                )
                await conn.execute(
                    "CREATE INDEX IF NOT EXISTS idx_users_status ON users(status)"
                )
                await conn.commit()
                self._schema_initialized = True
            finally:
                await self._return_connection(conn)

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield the active transaction's connection, or a pooled one.

        A pooled connection commits when the block exits normally and
        rolls back otherwise.
        """
        conn = self._current.get()
        if conn is not None:
            yield conn
            return

        await self._init_schema()
        conn = await self._get_connection()
        try:
            yield conn
            await conn.commit()
        except BaseException:
            await conn.rollback()
            raise
        finally:
            await self._return_connection(conn)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Bind one connection to the current task for a unit of work.

        The write lock is taken up front (BEGIN IMMEDIATE) so concurrent
        units of work queue on the busy timeout instead of failing when a
        reader upgrades to a writer.
        """
        if self._current.get() is not None:
            yield
            return

        await self._init_schema()
        conn = await self._get_connection()
        token = self._current.set(conn)
        try:
            await conn.execute("BEGIN IMMEDIATE")
            yield
            await conn.commit()
        except BaseException:
            await conn.rollback()
            logger.debug("SQLite transaction rolled back")
            raise
        finally:
            self._current.reset(token)
            await self._return_connection(conn)

    async def save(self, user: User) -> User:
        """Insert or update a user."""
        now = self._clock().isoformat()

        async with self._connection() as conn:
            try:
                if user.id is None:
                    cursor = await conn.execute(
                        """
                        INSERT INTO users
                        (username, email, password, status,
                         created_at, updated_at, created_by, updated_by)
                        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                        """,
                        (
                            user.username,
                            user.email,
                            user.password,
                            user.status.name,
                            now,
                            now,
                            user.created_by,
                            user.updated_by,
                        ),
                    )
                    user_id = cursor.lastrowid
                else:
                    cursor = await conn.execute(
                        """
                        UPDATE users
                        SET username = ?, email = ?, password = ?, status = ?,
                            updated_at = ?, created_by = ?, updated_by = ?
                        WHERE id = ?
                        """,
                        (
                            user.username,
                            user.email,
                            user.password,
                            user.status.name,
                            now,
                            user.created_by,
                            user.updated_by,
                            user.id,
                        ),
                    )
                    if cursor.rowcount == 0:
                        raise NotFoundError(f"User {user.id} not found")
                    user_id = user.id
            except aiosqlite.IntegrityError as e:
                raise ValidationError(self._describe_violation(str(e))) from e

            saved = await self._fetch_one(conn, "id = ?", user_id)

        assert saved is not None
        return saved

    async def _fetch_one(
        self, conn: aiosqlite.Connection, where: str, value: Any
    ) -> User | None:
        cursor = await conn.execute(
            f"SELECT {_COLUMNS} FROM users WHERE {where}", (value,)
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    async def find_by_id(self, user_id: int) -> User | None:
        if not 0 < user_id <= MAX_USER_ID:
            return None
        async with self._connection() as conn:
            return await self._fetch_one(conn, "id = ?", user_id)

    async def find_by_username(self, username: str) -> User | None:
        async with self._connection() as conn:
            return await self._fetch_one(conn, "username = ?", username)

    async def find_by_email(self, email: str) -> User | None:
        async with self._connection() as conn:
            return await self._fetch_one(conn, "email = ?", email)

    async def delete_by_id(self, user_id: int) -> None:
        if not 0 < user_id <= MAX_USER_ID:
            return
        async with self._connection() as conn:
            await conn.execute("DELETE FROM users WHERE id = ?", (user_id,))

    async def exists_by_username(self, username: str) -> bool:
        async with self._connection() as conn:
            cursor = await conn.execute(
                "SELECT 1 FROM users WHERE username = ? LIMIT 1", (username,)
            )
            return await cursor.fetchone() is not None

    async def exists_by_email(self, email: str) -> bool:
        async with self._connection() as conn:
            cursor = await conn.execute(
                "SELECT 1 FROM users WHERE email = ? LIMIT 1", (email,)
            )
            return await cursor.fetchone() is not None

    async def find_all(self) -> list[User]:
        async with self._connection() as conn:
            cursor = await conn.execute(f"SELECT {_COLUMNS} FROM users ORDER BY id")
            rows = await cursor.fetchall()
            return [self._row_to_user(row) for row in rows]

    @staticmethod
    def _describe_violation(message: str) -> str:
        """Map a SQLite UNIQUE failure message to a domain message."""
        if "users.username" in message:
            return "username already exists"
        if "users.email" in message:
            return "email already exists"
        return "username or email already exists"

    def _row_to_user(self, row: tuple[Any, ...]) -> User:
        """Convert a database row to a User object.

        Raises:
            ValueError: If row is malformed or contains invalid data.
        """
        try:
            (
                user_id,
                username,
                email,
                password,
                status,
                created_at,
                updated_at,
                created_by,
                updated_by,
            ) = row

            try:
                created_at_dt = datetime.fromisoformat(created_at)
                updated_at_dt = datetime.fromisoformat(updated_at)
            except (ValueError, TypeError) as e:
                raise ValueError(f"Invalid date format: {e}") from e

            return User(
                id=user_id,
                username=username,
                email=email,
                password=password,
                status=UserStatus[status],
                created_at=created_at_dt,
                updated_at=updated_at_dt,
                created_by=created_by,
                updated_by=updated_by,
            )

        except ValueError as e:
            logger.error(f"Failed to parse database row: {e}")
            raise
        except Exception as e:
            logger.error(f"Unexpected error parsing database row: {e}")
            raise ValueError(f"Row parsing failed: {e}") from e
