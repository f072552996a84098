"""PostgreSQL user repository adapter.

Implements UserRepositoryPort using PostgreSQL with asyncpg for async access.
Provides ACID guarantees and UNIQUE constraints on username and email
with scalability for production use.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any

import asyncpg

from accounts.core.exceptions import NotFoundError, ValidationError
from accounts.core.models import MAX_USER_ID, User, UserStatus
from accounts.core.ports import UserRepositoryPort

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id, username, email, password, status, "
    "created_at, updated_at, created_by, updated_by"
)


class PostgreSQLUserRepository(UserRepositoryPort):
    """PostgreSQL-backed user repository with connection pooling and async access."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 5432,
        database: str = "accounts",
        user: str = "accounts",
        password: str = "",
        pool_size: int = 10,
    ):
        """Initialize PostgreSQL repository with connection pooling.

        Args:
            host: PostgreSQL server hostname.
            port: PostgreSQL server port.
            database: Database name.
            user: Database user.
            password: Database password.
            pool_size: Number of connections to maintain in the pool.
        """
        self.host = host
        self.port = port
        self.database = database
        self.user = user
        self.password = password
        self._pool: asyncpg.Pool | None = None
        self._pool_size = pool_size
        self._schema_lock = asyncio.Lock()
        self._schema_initialized = False
        self._current: ContextVar[Any] = ContextVar(
            f"postgresql_repository_conn_{id(self)}", default=None
        )

    async def _init_pool(self) -> None:
        """Initialize the connection pool on first use."""
        if self._pool is not None:
            return

        self._pool = await asyncpg.create_pool(
            host=self.host,
            port=self.port,
            database=self.database,
            user=self.user,
            password=self.password,
            min_size=1,
            max_size=self._pool_size,
        )

    async def close(self) -> None:
        """Close every connection held by the pool."""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def _init_schema(self) -> None:
        """Create the users table and its indexes if missing.

        Guarded by a double-checked flag so concurrent first calls create it once.
        """
        if self._schema_initialized:
            return

        async with self._schema_lock:
            if self._schema_initialized:
                return

            await self._init_pool()
            assert self._pool is not None

            async with self._pool.acquire() as conn:
                await conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS users (
                        id BIGSERIAL PRIMARY KEY,
                        username TEXT UNIQUE NOT NULL,
                        email TEXT UNIQUE NOT NULL,
                        password TEXT NOT NULL,
                        status TEXT NOT NULL DEFAULT 'ACTIVE',
                        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
                        updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
                        created_by TEXT,
                        updated_by TEXT
                    )
                    """
                )
                await conn.execute(
                    "CREATE INDEX IF NOT EXISTS idx_users_status ON users(status)"
                )

                self._schema_initialized = True

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[Any]:
        """Yield the active transaction's connection, or a pooled one."""
        conn = self._current.get()
        if conn is not None:
            yield conn
            return

        await self._init_schema()
        assert self._pool is not None
        async with self._pool.acquire() as conn:
            yield conn

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Bind one connection and transaction to the current task."""
        if self._current.get() is not None:
            yield
            return

        await self._init_schema()
        assert self._pool is not None
        async with self._pool.acquire() as conn:
            async with conn.transaction():
                token = self._current.set(conn)
                try:
                    yield
                finally:
                    self._current.reset(token)

    async def save(self, user: User) -> User:
        """Insert or update a user.

        Timestamps come from the database clock (now()), so created_at and
        updated_at are identical on insert.
        """
        async with self._connection() as conn:
            try:
                if user.id is None:
                    row = await conn.fetchrow(
                        f"""
                        INSERT INTO users
                        (username, email, password, status, created_by, updated_by)
                        VALUES ($1, $2, $3, $4, $5, $6)
                        RETURNING {_COLUMNS}
                        """,
                        user.username,
                        user.email,
                        user.password,
                        user.status.name,
                        user.created_by,
                        user.updated_by,
                    )
                else:
                    row = await conn.fetchrow(
                        f"""
                        UPDATE users
                        SET username = $1, email = $2, password = $3, status = $4,
                            updated_at = now(), created_by = $5, updated_by = $6
                        WHERE id = $7
                        RETURNING {_COLUMNS}
                        """,
                        user.username,
                        user.email,
                        user.password,
                        user.status.name,
                        user.created_by,
                        user.updated_by,
                        user.id,
                    )
                    if row is None:
                        raise NotFoundError(f"User {user.id} not found")
            except asyncpg.UniqueViolationError as e:
                raise ValidationError(self._describe_violation(e)) from e

        return self._row_to_user(row)

    async def find_by_id(self, user_id: int) -> User | None:
        if not 0 < user_id <= MAX_USER_ID:
            return None
        return await self._fetch_one("id", user_id)

    async def find_by_username(self, username: str) -> User | None:
        return await self._fetch_one("username", username)

    async def find_by_email(self, email: str) -> User | None:
        return await self._fetch_one("email", email)

    async def _fetch_one(self, column: str, value: Any) -> User | None:
        async with self._connection() as conn:
            row = await conn.fetchrow(
                f"SELECT {_COLUMNS} FROM users WHERE {column} = $1", value
            )
        if row is None:
            return None
        return self._row_to_user(row)

    async def delete_by_id(self, user_id: int) -> None:
        if not 0 < user_id <= MAX_USER_ID:
            return
        async with self._connection() as conn:
            await conn.execute("DELETE FROM users WHERE id = $1", user_id)

    async def exists_by_username(self, username: str) -> bool:
        async with self._connection() as conn:
            return bool(
                await conn.fetchval(
                    "SELECT EXISTS(SELECT 1 FROM users WHERE username = $1)", username
                )
            )

    async def exists_by_email(self, email: str) -> bool:
        async with self._connection() as conn:
            return bool(
                await conn.fetchval(
                    "SELECT EXISTS(SELECT 1 FROM users WHERE email = $1)", email
                )
            )

    async def find_all(self) -> list[User]:
        async with self._connection() as conn:
            rows = await conn.fetch(f"SELECT {_COLUMNS} FROM users ORDER BY id")
        return [self._row_to_user(row) for row in rows]

    @staticmethod
    def _describe_violation(error: Exception) -> str:
        """Map a unique violation to a domain message via its constraint name."""
        constraint = getattr(error, "constraint_name", None) or ""
        if "username" in constraint:
            return "username already exists"
        if "email" in constraint:
            return "email already exists"
        return "username or email already exists"

    @staticmethod
    def _row_to_user(row: Any) -> User:
        """Convert an asyncpg Record to a User object."""
        return User(
            id=row["id"],
            username=row["username"],
            email=row["email"],
            password=row["password"],
            status=UserStatus[row["status"]],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            created_by=row["created_by"],
            updated_by=row["updated_by"],
        )
