"""
SQLite user store for UserDB.

This module is the relational adapter of the UserStore protocol.

Thread safety:
    Each operation opens its own connection and runs entirely on the
    default executor, so the event loop never blocks on SQLite I/O.
    Concurrent access across in-flight calls is handled by SQLite itself
    (WAL journal mode plus busy timeout).

Invariants:
    - Ids come from INTEGER PRIMARY KEY AUTOINCREMENT and are never reused
    - Multi-statement writes run inside BEGIN IMMEDIATE ... COMMIT
    - Every sqlite3.Error surfaces as StorageError

How to change safely:
    - Schema changes must be backward compatible (no migration tooling here)
    - Keep ORDER BY id on every listing query; the stream relies on it

Table schema:
    users:
        - id INTEGER PRIMARY KEY AUTOINCREMENT
        - name TEXT NOT NULL
        - surname TEXT NOT NULL
        - INDEX on (name, id)
"""

from __future__ import annotations

import asyncio
import functools
import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, List, Optional, Tuple, TypeVar

from ..errors import NotFoundError, StorageError
from ..models import User

logger = logging.getLogger(__name__)

T = TypeVar("T")

_COLUMNS = "id, name, surname"


def _row_to_user(row: sqlite3.Row) -> User:
    return User(id=row["id"], name=row["name"], surname=row["surname"])


class SqliteUserStore:
    """SQLite-backed UserStore.

    Example:
        >>> store = SqliteUserStore("/var/lib/userdb/users.db")
        >>> await store.initialize()
        >>> user = await store.create("Ada", "Lovelace")
    """

    def __init__(
        self,
        database_path: str,
        wal_mode: bool = True,
        busy_timeout_ms: int = 5000,
    ) -> None:
        """Initialize the store.

        Args:
            database_path: SQLite database file (":memory:" is not supported,
                every operation uses a fresh connection)
            wal_mode: Enable SQLite WAL mode
            busy_timeout_ms: SQLite busy timeout
        """
        self.database_path = Path(database_path)
        self.wal_mode = wal_mode
        self.busy_timeout_ms = busy_timeout_ms

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Open a configured connection, closed on exit."""
        conn = sqlite3.connect(
            str(self.database_path),
            timeout=self.busy_timeout_ms / 1000.0,
            isolation_level=None,  # Autocommit by default, explicit transactions
        )
        conn.row_factory = sqlite3.Row

        try:
            conn.execute(f"PRAGMA busy_timeout = {self.busy_timeout_ms}")
            if self.wal_mode:
                conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA synchronous = NORMAL")

            yield conn
        finally:
            conn.close()

    async def _run(self, func: Callable[..., T], *args: Any) -> T:
        """Run a blocking operation on the executor, wrapping SQLite faults."""
        loop = asyncio.get_event_loop()
        try:
            return await loop.run_in_executor(None, functools.partial(func, *args))
        except sqlite3.Error as e:
            op = func.__name__.lstrip("_")
            logger.error(
                f"SQLite {op} failed: {e}",
                extra={"database_path": str(self.database_path), "op": op},
            )
            raise StorageError(f"{op} failed: {e}", cause=e) from e

    def _create_schema(self) -> None:
        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        with self._get_connection() as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    surname TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_users_name ON users(name, id);
            """)

    async def initialize(self) -> None:
        """Create the database file and schema if they don't exist."""
        await self._run(self._create_schema)
        logger.info(f"Initialized user database: {self.database_path}")

    async def close(self) -> None:
        """Nothing to release; connections are per-operation."""
        return None

    def _create(self, name: str, surname: str) -> User:
        with self._get_connection() as conn:
            cursor = conn.execute(
                "INSERT INTO users (name, surname) VALUES (?, ?)",
                (name, surname),
            )
            user_id = cursor.lastrowid

        logger.debug("Created user", extra={"user_id": user_id})
        return User(id=user_id, name=name, surname=surname)

    async def create(self, name: str, surname: str) -> User:
        return await self._run(self._create, name, surname)

    def _get_all(self) -> Tuple[List[User], int]:
        with self._get_connection() as conn:
            cursor = conn.execute(f"SELECT {_COLUMNS} FROM users ORDER BY id")
            users = [_row_to_user(row) for row in cursor.fetchall()]
        return users, len(users)

    async def get_all(self) -> Tuple[List[User], int]:
        return await self._run(self._get_all)

    def _get_batch(self, offset: int, limit: int) -> List[User]:
        with self._get_connection() as conn:
            cursor = conn.execute(
                f"SELECT {_COLUMNS} FROM users ORDER BY id LIMIT ? OFFSET ?",
                (limit, offset),
            )
            return [_row_to_user(row) for row in cursor.fetchall()]

    async def get_batch(self, offset: int, limit: int) -> List[User]:
        return await self._run(self._get_batch, offset, limit)

    def _get_by_id(self, user_id: int) -> Optional[User]:
        with self._get_connection() as conn:
            cursor = conn.execute(
                f"SELECT {_COLUMNS} FROM users WHERE id = ?",
                (user_id,),
            )
            row = cursor.fetchone()
            return _row_to_user(row) if row else None

    async def get_by_id(self, user_id: int) -> Optional[User]:
        return await self._run(self._get_by_id, user_id)

    def _get_by_name(self, name: str) -> Optional[User]:
        with self._get_connection() as conn:
            cursor = conn.execute(
                f"SELECT {_COLUMNS} FROM users WHERE name = ? ORDER BY id LIMIT 1",
                (name,),
            )
            row = cursor.fetchone()
            return _row_to_user(row) if row else None

    async def get_by_name(self, name: str) -> Optional[User]:
        return await self._run(self._get_by_name, name)

    def _update(
        self,
        user_id: int,
        name: Optional[str],
        surname: Optional[str],
    ) -> Optional[User]:
        with self._get_connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                cursor = conn.execute(
                    """
                    UPDATE users SET
                        name = COALESCE(?, name),
                        surname = COALESCE(?, surname)
                    WHERE id = ?
                    """,
                    (name, surname, user_id),
                )
                if cursor.rowcount == 0:
                    conn.execute("ROLLBACK")
                    return None

                row = conn.execute(
                    f"SELECT {_COLUMNS} FROM users WHERE id = ?",
                    (user_id,),
                ).fetchone()

                conn.execute("COMMIT")
                return _row_to_user(row)

            except Exception:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise

    async def update(
        self,
        user_id: int,
        name: Optional[str] = None,
        surname: Optional[str] = None,
    ) -> Optional[User]:
        return await self._run(self._update, user_id, name, surname)

    def _delete(self, user_id: int) -> None:
        with self._get_connection() as conn:
            cursor = conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
            if cursor.rowcount == 0:
                raise NotFoundError(f"User not found: {user_id}", resource_id=user_id)

    async def delete(self, user_id: int) -> None:
        await self._run(self._delete, user_id)

    def _ping(self) -> bool:
        with self._get_connection() as conn:
            conn.execute("SELECT 1 FROM users LIMIT 1").fetchall()
        return True

    async def is_healthy(self) -> bool:
        try:
            return await self._run(self._ping)
        except StorageError:
            return False
