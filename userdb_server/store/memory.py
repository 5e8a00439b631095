"""
In-memory user store implementation for testing.

This module provides a simple in-memory UserStore for:
- Unit tests
- Integration tests
- Local development without a database file

Invariants:
    - All data is lost on process exit
    - Provides the same ordering and absence semantics as SQLite
    - Ids are monotonic and never reused, even after delete

How to change safely:
    - Keep interface compatible with the UserStore protocol
    - Add features to help with testing scenarios
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Tuple

from ..errors import NotFoundError
from ..models import User

logger = logging.getLogger(__name__)


class InMemoryUserStore:
    """In-memory implementation of UserStore for testing.

    Thread safety:
        Uses an asyncio lock held for the duration of a single call.
        Safe to use from multiple coroutines.

    Example:
        >>> store = InMemoryUserStore()
        >>> user = await store.create("Ada", "Lovelace")
        >>> await store.get_by_name("Ada")
        User(id=1, name='Ada', surname='Lovelace')
    """

    def __init__(self) -> None:
        self._users: Dict[int, User] = {}
        self._next_id = 1
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        logger.debug("InMemoryUserStore initialized")

    async def close(self) -> None:
        """Clear all data."""
        self._users.clear()
        logger.debug("InMemoryUserStore closed")

    async def create(self, name: str, surname: str) -> User:
        async with self._lock:
            user = User(id=self._next_id, name=name, surname=surname)
            self._users[user.id] = user
            self._next_id += 1
            return user

    async def get_all(self) -> Tuple[List[User], int]:
        async with self._lock:
            users = sorted(self._users.values())
            return users, len(users)

    async def get_batch(self, offset: int, limit: int) -> List[User]:
        async with self._lock:
            ids = sorted(self._users)
            return [self._users[i] for i in ids[offset:offset + limit]]

    async def get_by_id(self, user_id: int) -> Optional[User]:
        return self._users.get(user_id)

    async def get_by_name(self, name: str) -> Optional[User]:
        async with self._lock:
            matches = [u for u in self._users.values() if u.name == name]
            return min(matches) if matches else None

    async def update(
        self,
        user_id: int,
        name: Optional[str] = None,
        surname: Optional[str] = None,
    ) -> Optional[User]:
        async with self._lock:
            existing = self._users.get(user_id)
            if existing is None:
                return None

            updated = User(
                id=user_id,
                name=name if name is not None else existing.name,
                surname=surname if surname is not None else existing.surname,
            )
            self._users[user_id] = updated
            return updated

    async def delete(self, user_id: int) -> None:
        async with self._lock:
            if self._users.pop(user_id, None) is None:
                raise NotFoundError(f"User not found: {user_id}", resource_id=user_id)

    async def is_healthy(self) -> bool:
        return True

    # Testing helpers

    def count(self) -> int:
        """Number of stored users."""
        return len(self._users)
