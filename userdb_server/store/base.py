"""
Storage port for UserDB.

This module defines the UserStore protocol that every storage backend
must implement, plus the factory that picks a backend from configuration.

Invariants:
    - The store assigns user ids; callers never supply them
    - No operation partially applies its effect
    - Absence is reported as None, except delete() which raises NotFoundError
    - Backend faults are raised as StorageError

How to change safely:
    - Protocol changes require updating all implementations
    - The usecase layer must only depend on this protocol
"""

from __future__ import annotations

from abc import abstractmethod
from typing import (
    TYPE_CHECKING,
    List,
    Optional,
    Protocol,
    Tuple,
    runtime_checkable,
)

from ..models import User

if TYPE_CHECKING:
    from ..config import StorageConfig


@runtime_checkable
class UserStore(Protocol):
    """Protocol for user storage backends.

    Ordering contract:
        - get_all() and get_batch() return users by ascending id
        - get_batch() windows are stable as long as no rows are deleted

    Example:
        >>> store = SqliteUserStore("/var/lib/userdb/users.db")
        >>> await store.initialize()
        >>> user = await store.create("Ada", "Lovelace")
        >>> await store.get_by_id(user.id)
        User(id=1, name='Ada', surname='Lovelace')
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Create the schema if it does not exist."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release backend resources."""
        ...

    @abstractmethod
    async def create(self, name: str, surname: str) -> User:
        """Persist a new user.

        Returns:
            The stored user including its newly assigned id

        Raises:
            StorageError: If the write fails for any reason
        """
        ...

    @abstractmethod
    async def get_all(self) -> Tuple[List[User], int]:
        """Return every user and the count, in one round trip.

        Intended for small tables; use get_batch() to page.
        """
        ...

    @abstractmethod
    async def get_batch(self, offset: int, limit: int) -> List[User]:
        """Return at most ``limit`` users starting at ``offset``.

        An empty list means ``offset`` is past the end. That is the
        signal that ends batch iteration, not an error.
        """
        ...

    @abstractmethod
    async def get_by_id(self, user_id: int) -> Optional[User]:
        """Return the user with this id, or None."""
        ...

    @abstractmethod
    async def get_by_name(self, name: str) -> Optional[User]:
        """Return the lowest-id user with this name, or None."""
        ...

    @abstractmethod
    async def update(
        self,
        user_id: int,
        name: Optional[str] = None,
        surname: Optional[str] = None,
    ) -> Optional[User]:
        """Overwrite the provided fields, keep the omitted ones.

        Returns:
            The updated user, or None if no user has this id
        """
        ...

    @abstractmethod
    async def delete(self, user_id: int) -> None:
        """Delete exactly one user.

        Raises:
            NotFoundError: If no user has this id
        """
        ...

    @abstractmethod
    async def is_healthy(self) -> bool:
        """Cheap probe used by the health check."""
        ...


def create_user_store(config: "StorageConfig") -> UserStore:
    """Factory function to create a user store from configuration.

    Args:
        config: Storage configuration

    Returns:
        Appropriate UserStore implementation

    Raises:
        ValueError: If backend is not supported
    """
    from ..config import StorageBackend
    from .memory import InMemoryUserStore
    from .sqlite import SqliteUserStore

    if config.backend == StorageBackend.SQLITE:
        return SqliteUserStore(
            database_path=config.database_path,
            wal_mode=config.wal_mode,
            busy_timeout_ms=config.busy_timeout_ms,
        )
    elif config.backend == StorageBackend.MEMORY:
        return InMemoryUserStore()
    else:
        raise ValueError(f"Unsupported storage backend: {config.backend}")
