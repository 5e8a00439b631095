"""
Storage module for UserDB server.

This module provides the storage port and its adapters:
- SQLite (relational, default)
- In-memory (for testing and local development)

Invariants:
    - The usecase layer only sees the UserStore protocol
    - Ids are assigned by the store and never reused

How to change safely:
    - New backends must implement the UserStore protocol
    - Run tests/unit/test_user_store.py against every backend
"""

from .base import UserStore, create_user_store
from .memory import InMemoryUserStore
from .sqlite import SqliteUserStore

__all__ = [
    # Protocol
    "UserStore",
    # Factory
    "create_user_store",
    # Implementations
    "SqliteUserStore",
    "InMemoryUserStore",
]
