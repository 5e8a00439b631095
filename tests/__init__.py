"""
UserDB Test Suite.

This package contains:
- unit/: Unit tests (in-memory store, temporary SQLite files)
- integration/: Integration tests (real gRPC server on a free port)
"""
