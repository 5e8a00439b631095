"""
UserDB Server - gRPC user management service over a relational store.

This package implements a small layered service built on:
- A storage port (protocol) with SQLite and in-memory adapters
- A usecase layer that shapes results and enforces existence semantics
- A gRPC facade that maps errors to status codes
- A cursor-paginated, backpressured streaming export of all users

Architecture:
    ┌─────────────┐     ┌─────────────┐     ┌─────────────┐     ┌─────────────┐
    │   Client    │────▶│    gRPC     │────▶│   Usecase   │────▶│  UserStore  │
    │ (UserClient)│     │  Servicer   │     │             │     │ (SQLite)    │
    └─────────────┘     └──────▲──────┘     └──────┬──────┘     └─────────────┘
                               │                   │
                               │   bounded channel │ export task
                               └───────────────────┘

Invariants:
    - User ids are assigned by the store and never reused
    - Partial updates never clear an omitted field
    - Streams deliver users in ascending id order
    - Only the gRPC servicer translates errors into status codes

How to change safely:
    - New storage backends must implement the UserStore protocol
    - Add new RPCs without modifying existing ones
    - Keep the stream batch size and channel capacity bounded

Version: see _version.py.
"""

from ._version import __version__

__all__ = ["__version__"]
