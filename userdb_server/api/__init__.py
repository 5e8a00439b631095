"""
API module for UserDB server.

This module provides the external interface:
- gRPC servicer and server wrapper
- Async client for the same service

Invariants:
    - The servicer is the only place errors become status codes
    - The servicer never talks to storage directly

How to change safely:
    - gRPC changes must be backward compatible
    - Add new RPC methods, don't modify existing ones
    - Update protos/user/v1/user.proto together with api/protos.py
"""

from .client import UserClient
from .grpc_server import GrpcServer, RequestContext, UserServicer

__all__ = [
    "GrpcServer",
    "UserServicer",
    "RequestContext",
    "UserClient",
]
