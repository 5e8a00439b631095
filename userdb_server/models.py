"""
Entity and response models for UserDB.

User is the in-memory representation of a stored row. The response
classes are the result shapes returned by the usecase layer; the gRPC
servicer converts them to protobuf messages.

Invariants:
    - A persisted User always has an id
    - Users compare and sort by (id, name, surname)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True, order=True)
class User:
    """A stored user.

    Attributes:
        id: Identifier assigned by the store
        name: Given name
        surname: Family name
    """

    id: int
    name: str
    surname: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "surname": self.surname}


@dataclass
class CreateUserResponse:
    user: User

    def to_dict(self) -> Dict[str, Any]:
        return {"user": self.user.to_dict()}


@dataclass
class GetUsersResponse:
    users: List[User]
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"users": [u.to_dict() for u in self.users], "count": self.count}


@dataclass
class GetUsersBatchResponse:
    users: List[User]
    offset: int
    limit: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "users": [u.to_dict() for u in self.users],
            "offset": self.offset,
            "limit": self.limit,
        }


@dataclass
class GetUserResponse:
    """Result of a lookup by id or by name."""

    user: User

    def to_dict(self) -> Dict[str, Any]:
        return {"user": self.user.to_dict()}


@dataclass
class UpdateUserResponse:
    user: User

    def to_dict(self) -> Dict[str, Any]:
        return {"user": self.user.to_dict()}


@dataclass
class DeleteUserResponse:
    def to_dict(self) -> Dict[str, Any]:
        return {}


@dataclass
class StreamUsersResponse:
    """One message of the streaming export."""

    user: User

    def to_dict(self) -> Dict[str, Any]:
        return {"user": self.user.to_dict()}


@dataclass
class HealthResponse:
    healthy: bool
    version: str
    components: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "healthy": self.healthy,
            "version": self.version,
            "components": dict(self.components),
        }
