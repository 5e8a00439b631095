"""
Error types for UserDB Server.

This module defines the exceptions shared by every layer:
- UserDbError: Base exception
- NotFoundError: A requested or targeted user does not exist
- ValidationError: Request fields are missing or malformed
- InternalError: Any storage or infrastructure fault
- StorageError: Fault raised by a storage adapter

Invariants:
    - All errors inherit from UserDbError
    - InternalError keeps the original exception as ``cause``
    - Only the gRPC servicer maps these to status codes
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class UserDbError(Exception):
    """Base exception for all UserDB errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "USERDB_ERROR"
        self.details = details or {}


class NotFoundError(UserDbError):
    """Resource not found.

    Raised when:
    - Lookup by id or name matches no user
    - Update or delete targets an id that does not exist
    """

    def __init__(
        self,
        message: str,
        resource_type: str = "user",
        resource_id: Any = None,
    ) -> None:
        super().__init__(
            message,
            code="NOT_FOUND",
            details={
                "resource_type": resource_type,
                "resource_id": resource_id,
            },
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class ValidationError(UserDbError):
    """Request validation failed.

    Raised when:
    - Name or surname is empty
    - Batch offset is negative or limit is not positive
    """

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="INVALID_ARGUMENT",
            details={"field": field_name},
        )
        self.field_name = field_name


class InternalError(UserDbError):
    """Storage or infrastructure fault.

    The wrapped cause is kept for diagnostics only and is not part of
    the API contract.
    """

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(
            message,
            code="INTERNAL",
            details={"cause": repr(cause) if cause is not None else None},
        )
        self.cause = cause


class StorageError(InternalError):
    """A storage adapter operation failed."""

    pass
