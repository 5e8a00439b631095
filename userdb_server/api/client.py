"""
Async gRPC client for UserDB.

Wraps UserServiceStub and converts protobuf responses to User models
and gRPC status codes back into UserDB errors:

    NOT_FOUND        -> NotFoundError
    INVALID_ARGUMENT -> ValidationError
    anything else    -> InternalError

Example:
    >>> async with UserClient("localhost", 50051) as client:
    ...     user = await client.create_user("Ada", "Lovelace")
    ...     async for u in client.stream_users():
    ...         print(u)
"""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator, List, Optional, Tuple

import grpc
from grpc import aio as grpc_aio

from ..errors import InternalError, NotFoundError, UserDbError, ValidationError
from ..models import HealthResponse, User
from . import protos

logger = logging.getLogger(__name__)


def _from_rpc_error(e: grpc.RpcError) -> UserDbError:
    code = e.code()
    details = e.details() or str(e)
    if code == grpc.StatusCode.NOT_FOUND:
        return NotFoundError(details)
    if code == grpc.StatusCode.INVALID_ARGUMENT:
        return ValidationError(details)
    return InternalError(f"{code.name}: {details}", cause=e)


def _user_from_proto(message: Any) -> User:
    return User(id=message.id, name=message.name, surname=message.surname)


class UserClient:
    """Async client for user.v1.UserService."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 50051,
        *,
        trace_id: Optional[str] = None,
    ) -> None:
        """Initialize the client.

        Args:
            host: Server hostname
            port: Server port
            trace_id: Optional trace id sent with every call
        """
        self._host = host
        self._port = port
        self._metadata = (("x-trace-id", trace_id),) if trace_id else None
        self._channel: Optional[grpc_aio.Channel] = None
        self._stub: Optional[protos.UserServiceStub] = None

    async def connect(self) -> None:
        """Open the channel."""
        if self._channel is not None:
            return

        address = f"{self._host}:{self._port}"
        self._channel = grpc_aio.insecure_channel(address)
        self._stub = protos.UserServiceStub(self._channel)
        logger.debug(f"Connected to UserDB server at {address}")

    async def close(self) -> None:
        """Close the channel."""
        if self._channel:
            await self._channel.close()
            self._channel = None
            self._stub = None
            logger.debug("Disconnected from UserDB server")

    async def __aenter__(self) -> UserClient:
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def _ensure_connected(self) -> protos.UserServiceStub:
        if self._stub is None:
            raise RuntimeError("Not connected. Call connect() first.")
        return self._stub

    async def _call(self, rpc: str, request: Any) -> Any:
        stub = self._ensure_connected()
        try:
            return await getattr(stub, rpc)(request, metadata=self._metadata)
        except grpc.RpcError as e:
            raise _from_rpc_error(e) from e

    async def create_user(self, name: str, surname: str) -> User:
        res = await self._call("CreateUser", protos.CreateUserRequest(name=name, surname=surname))
        return _user_from_proto(res.user)

    async def get_users(self) -> Tuple[List[User], int]:
        res = await self._call("GetUsers", protos.GetUsersRequest())
        return [_user_from_proto(u) for u in res.users], res.count

    async def get_users_batch(self, offset: int, limit: int) -> List[User]:
        res = await self._call(
            "GetUsersBatch", protos.GetUsersBatchRequest(offset=offset, limit=limit)
        )
        return [_user_from_proto(u) for u in res.users]

    async def get_user_by_id(self, user_id: int) -> User:
        res = await self._call("GetUserById", protos.GetUserByIdRequest(id=user_id))
        return _user_from_proto(res.user)

    async def get_user_by_name(self, name: str) -> User:
        res = await self._call("GetUserByName", protos.GetUserByNameRequest(name=name))
        return _user_from_proto(res.user)

    async def update_user(
        self,
        user_id: int,
        name: Optional[str] = None,
        surname: Optional[str] = None,
    ) -> User:
        request = protos.UpdateUserRequest(id=user_id)
        if name is not None:
            request.name = name
        if surname is not None:
            request.surname = surname
        res = await self._call("UpdateUser", request)
        return _user_from_proto(res.user)

    async def delete_user(self, user_id: int) -> None:
        await self._call("DeleteUser", protos.DeleteUserRequest(id=user_id))

    async def health(self) -> HealthResponse:
        res = await self._call("Health", protos.HealthRequest())
        return HealthResponse(
            healthy=res.healthy,
            version=res.version,
            components={"storage": res.storage},
        )

    async def stream_users(self) -> AsyncIterator[User]:
        """Yield every user in ascending id order.

        Breaking out of the loop cancels the call on the server side.

        Raises:
            InternalError: If the server ended the stream with a failure
        """
        stub = self._ensure_connected()
        call = stub.StreamUsers(protos.StreamUsersRequest(), metadata=self._metadata)
        try:
            async for message in call:
                yield _user_from_proto(message.user)
        except grpc.RpcError as e:
            raise _from_rpc_error(e) from e
        finally:
            call.cancel()
