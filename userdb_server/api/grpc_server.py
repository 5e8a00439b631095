"""
gRPC server implementation for UserDB.

This module provides the gRPC API server that handles all client requests.
It uses grpc.aio for async gRPC support and provides a servicer that
matches protos/user/v1/user.proto.

Invariants:
    - Each RPC maps to exactly one usecase call
    - NotFoundError -> NOT_FOUND, ValidationError -> INVALID_ARGUMENT,
      anything else -> INTERNAL
    - A stream that fails mid-way ends with INTERNAL, never with OK
    - All calls are logged with the RPC name and a per-call trace_id

How to change safely:
    - Add new RPCs without modifying existing ones
    - Use optional fields for backward compatibility
    - Keep business logic in the usecase layer, not here
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, NoReturn, Optional

import grpc
from grpc import aio as grpc_aio

from ..errors import NotFoundError, ValidationError
from ..models import User
from ..usecase.users import UserUsecase
from . import protos

logger = logging.getLogger(__name__)

TRACE_ID_HEADER = "x-trace-id"


@dataclass
class RequestContext:
    """Per-call logging context."""
    rpc: str
    trace_id: str

    def log_extra(self, **fields: Any) -> Dict[str, Any]:
        return {"rpc": self.rpc, "trace_id": self.trace_id, **fields}


def _user_to_proto(user: User):
    return protos.User(id=user.id, name=user.name, surname=user.surname)


def _status_for(error: Exception) -> grpc.StatusCode:
    if isinstance(error, NotFoundError):
        return grpc.StatusCode.NOT_FOUND
    if isinstance(error, ValidationError):
        return grpc.StatusCode.INVALID_ARGUMENT
    return grpc.StatusCode.INTERNAL


class UserServicer:
    """gRPC service implementation for UserDB.

    Method names match the RPC names so the servicer can be registered
    with protos.add_UserServiceServicer_to_server().

    Attributes:
        usecase: UserUsecase that does the actual work
    """

    def __init__(self, usecase: UserUsecase) -> None:
        self.usecase = usecase

    def _context(self, rpc: str, context: grpc_aio.ServicerContext) -> RequestContext:
        trace_id = None
        for key, value in context.invocation_metadata() or ():
            if key == TRACE_ID_HEADER:
                trace_id = value
                break
        return RequestContext(rpc=rpc, trace_id=trace_id or uuid.uuid4().hex)

    async def _abort(
        self,
        context: grpc_aio.ServicerContext,
        ctx: RequestContext,
        action: str,
        error: Exception,
    ) -> NoReturn:
        code = _status_for(error)
        msg = f"failed to {action}: {error}"
        if code == grpc.StatusCode.INTERNAL:
            logger.error(msg, extra=ctx.log_extra(code=code.name), exc_info=True)
        else:
            logger.warning(msg, extra=ctx.log_extra(code=code.name))
        await context.abort(code, msg)

    async def CreateUser(self, request, context: grpc_aio.ServicerContext):
        ctx = self._context("CreateUser", context)
        logger.info(
            f"creating user with name={request.name!r} and surname={request.surname!r}",
            extra=ctx.log_extra(),
        )
        try:
            res = await self.usecase.create_user(request.name, request.surname)
        except Exception as e:
            await self._abort(context, ctx, "create user", e)
        return protos.CreateUserResponse(user=_user_to_proto(res.user))

    async def GetUsers(self, request, context: grpc_aio.ServicerContext):
        ctx = self._context("GetUsers", context)
        logger.info("getting all users", extra=ctx.log_extra())
        try:
            res = await self.usecase.get_users()
        except Exception as e:
            await self._abort(context, ctx, "retrieve users", e)
        return protos.GetUsersResponse(
            users=[_user_to_proto(u) for u in res.users],
            count=res.count,
        )

    async def GetUsersBatch(self, request, context: grpc_aio.ServicerContext):
        ctx = self._context("GetUsersBatch", context)
        logger.info(
            f"getting users batch offset={request.offset} limit={request.limit}",
            extra=ctx.log_extra(),
        )
        try:
            res = await self.usecase.get_users_batch(request.offset, request.limit)
        except Exception as e:
            await self._abort(context, ctx, "retrieve users batch", e)
        return protos.GetUsersBatchResponse(users=[_user_to_proto(u) for u in res.users])

    async def GetUserById(self, request, context: grpc_aio.ServicerContext):
        ctx = self._context("GetUserById", context)
        logger.info(f"getting user by id={request.id}", extra=ctx.log_extra())
        try:
            res = await self.usecase.get_user_by_id(request.id)
        except Exception as e:
            await self._abort(context, ctx, "retrieve user", e)
        return protos.GetUserByIdResponse(user=_user_to_proto(res.user))

    async def GetUserByName(self, request, context: grpc_aio.ServicerContext):
        ctx = self._context("GetUserByName", context)
        logger.info(f"getting user by name={request.name!r}", extra=ctx.log_extra())
        try:
            res = await self.usecase.get_user_by_name(request.name)
        except Exception as e:
            await self._abort(context, ctx, "retrieve user", e)
        return protos.GetUserByNameResponse(user=_user_to_proto(res.user))

    async def UpdateUser(self, request, context: grpc_aio.ServicerContext):
        ctx = self._context("UpdateUser", context)
        name: Optional[str] = request.name if request.HasField("name") else None
        surname: Optional[str] = request.surname if request.HasField("surname") else None
        logger.info(
            f"updating user with id={request.id}, setting name={name!r} and surname={surname!r}",
            extra=ctx.log_extra(),
        )
        try:
            res = await self.usecase.update_user(request.id, name=name, surname=surname)
        except Exception as e:
            await self._abort(context, ctx, "update user", e)
        return protos.UpdateUserResponse(user=_user_to_proto(res.user))

    async def DeleteUser(self, request, context: grpc_aio.ServicerContext):
        ctx = self._context("DeleteUser", context)
        logger.info(f"deleting user with id={request.id}", extra=ctx.log_extra())
        try:
            await self.usecase.delete_user(request.id)
        except Exception as e:
            await self._abort(context, ctx, "delete user", e)
        return protos.DeleteUserResponse()

    async def StreamUsers(
        self,
        request,
        context: grpc_aio.ServicerContext,
    ) -> AsyncIterator[Any]:
        ctx = self._context("StreamUsers", context)
        logger.info("streaming all users", extra=ctx.log_extra())
        # Exiting the block closes the receiver, including when the client
        # disconnects and the handler is cancelled.
        async with self.usecase.stream_users() as receiver:
            try:
                async for message in receiver:
                    yield protos.StreamUsersResponse(user=_user_to_proto(message.user))
            except Exception as e:
                await self._abort(context, ctx, "stream users", e)

    async def Health(self, request, context: grpc_aio.ServicerContext):
        ctx = self._context("Health", context)
        try:
            res = await self.usecase.health()
        except Exception as e:
            await self._abort(context, ctx, "check health", e)
        return protos.HealthResponse(
            healthy=res.healthy,
            version=res.version,
            storage=res.components.get("storage", "unknown"),
        )


class GrpcServer:
    """gRPC server wrapper for UserDB.

    This class manages the gRPC server lifecycle including:
    - Server initialization
    - Service registration
    - Graceful shutdown

    Example:
        >>> server = GrpcServer(servicer, port=50051)
        >>> await server.start()
        >>> # Server is now running
        >>> await server.stop()
    """

    def __init__(
        self,
        servicer: UserServicer,
        host: str = "0.0.0.0",
        port: int = 50051,
        max_message_size: int = 64 * 1024 * 1024,
    ) -> None:
        """Initialize the gRPC server.

        Args:
            servicer: UserServicer instance
            host: Host to bind to
            port: Port to listen on (0 picks a free port)
            max_message_size: Maximum send/receive message size in bytes
        """
        self.servicer = servicer
        self.host = host
        self.port = port
        self.max_message_size = max_message_size
        self._server: Optional[grpc_aio.Server] = None
        self._running = False

    async def start(self) -> None:
        """Start the gRPC server."""
        if self._running:
            logger.warning("Server already running")
            return

        self._server = grpc_aio.server(
            options=[
                ("grpc.max_send_message_length", self.max_message_size),
                ("grpc.max_receive_message_length", self.max_message_size),
            ],
        )
        protos.add_UserServiceServicer_to_server(self.servicer, self._server)

        bound_port = self._server.add_insecure_port(f"{self.host}:{self.port}")
        if bound_port == 0:
            raise RuntimeError(f"Failed to bind gRPC server to {self.host}:{self.port}")
        self.port = bound_port

        await self._server.start()
        self._running = True

        logger.info(
            f"gRPC server started on {self.host}:{self.port}",
            extra={"host": self.host, "port": self.port},
        )

    async def stop(self, grace_period: float = 5.0) -> None:
        """Stop the gRPC server gracefully.

        Args:
            grace_period: Time to wait for pending RPCs to complete
        """
        if not self._running:
            return

        logger.info("Stopping gRPC server")
        self._running = False

        if self._server:
            await self._server.stop(grace_period)
            self._server = None

    @property
    def is_running(self) -> bool:
        """Whether the server is running."""
        return self._running
