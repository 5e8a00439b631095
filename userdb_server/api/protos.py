# mypy: ignore-errors
"""Protobuf messages and gRPC bindings for user.v1.UserService.

The file descriptor mirrors protos/user/v1/user.proto and is registered in
the default descriptor pool at import time, so message classes behave
exactly like protoc-generated ones. Keep both definitions in sync.

Invariants:
    - Field numbers are never reused or renumbered
    - UpdateUserRequest.name/surname are proto3 optional (presence tracked)
"""

from __future__ import annotations

import grpc
from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

PROTO_FILE = "user/v1/user.proto"
PACKAGE = "user.v1"
SERVICE_NAME = f"{PACKAGE}.UserService"

_F = descriptor_pb2.FieldDescriptorProto


def _field(
    message: descriptor_pb2.DescriptorProto,
    name: str,
    number: int,
    field_type: int,
    *,
    repeated: bool = False,
    type_name: str | None = None,
    optional: bool = False,
) -> None:
    f = message.field.add(
        name=name,
        number=number,
        type=field_type,
        label=_F.LABEL_REPEATED if repeated else _F.LABEL_OPTIONAL,
    )
    if type_name:
        f.type_name = f".{PACKAGE}.{type_name}"
    if optional:
        # proto3 optional is a synthetic single-field oneof
        f.proto3_optional = True
        f.oneof_index = len(message.oneof_decl)
        message.oneof_decl.add(name=f"_{name}")


def _build_file() -> descriptor_pb2.FileDescriptorProto:
    file = descriptor_pb2.FileDescriptorProto(
        name=PROTO_FILE,
        package=PACKAGE,
        syntax="proto3",
    )

    def message(name: str) -> descriptor_pb2.DescriptorProto:
        return file.message_type.add(name=name)

    user = message("User")
    _field(user, "id", 1, _F.TYPE_INT64)
    _field(user, "name", 2, _F.TYPE_STRING)
    _field(user, "surname", 3, _F.TYPE_STRING)

    m = message("CreateUserRequest")
    _field(m, "name", 1, _F.TYPE_STRING)
    _field(m, "surname", 2, _F.TYPE_STRING)
    m = message("CreateUserResponse")
    _field(m, "user", 1, _F.TYPE_MESSAGE, type_name="User")

    message("GetUsersRequest")
    m = message("GetUsersResponse")
    _field(m, "users", 1, _F.TYPE_MESSAGE, repeated=True, type_name="User")
    _field(m, "count", 2, _F.TYPE_INT64)

    m = message("GetUsersBatchRequest")
    _field(m, "offset", 1, _F.TYPE_INT64)
    _field(m, "limit", 2, _F.TYPE_INT64)
    m = message("GetUsersBatchResponse")
    _field(m, "users", 1, _F.TYPE_MESSAGE, repeated=True, type_name="User")

    m = message("GetUserByIdRequest")
    _field(m, "id", 1, _F.TYPE_INT64)
    m = message("GetUserByIdResponse")
    _field(m, "user", 1, _F.TYPE_MESSAGE, type_name="User")

    m = message("GetUserByNameRequest")
    _field(m, "name", 1, _F.TYPE_STRING)
    m = message("GetUserByNameResponse")
    _field(m, "user", 1, _F.TYPE_MESSAGE, type_name="User")

    m = message("UpdateUserRequest")
    _field(m, "id", 1, _F.TYPE_INT64)
    _field(m, "name", 2, _F.TYPE_STRING, optional=True)
    _field(m, "surname", 3, _F.TYPE_STRING, optional=True)
    m = message("UpdateUserResponse")
    _field(m, "user", 1, _F.TYPE_MESSAGE, type_name="User")

    m = message("DeleteUserRequest")
    _field(m, "id", 1, _F.TYPE_INT64)
    message("DeleteUserResponse")

    message("StreamUsersRequest")
    m = message("StreamUsersResponse")
    _field(m, "user", 1, _F.TYPE_MESSAGE, type_name="User")

    message("HealthRequest")
    m = message("HealthResponse")
    _field(m, "healthy", 1, _F.TYPE_BOOL)
    _field(m, "version", 2, _F.TYPE_STRING)
    _field(m, "storage", 3, _F.TYPE_STRING)

    service = file.service.add(name="UserService")
    for name, (streaming, _, _) in _RPCS.items():
        service.method.add(
            name=name,
            input_type=f".{PACKAGE}.{name}Request",
            output_type=f".{PACKAGE}.{name}Response",
            server_streaming=streaming,
        )

    return file


# RPC name -> (server_streaming, request message, response message)
_RPCS = {
    "CreateUser": (False, "CreateUserRequest", "CreateUserResponse"),
    "GetUsers": (False, "GetUsersRequest", "GetUsersResponse"),
    "GetUsersBatch": (False, "GetUsersBatchRequest", "GetUsersBatchResponse"),
    "GetUserById": (False, "GetUserByIdRequest", "GetUserByIdResponse"),
    "GetUserByName": (False, "GetUserByNameRequest", "GetUserByNameResponse"),
    "UpdateUser": (False, "UpdateUserRequest", "UpdateUserResponse"),
    "DeleteUser": (False, "DeleteUserRequest", "DeleteUserResponse"),
    "StreamUsers": (True, "StreamUsersRequest", "StreamUsersResponse"),
    "Health": (False, "HealthRequest", "HealthResponse"),
}

_pool = descriptor_pool.Default()
DESCRIPTOR = _pool.AddSerializedFile(_build_file().SerializeToString())


def _message_class(name: str):
    return message_factory.GetMessageClass(_pool.FindMessageTypeByName(f"{PACKAGE}.{name}"))


User = _message_class("User")
CreateUserRequest = _message_class("CreateUserRequest")
CreateUserResponse = _message_class("CreateUserResponse")
GetUsersRequest = _message_class("GetUsersRequest")
GetUsersResponse = _message_class("GetUsersResponse")
GetUsersBatchRequest = _message_class("GetUsersBatchRequest")
GetUsersBatchResponse = _message_class("GetUsersBatchResponse")
GetUserByIdRequest = _message_class("GetUserByIdRequest")
GetUserByIdResponse = _message_class("GetUserByIdResponse")
GetUserByNameRequest = _message_class("GetUserByNameRequest")
GetUserByNameResponse = _message_class("GetUserByNameResponse")
UpdateUserRequest = _message_class("UpdateUserRequest")
UpdateUserResponse = _message_class("UpdateUserResponse")
DeleteUserRequest = _message_class("DeleteUserRequest")
DeleteUserResponse = _message_class("DeleteUserResponse")
StreamUsersRequest = _message_class("StreamUsersRequest")
StreamUsersResponse = _message_class("StreamUsersResponse")
HealthRequest = _message_class("HealthRequest")
HealthResponse = _message_class("HealthResponse")


def add_UserServiceServicer_to_server(servicer, server) -> None:
    """Register servicer methods (named after the RPCs) on a gRPC server."""
    handlers = {}
    for name, (streaming, request_name, response_name) in _RPCS.items():
        make_handler = (
            grpc.unary_stream_rpc_method_handler
            if streaming
            else grpc.unary_unary_rpc_method_handler
        )
        handlers[name] = make_handler(
            getattr(servicer, name),
            request_deserializer=_message_class(request_name).FromString,
            response_serializer=_message_class(response_name).SerializeToString,
        )

    server.add_generic_rpc_handlers(
        (grpc.method_handlers_generic_handler(SERVICE_NAME, handlers),)
    )


class UserServiceStub:
    """Client stub for user.v1.UserService.

    Each RPC is exposed as an attribute named after it, e.g.
    ``await stub.CreateUser(CreateUserRequest(name="Ada", surname="Lovelace"))``.
    """

    def __init__(self, channel) -> None:
        for name, (streaming, request_name, response_name) in _RPCS.items():
            make_callable = channel.unary_stream if streaming else channel.unary_unary
            setattr(
                self,
                name,
                make_callable(
                    f"/{SERVICE_NAME}/{name}",
                    request_serializer=_message_class(request_name).SerializeToString,
                    response_deserializer=_message_class(response_name).FromString,
                ),
            )
