"""
Unit tests for UserServicer with a mocked gRPC context.

Tests cover:
- Error to status code mapping
- Optional field presence on UpdateUser
- Trace id extraction
"""

from unittest.mock import AsyncMock, MagicMock

import grpc
import pytest
from google.protobuf import descriptor_pb2

from userdb_server.api import UserServicer
from userdb_server.api import protos
from userdb_server.errors import StorageError
from userdb_server.store import InMemoryUserStore
from userdb_server.usecase import UserUsecase


class AbortCalled(Exception):
    pass


def make_context(metadata=()):
    """Mock ServicerContext whose abort() raises like grpc.aio does."""
    context = MagicMock()
    context.invocation_metadata.return_value = metadata
    context.abort = AsyncMock(side_effect=AbortCalled())
    return context


class TestUserServicer:
    """Tests for UserServicer."""

    @pytest.fixture
    def store(self):
        return InMemoryUserStore()

    @pytest.fixture
    def servicer(self, store):
        return UserServicer(UserUsecase(store, batch_size=2, channel_capacity=2))

    @pytest.mark.asyncio
    async def test_create_user(self, servicer):
        context = make_context()

        res = await servicer.CreateUser(
            protos.CreateUserRequest(name="Ada", surname="Lovelace"), context
        )

        assert res.user.name == "Ada"
        assert res.user.surname == "Lovelace"
        assert res.user.id > 0
        context.abort.assert_not_called()

    @pytest.mark.asyncio
    async def test_not_found_maps_to_not_found(self, servicer):
        context = make_context()

        with pytest.raises(AbortCalled):
            await servicer.GetUserById(protos.GetUserByIdRequest(id=99), context)

        code, message = context.abort.call_args.args
        assert code == grpc.StatusCode.NOT_FOUND
        assert message.startswith("failed to retrieve user")

    @pytest.mark.asyncio
    async def test_validation_maps_to_invalid_argument(self, servicer):
        context = make_context()

        with pytest.raises(AbortCalled):
            await servicer.CreateUser(protos.CreateUserRequest(name="", surname="X"), context)

        assert context.abort.call_args.args[0] == grpc.StatusCode.INVALID_ARGUMENT

    @pytest.mark.asyncio
    async def test_storage_error_maps_to_internal(self, servicer, store):
        store.get_all = AsyncMock(side_effect=StorageError("database is locked"))
        context = make_context()

        with pytest.raises(AbortCalled):
            await servicer.GetUsers(protos.GetUsersRequest(), context)

        code, message = context.abort.call_args.args
        assert code == grpc.StatusCode.INTERNAL
        assert "database is locked" in message

    @pytest.mark.asyncio
    async def test_update_uses_field_presence(self, servicer, store):
        """An unset optional field keeps its value; an empty one is rejected."""
        user = await store.create("Ada", "Lovelace")

        res = await servicer.UpdateUser(
            protos.UpdateUserRequest(id=user.id, surname="Byron"), make_context()
        )
        assert (res.user.name, res.user.surname) == ("Ada", "Byron")

        context = make_context()
        with pytest.raises(AbortCalled):
            await servicer.UpdateUser(protos.UpdateUserRequest(id=user.id, name=""), context)
        assert context.abort.call_args.args[0] == grpc.StatusCode.INVALID_ARGUMENT

    @pytest.mark.asyncio
    async def test_stream_users(self, servicer, store):
        for i in range(5):
            await store.create(f"User{i}", "Stream")

        messages = [m async for m in servicer.StreamUsers(protos.StreamUsersRequest(), make_context())]

        assert [m.user.name for m in messages] == [f"User{i}" for i in range(5)]

    @pytest.mark.asyncio
    async def test_health(self, servicer):
        res = await servicer.Health(protos.HealthRequest(), make_context())

        assert res.healthy is True
        assert res.storage == "healthy"

    def test_trace_id_from_metadata(self, servicer):
        ctx = servicer._context("GetUsers", make_context(metadata=(("x-trace-id", "abc123"),)))

        assert ctx.trace_id == "abc123"
        assert ctx.log_extra(offset=3) == {"rpc": "GetUsers", "trace_id": "abc123", "offset": 3}

    def test_trace_id_generated_when_missing(self, servicer):
        first = servicer._context("GetUsers", make_context())
        second = servicer._context("GetUsers", make_context())

        assert first.trace_id
        assert first.trace_id != second.trace_id


class TestProtos:
    """Tests for the runtime-built protobuf module."""

    def test_update_request_tracks_presence(self):
        request = protos.UpdateUserRequest(id=1)
        assert not request.HasField("name")
        assert not request.HasField("surname")

        request.name = ""
        assert request.HasField("name")

    def test_round_trip(self):
        request = protos.UpdateUserRequest(id=7, surname="Lovelace")

        decoded = protos.UpdateUserRequest.FromString(request.SerializeToString())

        assert decoded.id == 7
        assert decoded.HasField("surname")
        assert not decoded.HasField("name")

    def test_service_descriptor(self):
        service = descriptor_pb2.ServiceDescriptorProto()
        protos.DESCRIPTOR.services_by_name["UserService"].CopyToProto(service)
        methods = {m.name: m for m in service.method}

        assert set(methods) == {
            "CreateUser",
            "GetUsers",
            "GetUsersBatch",
            "GetUserById",
            "GetUserByName",
            "UpdateUser",
            "DeleteUser",
            "StreamUsers",
            "Health",
        }
        assert methods["StreamUsers"].server_streaming is True
        assert methods["GetUsers"].server_streaming is False
