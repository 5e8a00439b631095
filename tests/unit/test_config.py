"""
Unit tests for environment-based configuration.
"""

import pytest

from userdb_server.config import (
    GrpcConfig,
    ServerConfig,
    StorageBackend,
    StreamConfig,
)

_ENV_VARS = [
    "GRPC_BIND",
    "GRPC_MAX_MESSAGE_SIZE",
    "STORAGE_BACKEND",
    "DATABASE_PATH",
    "SQLITE_WAL_MODE",
    "SQLITE_BUSY_TIMEOUT_MS",
    "STREAM_BATCH_SIZE",
    "STREAM_CHANNEL_CAPACITY",
    "LOG_LEVEL",
    "LOG_FORMAT",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestServerConfig:
    """Tests for ServerConfig.from_env."""

    def test_defaults(self, clean_env):
        config = ServerConfig.from_env()

        assert config.grpc.bind_address == "0.0.0.0:50051"
        assert config.storage.backend == StorageBackend.SQLITE
        assert config.storage.database_path == "/var/lib/userdb/users.db"
        assert config.storage.wal_mode is True
        assert config.stream.batch_size == 100
        assert config.stream.channel_capacity == 128
        assert config.observability.log_level == "INFO"
        assert config.observability.log_format == "json"

    def test_overrides(self, clean_env, tmp_path):
        clean_env.setenv("GRPC_BIND", "127.0.0.1:6000")
        clean_env.setenv("DATABASE_PATH", str(tmp_path / "users.db"))
        clean_env.setenv("SQLITE_WAL_MODE", "false")
        clean_env.setenv("STREAM_BATCH_SIZE", "10")
        clean_env.setenv("STREAM_CHANNEL_CAPACITY", "4")
        clean_env.setenv("LOG_FORMAT", "text")

        config = ServerConfig.from_env()

        assert config.grpc.host_port() == ("127.0.0.1", 6000)
        assert config.storage.database_path == str(tmp_path / "users.db")
        assert config.storage.wal_mode is False
        assert config.stream == StreamConfig(batch_size=10, channel_capacity=4)
        assert config.observability.log_format == "text"

    def test_memory_backend(self, clean_env):
        clean_env.setenv("STORAGE_BACKEND", "MEMORY")

        config = ServerConfig.from_env()

        assert config.storage.backend == StorageBackend.MEMORY

    def test_invalid_backend(self, clean_env):
        clean_env.setenv("STORAGE_BACKEND", "postgres")

        with pytest.raises(ValueError, match="STORAGE_BACKEND"):
            ServerConfig.from_env()

    def test_invalid_bind_address(self, clean_env):
        clean_env.setenv("GRPC_BIND", "localhost")

        with pytest.raises(ValueError, match="GRPC_BIND"):
            ServerConfig.from_env()

    @pytest.mark.parametrize("name", ["STREAM_BATCH_SIZE", "STREAM_CHANNEL_CAPACITY"])
    def test_non_positive_stream_settings(self, clean_env, name):
        clean_env.setenv(name, "0")

        with pytest.raises(ValueError, match=name):
            ServerConfig.from_env()

    def test_empty_database_path(self, clean_env):
        clean_env.setenv("DATABASE_PATH", "")

        with pytest.raises(ValueError, match="DATABASE_PATH"):
            ServerConfig.from_env()


class TestGrpcConfig:
    """Tests for bind address parsing."""

    def test_host_port(self):
        assert GrpcConfig(bind_address="0.0.0.0:50051").host_port() == ("0.0.0.0", 50051)

    def test_ipv6_host_port(self):
        assert GrpcConfig(bind_address="[::]:50051").host_port() == ("[::]", 50051)

    @pytest.mark.parametrize("address", ["50051", ":50051", "host:", "host:abc"])
    def test_invalid(self, address):
        with pytest.raises(ValueError):
            GrpcConfig(bind_address=address).host_port()
