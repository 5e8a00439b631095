"""
Configuration management for UserDB Server.

All configuration is done via environment variables - no config files inside containers.
This module provides typed configuration classes with validation.

Invariants:
    - All settings have sensible defaults for local development
    - Production deployments MUST set an explicit DATABASE_PATH
    - Stream batch size and channel capacity are always positive

How to change safely:
    - Add new settings with defaults that maintain backward compatibility
    - Deprecate settings by logging warnings but continuing to support them
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)


class StorageBackend(Enum):
    """Supported storage backends."""

    SQLITE = "sqlite"
    MEMORY = "memory"


@dataclass(frozen=True)
class GrpcConfig:
    """gRPC server configuration.

    Attributes:
        bind_address: Address to bind gRPC server (host:port)
        max_message_size: Maximum message size in bytes
    """

    bind_address: str = "0.0.0.0:50051"
    max_message_size: int = 64 * 1024 * 1024  # 64MB

    @classmethod
    def from_env(cls) -> GrpcConfig:
        """Load configuration from environment variables."""
        return cls(
            bind_address=os.getenv("GRPC_BIND", "0.0.0.0:50051"),
            max_message_size=int(os.getenv("GRPC_MAX_MESSAGE_SIZE", str(64 * 1024 * 1024))),
        )

    def host_port(self) -> tuple[str, int]:
        """Split bind_address into host and port.

        Raises:
            ValueError: If the address has no valid port
        """
        host, sep, port = self.bind_address.rpartition(":")
        if not sep or not host or not port.isdigit():
            raise ValueError(f"Invalid GRPC_BIND '{self.bind_address}'. Expected host:port")
        return host, int(port)


@dataclass(frozen=True)
class StorageConfig:
    """Storage configuration.

    Attributes:
        backend: Which storage adapter to use
        database_path: SQLite database file
        wal_mode: SQLite WAL mode enabled
        busy_timeout_ms: SQLite busy timeout in milliseconds
    """

    backend: StorageBackend = StorageBackend.SQLITE
    database_path: str = "/var/lib/userdb/users.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000

    @classmethod
    def from_env(cls) -> StorageConfig:
        """Load configuration from environment variables."""
        backend_str = os.getenv("STORAGE_BACKEND", "sqlite").lower()
        try:
            backend = StorageBackend(backend_str)
        except ValueError:
            raise ValueError(
                f"Invalid STORAGE_BACKEND '{backend_str}'. Must be one of: sqlite, memory"
            )

        return cls(
            backend=backend,
            database_path=os.getenv("DATABASE_PATH", "/var/lib/userdb/users.db"),
            wal_mode=os.getenv("SQLITE_WAL_MODE", "true").lower() == "true",
            busy_timeout_ms=int(os.getenv("SQLITE_BUSY_TIMEOUT_MS", "5000")),
        )


@dataclass(frozen=True)
class StreamConfig:
    """Streaming export configuration.

    Attributes:
        batch_size: Users fetched from storage per batch
        channel_capacity: Messages buffered between producer and consumer
    """

    batch_size: int = 100
    channel_capacity: int = 128

    @classmethod
    def from_env(cls) -> StreamConfig:
        """Load configuration from environment variables."""
        return cls(
            batch_size=int(os.getenv("STREAM_BATCH_SIZE", "100")),
            channel_capacity=int(os.getenv("STREAM_CHANNEL_CAPACITY", "128")),
        )


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format (json, text)
    """

    log_level: str = "INFO"
    log_format: str = "json"

    @classmethod
    def from_env(cls) -> ObservabilityConfig:
        """Load configuration from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "json"),
        )


@dataclass
class ServerConfig:
    """Complete server configuration.

    Attributes:
        grpc: gRPC server configuration
        storage: Storage configuration
        stream: Streaming export configuration
        observability: Logging configuration
    """

    grpc: GrpcConfig = field(default_factory=GrpcConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    stream: StreamConfig = field(default_factory=StreamConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> ServerConfig:
        """Load complete configuration from environment variables.

        Returns:
            ServerConfig with all sections populated from environment.

        Raises:
            ValueError: If required configuration is missing or invalid.
        """
        config = cls(
            grpc=GrpcConfig.from_env(),
            storage=StorageConfig.from_env(),
            stream=StreamConfig.from_env(),
            observability=ObservabilityConfig.from_env(),
        )

        config.validate()
        return config

    def validate(self) -> None:
        """Validate configuration consistency.

        Raises:
            ValueError: If configuration is invalid.
        """
        self.grpc.host_port()

        if self.stream.batch_size <= 0:
            raise ValueError("STREAM_BATCH_SIZE must be positive")
        if self.stream.channel_capacity <= 0:
            raise ValueError("STREAM_CHANNEL_CAPACITY must be positive")

        if self.storage.backend == StorageBackend.SQLITE:
            if not self.storage.database_path:
                raise ValueError("DATABASE_PATH is required when STORAGE_BACKEND=sqlite")
            data_dir = os.path.dirname(os.path.abspath(self.storage.database_path))
            if not os.path.exists(data_dir):
                logger.warning(
                    f"Data directory does not exist: {data_dir}. "
                    "It will be created on startup."
                )
        else:
            logger.warning("STORAGE_BACKEND=memory: all users are lost on exit")

    def log_config(self) -> None:
        """Log configuration."""
        logger.info(
            "Server configuration loaded",
            extra={
                "grpc_bind": self.grpc.bind_address,
                "storage_backend": self.storage.backend.value,
                "database_path": self.storage.database_path
                if self.storage.backend == StorageBackend.SQLITE
                else None,
                "stream_batch_size": self.stream.batch_size,
                "stream_channel_capacity": self.stream.channel_capacity,
                "log_level": self.observability.log_level,
            },
        )
