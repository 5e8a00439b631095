"""
UserDB Server - Main entry point.

This module starts the UserDB server with all components:
- User store (SQLite or in-memory)
- Usecase layer (including streaming exports)
- gRPC server

Usage:
    python -m userdb_server.main

Configuration is entirely via environment variables.
See config.py for all available settings.

Invariants:
    - The store schema exists before the gRPC server accepts requests
    - Shutdown stops gRPC first, then cancels running exports, then closes the store

How to change safely:
    - Add new components with enable/disable flags
    - Test shutdown sequence thoroughly
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys

import json_log_formatter

from .api import GrpcServer, UserServicer
from .config import ServerConfig
from .store import UserStore, create_user_store
from .usecase import UserUsecase

logger = logging.getLogger(__name__)


def setup_logging(config: ServerConfig) -> None:
    """Configure logging based on configuration.

    Args:
        config: Server configuration
    """
    level = getattr(logging, config.observability.log_level.upper(), logging.INFO)

    if config.observability.log_format == "json":
        formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # Reduce noise from libraries
    logging.getLogger("grpc").setLevel(logging.WARNING)


class Server:
    """UserDB Server orchestrator.

    Manages the lifecycle of all server components:
    - User store
    - Usecase layer
    - gRPC server

    Attributes:
        config: Server configuration
        store: User store instance
        usecase: Usecase layer
        servicer: gRPC service implementation

    Example:
        >>> server = Server()
        >>> await server.start()
        >>> # Server is running
        >>> await server.stop()
    """

    def __init__(self, config: ServerConfig | None = None) -> None:
        """Initialize the server.

        Args:
            config: Optional server configuration (loaded from env if not provided)
        """
        self.config = config or ServerConfig.from_env()
        self._running = False
        self._shutdown_event = asyncio.Event()

        # Components (initialized in start())
        self.store: UserStore | None = None
        self.usecase: UserUsecase | None = None
        self.servicer: UserServicer | None = None
        self.grpc_server: GrpcServer | None = None

    async def start(self) -> None:
        """Start the server and wait until shutdown is requested."""
        if self._running:
            logger.warning("Server already running")
            return

        logger.info("Starting UserDB server")
        self.config.log_config()

        try:
            self.store = create_user_store(self.config.storage)
            await self.store.initialize()

            self.usecase = UserUsecase(
                self.store,
                batch_size=self.config.stream.batch_size,
                channel_capacity=self.config.stream.channel_capacity,
            )
            self.servicer = UserServicer(self.usecase)

            host, port = self.config.grpc.host_port()
            self.grpc_server = GrpcServer(
                servicer=self.servicer,
                host=host,
                port=port,
                max_message_size=self.config.grpc.max_message_size,
            )
            await self.grpc_server.start()

            self._running = True
            logger.info("UserDB server started successfully")

            await self._shutdown_event.wait()

        except Exception as e:
            logger.error(f"Server startup failed: {e}", exc_info=True)
            await self._teardown()
            raise

    async def stop(self) -> None:
        """Stop the server gracefully."""
        if not self._running:
            return

        logger.info("Stopping UserDB server")
        await self._teardown()
        self._running = False
        logger.info("UserDB server stopped")

    async def _teardown(self) -> None:
        if self.grpc_server:
            await self.grpc_server.stop()

        if self.usecase:
            await self.usecase.close()

        if self.store:
            await self.store.close()

    def request_shutdown(self) -> None:
        """Request graceful shutdown."""
        self._shutdown_event.set()


def main() -> None:
    """Main entry point."""
    try:
        config = ServerConfig.from_env()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config)

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    server = Server(config)

    def handle_signal(sig: int) -> None:
        logger.info(f"Received signal {sig}, initiating shutdown")
        server.request_shutdown()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, handle_signal, sig)

    try:
        loop.run_until_complete(server.start())
    except KeyboardInterrupt:
        pass
    finally:
        loop.run_until_complete(server.stop())
        loop.close()


if __name__ == "__main__":
    main()
