"""
User usecase layer for UserDB.

This module sits between the gRPC servicer and the storage port. It:
- Validates request fields
- Shapes store results into response models
- Turns storage absence into NotFoundError where existence is required
- Runs the streaming export as a detached, backpressured task

Invariants:
    - Lookups by id/name and updates of a missing id raise NotFoundError
    - Create and listing never raise NotFoundError
    - Storage faults propagate unchanged, never retried
    - A stream delivers users in ascending id order
    - A consumer disconnect ends the export task without an error
    - A cancelled export ends its stream with InternalError, never silently

How to change safely:
    - Depend on the UserStore protocol only, never on a concrete backend
    - Keep batch size and channel capacity bounded
"""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Optional, Set

from .._version import __version__
from ..errors import InternalError, NotFoundError, ValidationError
from ..models import (
    CreateUserResponse,
    DeleteUserResponse,
    GetUserResponse,
    GetUsersBatchResponse,
    GetUsersResponse,
    HealthResponse,
    StreamUsersResponse,
    UpdateUserResponse,
)
from ..store.base import UserStore
from .channel import ChannelClosedError, Receiver, Sender, open_channel

logger = logging.getLogger(__name__)

BATCH_SIZE = 100
CHANNEL_CAPACITY = 128


def _require_text(value: str, field_name: str) -> None:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} must not be empty", field_name=field_name)


class UserUsecase:
    """Orchestrates user operations over a UserStore.

    Attributes:
        store: Storage backend
        batch_size: Users fetched per storage call during a stream
        channel_capacity: Messages buffered per stream

    Example:
        >>> usecase = UserUsecase(InMemoryUserStore())
        >>> created = await usecase.create_user("Ada", "Lovelace")
        >>> async with usecase.stream_users() as receiver:
        ...     async for message in receiver:
        ...         print(message.user)
    """

    def __init__(
        self,
        store: UserStore,
        batch_size: int = BATCH_SIZE,
        channel_capacity: int = CHANNEL_CAPACITY,
    ) -> None:
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        if channel_capacity <= 0:
            raise ValueError(f"channel_capacity must be positive, got {channel_capacity}")

        self.store = store
        self.batch_size = batch_size
        self.channel_capacity = channel_capacity
        self._exports: Set[asyncio.Task] = set()

    @property
    def active_exports(self) -> Set[asyncio.Task]:
        """Export tasks that have not finished yet."""
        return set(self._exports)

    async def create_user(self, name: str, surname: str) -> CreateUserResponse:
        _require_text(name, "name")
        _require_text(surname, "surname")

        user = await self.store.create(name, surname)
        return CreateUserResponse(user=user)

    async def get_users(self) -> GetUsersResponse:
        users, count = await self.store.get_all()
        return GetUsersResponse(users=users, count=count)

    async def get_users_batch(self, offset: int, limit: int) -> GetUsersBatchResponse:
        if offset < 0:
            raise ValidationError("offset must not be negative", field_name="offset")
        if limit <= 0:
            raise ValidationError("limit must be positive", field_name="limit")

        users = await self.store.get_batch(offset, limit)
        return GetUsersBatchResponse(users=users, offset=offset, limit=limit)

    async def get_user_by_id(self, user_id: int) -> GetUserResponse:
        user = await self.store.get_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User not found: id={user_id}", resource_id=user_id)
        return GetUserResponse(user=user)

    async def get_user_by_name(self, name: str) -> GetUserResponse:
        user = await self.store.get_by_name(name)
        if user is None:
            raise NotFoundError(f"User not found: name={name!r}", resource_id=name)
        return GetUserResponse(user=user)

    async def update_user(
        self,
        user_id: int,
        name: Optional[str] = None,
        surname: Optional[str] = None,
    ) -> UpdateUserResponse:
        """Update the provided fields of a user.

        Omitted fields (None) keep their stored value; passing neither
        returns the user unchanged.

        Raises:
            ValidationError: If a provided field is empty
            NotFoundError: If no user has this id
        """
        if name is not None:
            _require_text(name, "name")
        if surname is not None:
            _require_text(surname, "surname")

        user = await self.store.update(user_id, name=name, surname=surname)
        if user is None:
            raise NotFoundError(f"User not found: id={user_id}", resource_id=user_id)
        return UpdateUserResponse(user=user)

    async def delete_user(self, user_id: int) -> DeleteUserResponse:
        await self.store.delete(user_id)
        return DeleteUserResponse()

    async def health(self) -> HealthResponse:
        storage_healthy = await self.store.is_healthy()
        return HealthResponse(
            healthy=storage_healthy,
            version=__version__,
            components={"storage": "healthy" if storage_healthy else "unhealthy"},
        )

    def stream_users(self) -> Receiver[StreamUsersResponse]:
        """Start a streaming export of every user.

        Returns as soon as the channel exists and the export task is
        scheduled; the caller consumes the receiver at its own pace.

        Returns:
            Receiver yielding StreamUsersResponse in ascending id order.
            If storage fails mid-stream the receiver raises the StorageError
            after the messages already delivered. If the export is cancelled
            by close() the receiver raises InternalError instead. Close the
            receiver, or use it with ``async with``, when stopping early.
        """
        sender, receiver = open_channel(self.channel_capacity)

        task = asyncio.create_task(self._export_users(sender))
        self._exports.add(task)
        task.add_done_callback(functools.partial(self._export_done, sender))

        return receiver

    def _export_done(self, sender: Sender[StreamUsersResponse], task: asyncio.Task) -> None:
        self._exports.discard(task)
        # Covers tasks cancelled before their first step as well.
        if task.cancelled():
            logger.info("Export cancelled before completion")
            sender.abort(InternalError("export cancelled: server shutting down"))

    async def _export_users(self, sender: Sender[StreamUsersResponse]) -> None:
        """Page through the store and push every user onto the channel."""
        offset = 0
        sent = 0

        try:
            while True:
                try:
                    batch = await self.store.get_batch(offset, self.batch_size)
                except Exception as e:
                    logger.error(
                        f"Export aborted by storage failure: {e}",
                        extra={"offset": offset, "sent": sent},
                    )
                    await sender.fail(e)
                    return

                if not batch:
                    await sender.close()
                    logger.info("Export complete", extra={"sent": sent})
                    return

                for user in batch:
                    await sender.send(StreamUsersResponse(user=user))
                    sent += 1

                offset += self.batch_size

        except ChannelClosedError:
            logger.info(
                "Export stopped, consumer disconnected",
                extra={"offset": offset, "sent": sent},
            )

    async def close(self) -> None:
        """Cancel exports that are still running."""
        tasks = list(self._exports)
        for task in tasks:
            task.cancel()

        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info(f"Cancelled {len(tasks)} running export(s)")
