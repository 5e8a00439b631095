"""
Bounded delivery channel between an export task and its consumer.

open_channel() returns a (Sender, Receiver) pair sharing one bounded
asyncio.Queue. The producer owns the Sender, the consumer owns the
Receiver; neither side needs a reference to the other's task.

Invariants:
    - send() suspends while the queue is full (backpressure)
    - send() raises ChannelClosedError once the receiver is closed
    - A closed receiver never leaves a producer blocked forever
    - Items are received in the order they were sent
    - A terminal error is raised only after every earlier item was received
    - abort() never blocks, so it is safe from cancellation paths
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, AsyncIterator, Generic, Optional, Tuple, TypeVar

T = TypeVar("T")


class ChannelClosedError(Exception):
    """The receiving end has been closed."""

    pass


class _EndOfStream:
    pass


_END = _EndOfStream()


@dataclass
class _Failure:
    error: BaseException


class _ChannelState:
    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError(f"Channel capacity must be positive, got {capacity}")
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=capacity)
        self.receiver_closed = False
        self.aborted: Optional[_Failure] = None


class Sender(Generic[T]):
    """Producer end of a channel."""

    def __init__(self, state: _ChannelState) -> None:
        self._state = state

    @property
    def is_closed(self) -> bool:
        """Whether the receiver has gone away."""
        return self._state.receiver_closed

    async def _put(self, item: object) -> None:
        if self._state.receiver_closed:
            raise ChannelClosedError("receiver closed")
        await self._state.queue.put(item)
        # Receiver may have closed while we were waiting for space.
        if self._state.receiver_closed:
            raise ChannelClosedError("receiver closed")

    async def send(self, item: T) -> None:
        """Deliver one item, waiting while the channel is full.

        Raises:
            ChannelClosedError: If the receiver is closed
        """
        await self._put(item)

    async def close(self) -> None:
        """Signal a clean end of stream."""
        await self._put(_END)

    async def fail(self, error: BaseException) -> None:
        """End the stream with an error the receiver will raise."""
        await self._put(_Failure(error))

    def abort(self, error: BaseException) -> None:
        """End the stream with an error without waiting for queue space.

        Items already buffered are still delivered before the error.
        """
        failure = _Failure(error)
        self._state.aborted = failure
        try:
            self._state.queue.put_nowait(failure)
        except asyncio.QueueFull:
            # Receiver raises the error once it has drained the buffer.
            pass


class Receiver(Generic[T]):
    """Consumer end of a channel.

    Iterate with ``async for``. Iteration stops on a clean end of stream
    and raises the producer's error if the stream failed.

    A receiver that stops early must be closed, otherwise its producer
    stays parked on a full queue. Use it as an async context manager:

        async with usecase.stream_users() as receiver:
            async for message in receiver:
                ...
    """

    def __init__(self, state: _ChannelState) -> None:
        self._state = state
        self._finished = False

    async def __aenter__(self) -> Receiver[T]:
        return self

    async def __aexit__(self, *args: Any) -> None:
        self.close()

    def __aiter__(self) -> AsyncIterator[T]:
        return self

    async def __anext__(self) -> T:
        if self._finished or self._state.receiver_closed:
            raise StopAsyncIteration

        aborted = self._state.aborted
        if aborted is not None and self._state.queue.empty():
            self._finished = True
            raise aborted.error

        item = await self._state.queue.get()
        if item is _END:
            self._finished = True
            raise StopAsyncIteration
        if isinstance(item, _Failure):
            self._finished = True
            raise item.error
        return item

    def close(self) -> None:
        """Stop receiving and release a producer waiting on a full queue."""
        self._state.receiver_closed = True
        queue = self._state.queue
        while not queue.empty():
            queue.get_nowait()


def open_channel(capacity: int) -> Tuple[Sender, Receiver]:
    """Create a bounded channel.

    Args:
        capacity: Maximum number of buffered items

    Returns:
        (sender, receiver) pair
    """
    state = _ChannelState(capacity)
    return Sender(state), Receiver(state)
