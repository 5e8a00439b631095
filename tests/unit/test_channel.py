"""
Unit tests for the bounded export channel.

Tests cover:
- FIFO delivery and clean end of stream
- Terminal failures
- Backpressure and receiver close
- Non-blocking abort and context manager use
"""

import asyncio

import pytest

from userdb_server.usecase import ChannelClosedError, open_channel


class TestChannel:
    """Tests for open_channel, Sender and Receiver."""

    @pytest.mark.asyncio
    async def test_items_arrive_in_order(self):
        """Received items keep send order."""
        sender, receiver = open_channel(4)

        async def produce():
            for i in range(10):
                await sender.send(i)
            await sender.close()

        task = asyncio.create_task(produce())
        received = [item async for item in receiver]
        await task

        assert received == list(range(10))

    @pytest.mark.asyncio
    async def test_empty_stream(self):
        """Closing without sending ends iteration immediately."""
        sender, receiver = open_channel(1)
        await sender.close()

        received = [item async for item in receiver]

        assert received == []

    @pytest.mark.asyncio
    async def test_failure_raised_after_items(self):
        """Items sent before fail() are still delivered."""
        sender, receiver = open_channel(4)
        await sender.send("a")
        await sender.send("b")
        await sender.fail(RuntimeError("boom"))

        received = []
        with pytest.raises(RuntimeError, match="boom"):
            async for item in receiver:
                received.append(item)

        assert received == ["a", "b"]

    @pytest.mark.asyncio
    async def test_iteration_stops_after_end(self):
        """A finished receiver keeps reporting end of stream."""
        sender, receiver = open_channel(2)
        await sender.close()

        assert [item async for item in receiver] == []
        with pytest.raises(StopAsyncIteration):
            await receiver.__anext__()

    @pytest.mark.asyncio
    async def test_send_after_receiver_close_raises(self):
        """Producer learns about the disconnect on its next send."""
        sender, receiver = open_channel(2)
        receiver.close()

        assert sender.is_closed
        with pytest.raises(ChannelClosedError):
            await sender.send(1)

    @pytest.mark.asyncio
    async def test_full_channel_blocks_producer(self):
        """send() waits while the channel is at capacity."""
        sender, receiver = open_channel(2)
        await sender.send(1)
        await sender.send(2)

        blocked = asyncio.create_task(sender.send(3))
        await asyncio.sleep(0.01)
        assert not blocked.done()

        assert await receiver.__anext__() == 1
        await asyncio.wait_for(blocked, timeout=1.0)

    @pytest.mark.asyncio
    async def test_close_releases_blocked_producer(self):
        """Closing the receiver wakes a producer stuck on a full channel."""
        sender, receiver = open_channel(1)
        await sender.send(1)

        blocked = asyncio.create_task(sender.send(2))
        await asyncio.sleep(0.01)
        assert not blocked.done()

        receiver.close()

        with pytest.raises(ChannelClosedError):
            await asyncio.wait_for(blocked, timeout=1.0)

    @pytest.mark.asyncio
    async def test_closed_receiver_stops_iteration(self):
        """Items left in the buffer are dropped once the receiver closes."""
        sender, receiver = open_channel(4)
        await sender.send(1)
        await sender.send(2)

        receiver.close()

        assert [item async for item in receiver] == []

    @pytest.mark.asyncio
    async def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            open_channel(0)
        with pytest.raises(ValueError):
            open_channel(-1)

    @pytest.mark.asyncio
    async def test_abort_wakes_waiting_receiver(self):
        """abort() ends a receiver blocked on an empty channel."""
        sender, receiver = open_channel(2)

        waiting = asyncio.create_task(receiver.__anext__())
        await asyncio.sleep(0.01)
        sender.abort(RuntimeError("cancelled"))

        with pytest.raises(RuntimeError, match="cancelled"):
            await asyncio.wait_for(waiting, timeout=1.0)

    @pytest.mark.asyncio
    async def test_abort_on_full_channel_delivers_buffer_first(self):
        """abort() does not block on a full channel and keeps buffered items."""
        sender, receiver = open_channel(2)
        await sender.send(1)
        await sender.send(2)

        sender.abort(RuntimeError("cancelled"))

        received = []
        with pytest.raises(RuntimeError, match="cancelled"):
            async for item in receiver:
                received.append(item)
        assert received == [1, 2]

    @pytest.mark.asyncio
    async def test_context_manager_closes_receiver(self):
        """Leaving the async with block releases a blocked producer."""
        sender, receiver = open_channel(1)

        async with receiver:
            await sender.send(1)
            blocked = asyncio.create_task(sender.send(2))
            await asyncio.sleep(0.01)
            assert not blocked.done()

        assert sender.is_closed
        with pytest.raises(ChannelClosedError):
            await asyncio.wait_for(blocked, timeout=1.0)
