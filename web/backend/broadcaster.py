import asyncio
import json
from typing import Any, AsyncIterator, Callable, Optional

from fastapi.concurrency import run_in_threadpool
from loguru import logger

from grouptherapy.domain.radio import (
    MetadataResolver,
    ScheduleItem,
    schedule_deleted_message,
    schedule_update_message,
    state_message,
)

# Queued on a channel in place of a message; framed as an SSE comment
KEEPALIVE = object()
# Queued on close to wake a reader blocked on an empty queue
_CLOSED = object()


class ChannelClosed(Exception):
    """Raised when sending to a channel whose listener has gone away."""


class ListenerChannel:
    """One connected listener's outbound queue.

    The SSE response drains the queue; the broadcaster fills it. A full queue
    means the listener stopped reading, which counts as a failed send.
    """

    def __init__(self, maxsize: int = 100) -> None:
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.closed = False

    def send(self, message: Any) -> None:
        if self.closed:
            raise ChannelClosed("channel is closed")
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            raise ChannelClosed("listener is not draining its queue")

    async def receive(self) -> Any:
        return await self._queue.get()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self._queue.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            pass  # reader exits on the closed flag after draining


def format_event(message: Any) -> str:
    """Frame a queued item as text/event-stream."""
    if message is KEEPALIVE:
        return ":keepalive\n\n"
    return f"data: {json.dumps(message)}\n\n"


class RadioBroadcaster:
    """Manages listener channels and fans out schedule state updates.

    Owned by the application lifespan: start() launches the keepalive task,
    shutdown() cancels it and closes every channel. All registry mutation
    happens on the event loop; broadcasts iterate a snapshot.
    """

    def __init__(
        self,
        resolver: MetadataResolver,
        keepalive_interval: float = 30.0,
        channel_queue_size: int = 100,
    ) -> None:
        self.resolver = resolver
        self.keepalive_interval = keepalive_interval
        self.channel_queue_size = channel_queue_size
        self.channels: list[ListenerChannel] = []
        self._keepalive_task: Optional[asyncio.Task] = None
        # Bumped on every broadcast; keepalives don't count
        self._broadcast_sequence = 0

    async def start(self) -> None:
        """Start the periodic keepalive task."""
        if self._keepalive_task is None:
            self._keepalive_task = asyncio.create_task(self._keepalive_loop())
            logger.info(
                f"Radio broadcaster started (keepalive every {self.keepalive_interval}s)"
            )

    async def shutdown(self) -> None:
        """Stop the keepalive task and drop all channels."""
        if self._keepalive_task is not None:
            self._keepalive_task.cancel()
            try:
                await self._keepalive_task
            except asyncio.CancelledError:
                pass
            self._keepalive_task = None

        for channel in list(self.channels):
            channel.close()
        self.channels.clear()
        logger.info("Radio broadcaster stopped")

    async def connect(self) -> ListenerChannel:
        """Register a new channel and queue the current state on it.

        The channel is registered before resolving so no broadcast is missed.
        If one lands while resolving, the state is resolved again so the
        snapshot queued last is never older than the broadcast before it.
        """
        channel = ListenerChannel(maxsize=self.channel_queue_size)
        self.channels.append(channel)
        logger.debug(f"Listener connected ({len(self.channels)} total)")

        while True:
            sequence = self._broadcast_sequence
            state = await run_in_threadpool(self.resolver.resolve_current)
            if sequence == self._broadcast_sequence:
                break
            logger.debug("Broadcast arrived while resolving initial state, resolving again")

        try:
            channel.send(state_message(state))
        except ChannelClosed:
            self.disconnect(channel)
        return channel

    def disconnect(self, channel: ListenerChannel) -> None:
        """Remove a channel from the registry."""
        channel.close()
        if channel in self.channels:
            self.channels.remove(channel)
            logger.debug(f"Listener disconnected ({len(self.channels)} total)")

    async def broadcast(self, message: dict[str, Any]) -> int:
        """Send a message to every connected channel.

        Channels that fail are evicted; the others still receive the message.

        Returns:
            Number of channels the message was delivered to
        """
        self._broadcast_sequence += 1
        return self._send_all(message, describe=message.get("type", "message"))

    def _send_all(self, message: Any, describe: str) -> int:
        delivered = 0
        dead_channels: list[ListenerChannel] = []

        for channel in list(self.channels):
            try:
                channel.send(message)
                delivered += 1
            except Exception as e:
                logger.warning(f"Evicting listener channel after failed {describe}: {e}")
                dead_channels.append(channel)

        for channel in dead_channels:
            self.disconnect(channel)

        return delivered

    async def publish_schedule_update(self, item: ScheduleItem) -> int:
        """Push a created or modified schedule item with the current state.

        Never raises: a failed push must not fail the mutation that caused it.
        """
        try:
            asset = await run_in_threadpool(self.resolver.store.get_asset, item.asset_id)
            state = await run_in_threadpool(self.resolver.resolve_current)
            return await self.broadcast(schedule_update_message(item, asset, state))
        except Exception:
            logger.exception(f"Failed to publish update for schedule item {item.id}")
            return 0

    async def publish_schedule_deleted(self, item_id: str) -> int:
        try:
            return await self.broadcast(schedule_deleted_message(item_id))
        except Exception:
            logger.exception(f"Failed to publish deletion of schedule item {item_id}")
            return 0

    async def publish_state(self, reason: str) -> int:
        """Push a fresh state snapshot after a change that is not a schedule mutation."""
        try:
            state = await run_in_threadpool(self.resolver.resolve_current)
            return await self.broadcast(state_message(state))
        except Exception:
            logger.exception(f"Failed to publish state after {reason}")
            return 0

    def send_keepalive(self) -> int:
        return self._send_all(KEEPALIVE, describe="keepalive")

    async def _keepalive_loop(self) -> None:
        while True:
            await asyncio.sleep(self.keepalive_interval)
            self.send_keepalive()

    async def stream(
        self,
        channel: ListenerChannel,
        is_disconnected: Optional[Callable[[], Any]] = None,
    ) -> AsyncIterator[str]:
        """Yield framed events for a channel until the listener goes away."""
        try:
            while not channel.closed:
                message = await channel.receive()
                if message is _CLOSED:
                    break
                yield format_event(message)
                if is_disconnected is not None and await is_disconnected():
                    break
        finally:
            self.disconnect(channel)
