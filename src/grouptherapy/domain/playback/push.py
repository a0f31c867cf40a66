"""
Push channel subscription for radio listeners.

Reads the server's text/event-stream and hands each event's data to a
callback. Reconnection is driven by a retry policy object so the backoff can
change without touching the reconciliation logic.
"""

import asyncio
from typing import AsyncIterator, Callable, Optional, Protocol

import httpx
from loguru import logger


class RetryPolicy(Protocol):
    def next_delay(self, attempt: int) -> Optional[float]:
        """Seconds to wait before reconnect attempt number `attempt`, or None to give up."""
        ...


class FixedDelayRetry:
    """Retry forever with the same delay between attempts."""

    def __init__(self, delay: float = 5.0) -> None:
        self.delay = delay

    def next_delay(self, attempt: int) -> Optional[float]:
        return self.delay


class StreamClosed(Exception):
    """The server ended the event stream."""


async def iter_sse_data(lines: AsyncIterator[str]) -> AsyncIterator[str]:
    """Yield the data of each server-sent event.

    Comment lines (keepalives) and fields other than data are skipped;
    multi-line data is joined with newlines.
    """
    data_lines: list[str] = []
    async for line in lines:
        line = line.rstrip("\r")
        if not line:
            if data_lines:
                yield "\n".join(data_lines)
                data_lines = []
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        if field == "data":
            data_lines.append(value[1:] if value.startswith(" ") else value)

    if data_lines:
        yield "\n".join(data_lines)


class EventStreamSubscriber:
    """Cancellable subscription to a server-sent event endpoint."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str,
        retry_policy: Optional[RetryPolicy] = None,
    ) -> None:
        self.client = client
        self.url = url
        self.retry_policy = retry_policy or FixedDelayRetry()

    def subscribe(
        self,
        on_message: Callable[[str], None],
        on_error: Callable[[Exception], None],
        on_open: Optional[Callable[[], None]] = None,
    ) -> Callable[[], None]:
        """Start reading events in a background task.

        Returns:
            Function that cancels the subscription
        """
        task = asyncio.create_task(self._run(on_message, on_error, on_open))

        def unsubscribe() -> None:
            task.cancel()

        return unsubscribe

    async def _run(
        self,
        on_message: Callable[[str], None],
        on_error: Callable[[Exception], None],
        on_open: Optional[Callable[[], None]],
    ) -> None:
        attempt = 0
        while True:
            try:
                await self._read_stream(on_message, on_open)
                raise StreamClosed(f"event stream {self.url} closed by server")
            except asyncio.CancelledError:
                raise
            except Exception as e:
                on_error(e)

            attempt += 1
            delay = self.retry_policy.next_delay(attempt)
            if delay is None:
                logger.warning(f"Giving up on event stream {self.url} after {attempt} attempts")
                return
            logger.debug(f"Reconnecting to {self.url} in {delay}s (attempt {attempt})")
            await asyncio.sleep(delay)

    async def _read_stream(
        self,
        on_message: Callable[[str], None],
        on_open: Optional[Callable[[], None]],
    ) -> None:
        async with self.client.stream(
            "GET",
            self.url,
            headers={"Accept": "text/event-stream"},
            timeout=httpx.Timeout(10.0, read=None),
        ) as response:
            response.raise_for_status()
            if on_open is not None:
                on_open()
            async for data in iter_sse_data(response.aiter_lines()):
                on_message(data)
