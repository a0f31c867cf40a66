import asyncio
import json
import threading
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from grouptherapy.domain.radio import Asset, BroadcastState, ScheduleItem
from web.backend.broadcaster import (
    KEEPALIVE,
    ChannelClosed,
    ListenerChannel,
    RadioBroadcaster,
    format_event,
)

T0 = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)
ASSET = Asset("a1", "Midnight Drive", "Luna Wave", "https://cdn.example.com/m.mp3", 180)
LIVE = BroadcastState(is_scheduled=False, stream_url="https://live", listener_count=101)


@pytest.fixture
def resolver():
    resolver = MagicMock()
    resolver.resolve_current.return_value = LIVE
    resolver.store.get_asset.return_value = ASSET
    return resolver


@pytest.fixture
def broadcaster(resolver) -> RadioBroadcaster:
    return RadioBroadcaster(resolver, keepalive_interval=0.01, channel_queue_size=5)


def _drain(channel: ListenerChannel) -> list:
    items = []
    while not channel._queue.empty():
        items.append(channel._queue.get_nowait())
    return items


class FailingChannel(ListenerChannel):
    def send(self, message):
        raise ChannelClosed("listener went away")


@pytest.mark.anyio
async def test_connect_queues_current_state(broadcaster):
    channel = await broadcaster.connect()

    assert channel in broadcaster.channels
    [message] = _drain(channel)
    assert message["type"] == "state"
    assert message["isScheduled"] is False
    assert message["streamUrl"] == "https://live"


@pytest.mark.anyio
async def test_disconnect_removes_channel(broadcaster):
    channel = await broadcaster.connect()
    broadcaster.disconnect(channel)

    assert channel not in broadcaster.channels
    assert channel.closed
    broadcaster.disconnect(channel)


@pytest.mark.anyio
async def test_broadcast_reaches_every_channel(broadcaster):
    channels = [await broadcaster.connect() for _ in range(3)]
    for channel in channels:
        _drain(channel)

    delivered = await broadcaster.broadcast({"type": "schedule_deleted", "scheduleId": "s1"})

    assert delivered == 3
    for channel in channels:
        assert _drain(channel) == [{"type": "schedule_deleted", "scheduleId": "s1"}]


@pytest.mark.anyio
async def test_failing_channels_are_evicted_without_affecting_others(broadcaster):
    healthy = [await broadcaster.connect() for _ in range(3)]
    failing = [FailingChannel(), FailingChannel()]
    broadcaster.channels.extend(failing)

    delivered = await broadcaster.broadcast({"type": "schedule_deleted", "scheduleId": "s1"})

    assert delivered == 3
    assert broadcaster.channels == healthy
    assert all(channel.closed for channel in failing)


@pytest.mark.anyio
async def test_full_queue_counts_as_failed_send(broadcaster):
    channel = await broadcaster.connect()
    for i in range(4):
        await broadcaster.broadcast({"type": "state", "n": i})

    await broadcaster.broadcast({"type": "state", "n": 99})

    assert channel not in broadcaster.channels


@pytest.mark.anyio
async def test_publish_schedule_update_includes_item_asset_and_state(broadcaster):
    channel = await broadcaster.connect()
    _drain(channel)
    item = ScheduleItem("s1", "a1", T0, T0 + timedelta(minutes=5))

    assert await broadcaster.publish_schedule_update(item) == 1

    [message] = _drain(channel)
    assert message["type"] == "schedule_update"
    assert message["scheduleItem"]["id"] == "s1"
    assert message["asset"]["id"] == "a1"
    assert message["isScheduled"] is False


@pytest.mark.anyio
async def test_publish_never_raises(broadcaster, resolver):
    resolver.store.get_asset.side_effect = RuntimeError("database is locked")
    item = ScheduleItem("s1", "a1", T0, T0 + timedelta(minutes=5))

    assert await broadcaster.publish_schedule_update(item) == 0


@pytest.mark.anyio
async def test_publish_schedule_deleted(broadcaster):
    channel = await broadcaster.connect()
    _drain(channel)

    await broadcaster.publish_schedule_deleted("s1")

    assert _drain(channel) == [{"type": "schedule_deleted", "scheduleId": "s1"}]


def test_keepalive_is_framed_as_comment():
    assert format_event(KEEPALIVE) == ":keepalive\n\n"


def test_message_is_framed_as_data_event():
    frame = format_event({"type": "state", "isScheduled": False})
    assert frame.startswith("data: ")
    assert frame.endswith("\n\n")
    assert json.loads(frame[len("data: "):]) == {"type": "state", "isScheduled": False}


@pytest.mark.anyio
async def test_keepalive_loop_reaches_channels(broadcaster):
    channel = await broadcaster.connect()
    _drain(channel)

    await broadcaster.start()
    await asyncio.sleep(0.05)
    await broadcaster.shutdown()

    items = _drain(channel)
    assert KEEPALIVE in items


@pytest.mark.anyio
async def test_stream_yields_state_first_and_disconnects_on_close(broadcaster):
    channel = await broadcaster.connect()
    stream = broadcaster.stream(channel, AsyncMock(return_value=False))

    first = await stream.__anext__()
    assert json.loads(first[len("data: "):])["type"] == "state"

    await stream.aclose()
    assert channel not in broadcaster.channels


@pytest.mark.anyio
async def test_stream_ends_when_listener_disconnects(broadcaster):
    channel = await broadcaster.connect()
    chunks = [chunk async for chunk in broadcaster.stream(channel, AsyncMock(return_value=True))]

    assert len(chunks) == 1
    assert broadcaster.channels == []


@pytest.mark.anyio
async def test_shutdown_wakes_blocked_stream(broadcaster):
    channel = await broadcaster.connect()
    _drain(channel)

    async def consume():
        return [chunk async for chunk in broadcaster.stream(channel)]

    task = asyncio.create_task(consume())
    await asyncio.sleep(0)
    await broadcaster.shutdown()

    assert await asyncio.wait_for(task, timeout=1) == []


@pytest.mark.anyio
async def test_connect_resolves_again_when_update_lands_mid_resolve(broadcaster, resolver):
    scheduled = BroadcastState(
        is_scheduled=True,
        stream_url=ASSET.audio_url,
        listener_count=120,
        current_asset=ASSET,
        started_at=T0,
        duration_seconds=180,
        position_seconds=0,
    )
    entered = threading.Event()
    release = threading.Event()
    calls = []

    def resolve_current():
        calls.append(None)
        if len(calls) == 1:
            entered.set()
            release.wait(timeout=5)
            return LIVE
        return scheduled

    resolver.resolve_current.side_effect = resolve_current
    connect_task = asyncio.create_task(broadcaster.connect())
    try:
        await asyncio.to_thread(entered.wait, 5)
        item = ScheduleItem("s1", "a1", T0, T0 + timedelta(minutes=3))
        assert await broadcaster.publish_schedule_update(item) == 1
    finally:
        release.set()
    channel = await connect_task

    messages = _drain(channel)
    assert [(m["type"], m["isScheduled"]) for m in messages] == [
        ("schedule_update", True),
        ("state", True),
    ]


@pytest.mark.anyio
async def test_publish_state_sends_fresh_snapshot(broadcaster, resolver):
    channel = await broadcaster.connect()
    _drain(channel)
    resolver.resolve_current.return_value = BroadcastState(
        is_scheduled=False, stream_url="https://live", listener_count=130
    )

    assert await broadcaster.publish_state("asset update") == 1

    [message] = _drain(channel)
    assert message["type"] == "state"
    assert message["listenerCount"] == 130


@pytest.mark.anyio
async def test_publish_state_never_raises(broadcaster, resolver):
    resolver.resolve_current.side_effect = RuntimeError("database is locked")

    assert await broadcaster.publish_state("asset delete") == 0
