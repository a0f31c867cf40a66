"""Tests for wiring a listener to a server."""

import httpx
import pytest

from grouptherapy.core.config import Config
from grouptherapy.domain.playback import FixedDelayRetry, build_reconciler
from grouptherapy.domain.playback.listener import METADATA_PATH, STREAM_STATE_PATH, _describe
from grouptherapy.domain.playback.reconciler import TrackInfo


class NullAudio:
    source = None
    paused = True
    position = 0.0

    def load(self, url):
        self.source = url

    def play(self):
        self.paused = False

    def pause(self):
        self.paused = True

    def seek(self, seconds):
        pass

    def set_volume(self, volume):
        pass

    def close(self):
        pass


@pytest.mark.anyio
async def test_reconciler_polls_server_metadata():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == METADATA_PATH
        return httpx.Response(
            200,
            json={
                "isScheduled": False,
                "streamUrl": "https://stream.example.com/live",
                "listenerCount": 131,
                "title": "Midnight Drive",
                "artist": "Luna Wave",
            },
        )

    config = Config()
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="http://radio.test"
    ) as client:
        reconciler = build_reconciler(config, client, NullAudio())

        assert await reconciler.poll_once() is True

    assert reconciler.state.listener_count == 131
    assert reconciler.state.current_track.title == "Midnight Drive"


@pytest.mark.anyio
async def test_push_subscription_uses_configured_retry():
    config = Config()
    config.client.reconnect_delay_seconds = 7

    async with httpx.AsyncClient(base_url="http://radio.test") as client:
        reconciler = build_reconciler(config, client, NullAudio())

    assert reconciler.subscriber.url == STREAM_STATE_PATH
    assert isinstance(reconciler.subscriber.retry_policy, FixedDelayRetry)
    assert reconciler.subscriber.retry_policy.delay == 7


def test_describe_track():
    assert _describe(None) == "nothing"
    assert _describe(TrackInfo("Deep Waters", "Aqua Dreams", "Weekend Warm-Up")) == (
        "Deep Waters - Aqua Dreams (Weekend Warm-Up)"
    )
