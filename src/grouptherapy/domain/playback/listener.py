"""Run a listener against a GroupTherapy server until interrupted."""

import asyncio
from typing import Any, Optional

import httpx
from loguru import logger

from grouptherapy.core.config import Config

from .audio import AudioOutput, MpvAudioOutput
from .push import EventStreamSubscriber, FixedDelayRetry
from .reconciler import PlaybackReconciler, TrackInfo

METADATA_PATH = "/api/radio/metadata"
STREAM_STATE_PATH = "/api/radio/stream-state"


def build_reconciler(
    config: Config,
    client: httpx.AsyncClient,
    audio: AudioOutput,
) -> PlaybackReconciler:
    """Wire a reconciler to the server the client points at."""

    async def fetch_metadata() -> dict[str, Any]:
        response = await client.get(METADATA_PATH)
        response.raise_for_status()
        return response.json()

    subscriber = EventStreamSubscriber(
        client,
        STREAM_STATE_PATH,
        retry_policy=FixedDelayRetry(config.client.reconnect_delay_seconds),
    )
    return PlaybackReconciler(
        audio,
        default_stream_url=config.radio.default_stream_url,
        subscriber=subscriber,
        fetch_metadata=fetch_metadata,
        config=config.client,
        station_name=config.radio.station_name,
    )


def _describe(track: Optional[TrackInfo]) -> str:
    if track is None:
        return "nothing"
    text = f"{track.title} - {track.artist}"
    if track.show_name:
        text += f" ({track.show_name})"
    return text


async def run_listener(
    config: Config,
    audio: Optional[AudioOutput] = None,
    status_interval: float = 5.0,
) -> None:
    """Play the station and log what is on air whenever it changes."""
    if audio is None:
        mpv = MpvAudioOutput(config.client.mpv_socket_path, volume=config.client.volume)
        mpv.start()
        audio = mpv

    async with httpx.AsyncClient(base_url=config.client.server_url) as client:
        reconciler = build_reconciler(config, client, audio)
        await reconciler.start()
        reconciler.play()
        logger.info(f"Listening to {config.client.server_url}")

        last = None
        try:
            while True:
                described = _describe(reconciler.state.current_track)
                if described != last:
                    print(f"♪ {described}")
                    last = described
                await asyncio.sleep(status_interval)
        finally:
            await reconciler.stop()
            audio.close()
