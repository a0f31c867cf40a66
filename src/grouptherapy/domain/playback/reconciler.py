"""
Listener-side playback reconciliation.

Keeps a local audio output aligned with the station: scheduled assets play at
the position every other listener hears, anything else plays the live stream.
State arrives over the push channel, with a metadata poll as fallback while
the push channel is down.
"""

import asyncio
import json
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from loguru import logger

from grouptherapy.core.config import ClientConfig
from grouptherapy.domain.radio import (
    MESSAGE_SCHEDULE_DELETED,
    MESSAGE_SCHEDULE_UPDATE,
    MESSAGE_STATE,
    to_utc,
    utc_now,
)

from .audio import AudioOutput
from .push import EventStreamSubscriber

LIVE_ARTIST = "Live Stream"


class PlaybackMode(str, Enum):
    LIVE = "live"
    SCHEDULED = "scheduled"


@dataclass
class TrackInfo:
    title: str
    artist: str
    show_name: Optional[str] = None
    host_name: Optional[str] = None


@dataclass
class ScheduledAsset:
    id: str
    title: str
    artist: str
    audio_url: str
    duration_seconds: float


@dataclass
class ListenerState:
    """What one listener is hearing and showing."""

    is_playing: bool = False
    volume: float = 0.7
    current_track: Optional[TrackInfo] = None
    is_live: bool = True
    progress: float = 0.0
    duration: float = 0.0
    listener_count: int = 0
    is_scheduled: bool = False
    current_stream_url: Optional[str] = None
    current_asset: Optional[ScheduledAsset] = None
    started_at: Optional[datetime] = None

    @property
    def mode(self) -> PlaybackMode:
        return PlaybackMode.SCHEDULED if self.is_scheduled else PlaybackMode.LIVE


def parse_started_at(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp, accepting a trailing Z.

    Raises:
        ValueError: If value is not an ISO-8601 string
    """
    if not isinstance(value, str):
        raise ValueError(f"startedAt must be a string, got {type(value).__name__}")
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return to_utc(datetime.fromisoformat(value))


def _parse_asset(data: Any) -> ScheduledAsset:
    if not isinstance(data, dict):
        raise ValueError(f"currentAsset must be an object, got {type(data).__name__}")
    return ScheduledAsset(
        id=str(data["id"]),
        title=str(data["title"]),
        artist=str(data["artist"]),
        audio_url=str(data["audioUrl"]),
        duration_seconds=float(data["durationSeconds"]),
    )


class PlaybackReconciler:
    """State machine driving one listener's audio output.

    LIVE plays the default stream. SCHEDULED plays the current asset and
    keeps its position within the drift tolerance of the shared timeline.
    Push messages and poll responses both go through the same reconciliation,
    so either source alone is enough to stay in sync.
    """

    def __init__(
        self,
        audio: AudioOutput,
        default_stream_url: str,
        subscriber: Optional[EventStreamSubscriber] = None,
        fetch_metadata: Optional[Callable[[], Awaitable[dict[str, Any]]]] = None,
        config: Optional[ClientConfig] = None,
        clock: Callable[[], datetime] = utc_now,
        station_name: str = "GroupTherapy Radio",
    ) -> None:
        self.audio = audio
        self.default_stream_url = default_stream_url
        self.subscriber = subscriber
        self.fetch_metadata = fetch_metadata
        self.config = config or ClientConfig()
        self.clock = clock
        self.station_name = station_name

        self.state = ListenerState(
            volume=self.config.volume,
            current_track=self._live_track(),
        )
        self.push_connected = False

        self._running = False
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._poll_task: Optional[asyncio.Task] = None
        self._progress_task: Optional[asyncio.Task] = None

    # === Lifecycle ===

    async def start(self) -> None:
        """Load the live stream and begin listening for state."""
        if self._running:
            return
        self._running = True

        self.audio.set_volume(self.state.volume)
        if self.state.current_stream_url is None:
            self._switch_source(self.default_stream_url)

        if self.subscriber is not None:
            self._unsubscribe = self.subscriber.subscribe(
                self.handle_message, self._on_push_error, self._on_push_open
            )
        if self.fetch_metadata is not None:
            self._poll_task = asyncio.create_task(self._poll_loop())
        if self.state.is_scheduled:
            self._ensure_progress_task()

    async def stop(self) -> None:
        """Cancel the subscription and every timer together."""
        self._running = False
        self.push_connected = False

        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        tasks = [t for t in (self._poll_task, self._progress_task) if t is not None]
        self._poll_task = None
        self._progress_task = None
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # === Incoming state ===

    def handle_message(self, raw: str) -> None:
        """Apply one push message; malformed input is logged and dropped."""
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Dropping malformed push message: {e}")
            return

        if not isinstance(data, dict):
            logger.warning(f"Dropping push message that is not an object: {raw[:100]}")
            return

        try:
            self.apply_message(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Dropping push message {data.get('type')!r}: {e}")
        except Exception:
            logger.exception(f"Dropping push message {data.get('type')!r} after unexpected error")

    def apply_message(self, data: dict[str, Any]) -> None:
        message_type = data.get("type")
        if message_type in (MESSAGE_STATE, MESSAGE_SCHEDULE_UPDATE):
            self.apply_state(data)
        elif message_type == MESSAGE_SCHEDULE_DELETED:
            logger.info(f"Schedule item {data.get('scheduleId')} deleted, returning to live")
            self._enter_live()
        else:
            logger.debug(f"Ignoring push message type {message_type!r}")

    def apply_state(self, data: dict[str, Any]) -> None:
        """Reconcile against a BroadcastState payload from push or poll."""
        if "listenerCount" in data:
            self.state.listener_count = int(data["listenerCount"])

        asset = data.get("currentAsset")
        if data.get("isScheduled") and asset:
            self._enter_scheduled(data, _parse_asset(asset))
        else:
            self._enter_live(data)

    def _enter_scheduled(self, data: dict[str, Any], asset: ScheduledAsset) -> None:
        position = data.get("positionSeconds")
        if data.get("startedAt"):
            started_at = parse_started_at(data["startedAt"])
        elif position is not None:
            started_at = self.clock() - timedelta(seconds=float(position))
        else:
            raise ValueError("scheduled state without startedAt or positionSeconds")

        if not self.state.is_scheduled or (
            self.state.current_asset and self.state.current_asset.id != asset.id
        ):
            logger.info(f"Now scheduled: {asset.title} by {asset.artist}")

        self.state.is_scheduled = True
        self.state.is_live = False
        self.state.current_asset = asset
        self.state.duration = asset.duration_seconds
        self.state.started_at = started_at
        self.state.current_track = TrackInfo(
            title=asset.title,
            artist=asset.artist,
            show_name=data.get("showName"),
            host_name=data.get("hostName"),
        )

        stream_url = data.get("streamUrl") or asset.audio_url
        if stream_url != self.state.current_stream_url:
            self._switch_source(stream_url)

        if position is not None:
            self.sync_position(float(position))
        self.tick()
        if self._running:
            self._ensure_progress_task()

    def _enter_live(self, data: Optional[dict[str, Any]] = None) -> None:
        if self.state.is_scheduled:
            logger.info("Schedule ended, switching to live stream")
        self._cancel_progress_task()

        self.state.is_scheduled = False
        self.state.is_live = True
        self.state.current_asset = None
        self.state.started_at = None
        self.state.progress = 0.0
        self.state.duration = 0.0

        if data and data.get("title"):
            self.state.current_track = TrackInfo(
                title=data["title"],
                artist=data.get("artist") or LIVE_ARTIST,
                show_name=data.get("showName"),
                host_name=data.get("hostName"),
            )
        else:
            self.state.current_track = self._live_track()

        if self.state.current_stream_url != self.default_stream_url:
            self._switch_source(self.default_stream_url)

    def _live_track(self) -> TrackInfo:
        return TrackInfo(title=self.station_name, artist=LIVE_ARTIST)

    def _switch_source(self, url: str) -> None:
        """Load a new source, keeping whether the listener wanted playback."""
        self.audio.pause()
        self.audio.load(url)
        self.state.current_stream_url = url
        if self.state.is_playing:
            self.audio.play()

    def sync_position(self, position_seconds: float) -> bool:
        """Snap the audio position if it drifted past the tolerance.

        Returns:
            True if the audio was seeked
        """
        if not self.state.is_scheduled or self.state.current_asset is None:
            return False

        target = max(0.0, min(position_seconds, self.state.duration))
        drift = abs(self.audio.position - target)
        if drift <= self.config.drift_tolerance_seconds:
            return False

        logger.debug(f"Drift {drift:.1f}s exceeds tolerance, seeking to {target:.0f}s")
        self.audio.seek(target)
        self.state.progress = target
        return True

    # === Progress ===

    def tick(self, now: Optional[datetime] = None) -> Optional[float]:
        """Recompute local progress from startedAt.

        Returns:
            Progress in seconds, or None when not scheduled
        """
        if not self.state.is_scheduled or self.state.started_at is None:
            return None

        now = to_utc(now) if now is not None else self.clock()
        elapsed = math.floor((now - self.state.started_at).total_seconds())
        self.state.progress = float(max(0, min(elapsed, self.state.duration)))
        return self.state.progress

    async def _progress_loop(self) -> None:
        while self.state.is_scheduled:
            self.tick()
            await asyncio.sleep(self.config.progress_interval_seconds)

    def _ensure_progress_task(self) -> None:
        if self._progress_task is None or self._progress_task.done():
            self._progress_task = asyncio.create_task(self._progress_loop())

    def _cancel_progress_task(self) -> None:
        if self._progress_task is not None:
            self._progress_task.cancel()
            self._progress_task = None

    # === Poll fallback ===

    async def poll_once(self) -> bool:
        """Fetch metadata unless the push channel is connected.

        Returns:
            True if a metadata response was applied
        """
        if self.push_connected or self.fetch_metadata is None:
            return False

        try:
            data = await self.fetch_metadata()
        except Exception as e:
            logger.warning(f"Metadata poll failed: {e}")
            return False

        try:
            self.apply_state(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring malformed metadata response: {e}")
            return False
        except Exception:
            logger.exception("Ignoring metadata response after unexpected error")
            return False
        return True

    async def _poll_loop(self) -> None:
        while True:
            await self.poll_once()
            await asyncio.sleep(self.config.poll_interval_seconds)

    # === Push channel callbacks ===

    def _on_push_open(self) -> None:
        self.push_connected = True
        logger.info("Push channel connected")

    def _on_push_error(self, error: Exception) -> None:
        if self.push_connected:
            logger.warning(f"Push channel lost: {error}")
        else:
            logger.debug(f"Push channel unavailable: {error}")
        self.push_connected = False

    # === Listener controls ===

    def play(self) -> None:
        self.audio.play()
        self.state.is_playing = True

    def pause(self) -> None:
        self.audio.pause()
        self.state.is_playing = False

    def toggle_play(self) -> None:
        if self.state.is_playing:
            self.pause()
        else:
            self.play()

    def set_volume(self, volume: float) -> None:
        volume = max(0.0, min(1.0, volume))
        self.audio.set_volume(volume)
        self.state.volume = volume

    def seek(self, seconds: float) -> None:
        """Seek within a scheduled asset; the live stream cannot be seeked."""
        if self.state.is_live:
            return
        target = max(0.0, min(seconds, self.state.duration))
        self.audio.seek(target)
        self.state.progress = target
