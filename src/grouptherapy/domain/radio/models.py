"""
Radio domain models.

Contains data structures for scheduled playback, assets, and the derived
broadcast state served to listeners.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import NamedTuple, Optional


def to_utc(value: datetime) -> datetime:
    """Normalize a datetime to aware UTC (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Asset:
    """A playable audio file with a known duration."""

    id: str
    title: str
    artist: str
    audio_url: str
    duration_seconds: int


@dataclass(frozen=True)
class RadioShow:
    """A named show a schedule item can belong to."""

    id: str
    name: str
    host_name: Optional[str] = None


@dataclass(frozen=True)
class ScheduleItem:
    """A time-boxed assignment of one asset to a broadcast slot.

    The window is half-open: [scheduled_start, scheduled_end).
    """

    id: str
    asset_id: str
    scheduled_start: datetime
    scheduled_end: datetime
    show_id: Optional[str] = None


class PlaybackPosition(NamedTuple):
    """Offset into a scheduled asset at a given instant."""

    position_seconds: int
    is_active: bool


@dataclass(frozen=True)
class DemoTrack:
    """Display metadata shown while the live fallback stream plays."""

    title: str
    artist: str
    show_name: str
    host_name: str


@dataclass(frozen=True)
class BroadcastState:
    """What is playing right now.

    Derived on every query and never persisted.
    """

    is_scheduled: bool
    stream_url: str
    listener_count: int
    current_asset: Optional[Asset] = None
    started_at: Optional[datetime] = None
    duration_seconds: Optional[int] = None
    position_seconds: Optional[int] = None
    title: Optional[str] = None
    artist: Optional[str] = None
    show_name: Optional[str] = None
    host_name: Optional[str] = None
