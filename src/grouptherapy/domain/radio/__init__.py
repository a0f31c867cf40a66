"""
Radio domain module.

Provides scheduled playback with deterministic position calculation, current
state resolution with a live fallback, and the push message wire format.
"""

from .messages import (
    MESSAGE_SCHEDULE_DELETED,
    MESSAGE_SCHEDULE_UPDATE,
    MESSAGE_STATE,
    schedule_deleted_message,
    schedule_update_message,
    state_message,
    state_payload,
)
from .models import (
    Asset,
    BroadcastState,
    DemoTrack,
    PlaybackPosition,
    RadioShow,
    ScheduleItem,
    to_utc,
    utc_now,
)
from .position import calculate_position, is_active_at
from .resolver import MetadataResolver
from .schedule import ScheduleStore
from .selection import (
    DEMO_TRACKS,
    ListenerCountEstimator,
    RandomSelection,
    SelectionStrategy,
)

__all__ = [
    # Models
    "Asset",
    "BroadcastState",
    "DemoTrack",
    "PlaybackPosition",
    "RadioShow",
    "ScheduleItem",
    "to_utc",
    "utc_now",
    # Position
    "calculate_position",
    "is_active_at",
    # Store
    "ScheduleStore",
    # Resolution
    "MetadataResolver",
    "DEMO_TRACKS",
    "ListenerCountEstimator",
    "RandomSelection",
    "SelectionStrategy",
    # Messages
    "MESSAGE_STATE",
    "MESSAGE_SCHEDULE_UPDATE",
    "MESSAGE_SCHEDULE_DELETED",
    "state_message",
    "state_payload",
    "schedule_update_message",
    "schedule_deleted_message",
]
