"""
Playback position calculation for scheduled items.

Maps (current time, schedule item) to an offset into the item's asset so that
every listener tuning in mid-broadcast lands on the same second.
"""

import math
from datetime import datetime

from .models import Asset, PlaybackPosition, ScheduleItem, to_utc


def is_active_at(item: ScheduleItem, now: datetime) -> bool:
    """Check whether now falls in the item's [start, end) window."""
    now = to_utc(now)
    return to_utc(item.scheduled_start) <= now < to_utc(item.scheduled_end)


def calculate_position(
    now: datetime, item: ScheduleItem, asset: Asset
) -> PlaybackPosition:
    """Calculate the playback offset of a scheduled asset.

    Args:
        now: Instant to calculate for
        item: Schedule item whose window anchors the offset
        asset: Asset referenced by the item

    Returns:
        PlaybackPosition with whole seconds elapsed since the scheduled start,
        clamped to [0, duration_seconds], and whether the window is active
    """
    elapsed = (to_utc(now) - to_utc(item.scheduled_start)).total_seconds()
    position = max(0, min(math.floor(elapsed), asset.duration_seconds))
    return PlaybackPosition(
        position_seconds=position,
        is_active=is_active_at(item, now),
    )
