"""
Metadata resolution for the radio.

Answers "what is playing right now" for the metadata endpoint and for the
state pushed to newly connected listeners. Resolution never raises: anything
that goes wrong degrades to the live fallback stream.
"""

from datetime import datetime
from typing import Optional, Protocol

from loguru import logger

from .models import (
    Asset,
    BroadcastState,
    DemoTrack,
    RadioShow,
    ScheduleItem,
    to_utc,
    utc_now,
)
from .position import calculate_position
from .selection import (
    DEMO_TRACKS,
    ListenerCountEstimator,
    RandomSelection,
    SelectionStrategy,
)


class ScheduleSource(Protocol):
    """The part of the schedule store the resolver reads."""

    def find_schedule_item_active_at(self, timestamp: datetime) -> Optional[ScheduleItem]: ...

    def get_asset(self, asset_id: str) -> Optional[Asset]: ...

    def get_show(self, show_id: str) -> Optional[RadioShow]: ...


class MetadataResolver:
    """Combines the schedule store and position calculator into a BroadcastState."""

    def __init__(
        self,
        store: ScheduleSource,
        default_stream_url: str,
        selection: Optional[SelectionStrategy] = None,
        listener_estimator: Optional[ListenerCountEstimator] = None,
        demo_tracks: tuple[DemoTrack, ...] = DEMO_TRACKS,
    ) -> None:
        self.store = store
        self.default_stream_url = default_stream_url
        self.selection = selection or RandomSelection()
        self.listener_estimator = listener_estimator or ListenerCountEstimator()
        self.demo_tracks = demo_tracks

    def resolve_current(self, now: Optional[datetime] = None) -> BroadcastState:
        """Resolve the broadcast state at an instant.

        Args:
            now: Instant to resolve for (defaults to current UTC time)

        Returns:
            Scheduled state when an item with a resolvable asset is active,
            otherwise the live fallback state
        """
        now = to_utc(now) if now is not None else utc_now()

        try:
            scheduled = self._resolve_scheduled(now)
        except Exception:
            logger.exception("Failed to resolve scheduled item, using live fallback")
            scheduled = None

        return scheduled or self.live_state()

    def _resolve_scheduled(self, now: datetime) -> Optional[BroadcastState]:
        item = self.store.find_schedule_item_active_at(now)
        if item is None:
            return None

        asset = self.store.get_asset(item.asset_id)
        if asset is None:
            logger.warning(
                f"Schedule item {item.id} references missing asset {item.asset_id}"
            )
            return None

        show = self._lookup_show(item.show_id)
        position = calculate_position(now, item, asset)

        return BroadcastState(
            is_scheduled=True,
            stream_url=asset.audio_url,
            listener_count=self.listener_estimator.estimate(),
            current_asset=asset,
            started_at=item.scheduled_start,
            duration_seconds=asset.duration_seconds,
            position_seconds=position.position_seconds,
            show_name=show.name if show else None,
            host_name=show.host_name if show else None,
        )

    def _lookup_show(self, show_id: Optional[str]) -> Optional[RadioShow]:
        if not show_id:
            return None
        show = self.store.get_show(show_id)
        if show is None:
            logger.debug(f"Show {show_id} not found, omitting show metadata")
        return show

    def live_state(self) -> BroadcastState:
        """Build the live fallback state with a demo track for display."""
        track = self.selection.pick(self.demo_tracks)
        return BroadcastState(
            is_scheduled=False,
            stream_url=self.default_stream_url,
            listener_count=self.listener_estimator.estimate(),
            title=track.title,
            artist=track.artist,
            show_name=track.show_name,
            host_name=track.host_name,
        )
