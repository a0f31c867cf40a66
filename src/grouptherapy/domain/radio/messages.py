"""
Wire format for radio state.

Builds the camelCase JSON payloads shared by the metadata endpoint, the push
channel, and the listener client.
"""

from datetime import datetime
from typing import Any, Optional

from .models import Asset, BroadcastState, ScheduleItem, to_utc

MESSAGE_STATE = "state"
MESSAGE_SCHEDULE_UPDATE = "schedule_update"
MESSAGE_SCHEDULE_DELETED = "schedule_deleted"


def isoformat_utc(value: datetime) -> str:
    """Format a datetime as ISO-8601 UTC with a trailing Z."""
    return to_utc(value).isoformat().replace("+00:00", "Z")


def asset_payload(asset: Asset) -> dict[str, Any]:
    return {
        "id": asset.id,
        "title": asset.title,
        "artist": asset.artist,
        "audioUrl": asset.audio_url,
        "durationSeconds": asset.duration_seconds,
    }


def schedule_item_payload(item: ScheduleItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "assetId": item.asset_id,
        "showId": item.show_id,
        "scheduledStart": isoformat_utc(item.scheduled_start),
        "scheduledEnd": isoformat_utc(item.scheduled_end),
    }


def state_payload(state: BroadcastState) -> dict[str, Any]:
    """Serialize a BroadcastState, omitting fields that do not apply.

    Scheduled states carry the asset and position; live states carry the
    display title and artist instead.
    """
    payload: dict[str, Any] = {
        "isScheduled": state.is_scheduled,
        "streamUrl": state.stream_url,
        "listenerCount": state.listener_count,
    }
    if state.current_asset is not None:
        payload["currentAsset"] = asset_payload(state.current_asset)
    if state.started_at is not None:
        payload["startedAt"] = isoformat_utc(state.started_at)

    optional = {
        "durationSeconds": state.duration_seconds,
        "positionSeconds": state.position_seconds,
        "title": state.title,
        "artist": state.artist,
        "showName": state.show_name,
        "hostName": state.host_name,
    }
    payload.update({key: value for key, value in optional.items() if value is not None})
    return payload


def state_message(state: BroadcastState) -> dict[str, Any]:
    """Full snapshot sent once when a listener connects."""
    return {"type": MESSAGE_STATE, **state_payload(state)}


def schedule_update_message(
    item: ScheduleItem,
    asset: Optional[Asset],
    state: BroadcastState,
) -> dict[str, Any]:
    """A schedule item was created or modified.

    Carries the item, its asset when resolvable, and the freshly resolved
    current state for listeners to reconcile against.
    """
    message: dict[str, Any] = {
        "type": MESSAGE_SCHEDULE_UPDATE,
        **state_payload(state),
        "scheduleItem": schedule_item_payload(item),
    }
    if asset is not None:
        message["asset"] = asset_payload(asset)
    return message


def schedule_deleted_message(schedule_id: str) -> dict[str, Any]:
    return {"type": MESSAGE_SCHEDULE_DELETED, "scheduleId": schedule_id}
