"""
Schedule store for radio playback.

Persists assets, shows, and schedule items. Schedule windows are stored as
fixed-width UTC ISO strings so that SQL string comparison orders them
chronologically on both SQLite and PostgreSQL.
"""

import uuid
from datetime import datetime
from typing import Any, Optional

from loguru import logger

from grouptherapy.core.db_adapter import get_radio_db_connection

from .models import Asset, RadioShow, ScheduleItem, to_utc

_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%f+00:00"


def format_timestamp(value: datetime) -> str:
    """Format a datetime as a sortable UTC string."""
    return to_utc(value).strftime(_TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    """Parse a stored timestamp back into an aware UTC datetime."""
    return to_utc(datetime.fromisoformat(value))


def _new_id() -> str:
    return str(uuid.uuid4())


def _row_to_schedule_item(row: dict[str, Any]) -> ScheduleItem:
    """Convert database row to ScheduleItem dataclass."""
    return ScheduleItem(
        id=row["id"],
        asset_id=row["asset_id"],
        show_id=row["show_id"],
        scheduled_start=parse_timestamp(row["scheduled_start"]),
        scheduled_end=parse_timestamp(row["scheduled_end"]),
    )


def _row_to_asset(row: dict[str, Any]) -> Asset:
    """Convert database row to Asset dataclass."""
    return Asset(
        id=row["id"],
        title=row["title"],
        artist=row["artist"],
        audio_url=row["audio_url"],
        duration_seconds=row["duration_seconds"],
    )


def _row_to_show(row: dict[str, Any]) -> RadioShow:
    """Convert database row to RadioShow dataclass."""
    return RadioShow(id=row["id"], name=row["name"], host_name=row["host_name"])


def _validate_window(start: datetime, end: datetime) -> None:
    if to_utc(start) >= to_utc(end):
        raise ValueError(
            f"scheduled_start ({start.isoformat()}) must be before "
            f"scheduled_end ({end.isoformat()})"
        )


class ScheduleStore:
    """Persistence for the radio schedule and the content it references."""

    # === Schedule items ===

    def list_schedule(self) -> list[ScheduleItem]:
        """Get all schedule items, most recent start first."""
        with get_radio_db_connection() as conn:
            cursor = conn.execute(
                "SELECT * FROM radio_schedule ORDER BY scheduled_start DESC"
            )
            return [_row_to_schedule_item(dict(row)) for row in cursor.fetchall()]

    def get_schedule_item(self, item_id: str) -> Optional[ScheduleItem]:
        """Get a schedule item by ID, or None if not found."""
        with get_radio_db_connection() as conn:
            cursor = conn.execute(
                "SELECT * FROM radio_schedule WHERE id = ?",
                (item_id,),
            )
            row = cursor.fetchone()
            return _row_to_schedule_item(dict(row)) if row else None

    def find_schedule_item_active_at(self, timestamp: datetime) -> Optional[ScheduleItem]:
        """Find the schedule item whose window contains timestamp.

        When windows overlap, the item that started most recently wins.

        Args:
            timestamp: Instant to look up

        Returns:
            The active ScheduleItem, or None if nothing is scheduled
        """
        ts = format_timestamp(timestamp)
        with get_radio_db_connection() as conn:
            cursor = conn.execute(
                """
                SELECT * FROM radio_schedule
                WHERE scheduled_start <= ? AND scheduled_end > ?
                ORDER BY scheduled_start DESC
                LIMIT 1
                """,
                (ts, ts),
            )
            row = cursor.fetchone()
            return _row_to_schedule_item(dict(row)) if row else None

    def find_overlapping(
        self,
        start: datetime,
        end: datetime,
        exclude_id: Optional[str] = None,
    ) -> list[ScheduleItem]:
        """Get schedule items whose windows intersect [start, end)."""
        with get_radio_db_connection() as conn:
            cursor = conn.execute(
                """
                SELECT * FROM radio_schedule
                WHERE scheduled_start < ? AND scheduled_end > ?
                ORDER BY scheduled_start
                """,
                (format_timestamp(end), format_timestamp(start)),
            )
            items = [_row_to_schedule_item(dict(row)) for row in cursor.fetchall()]
        return [item for item in items if item.id != exclude_id]

    def _warn_overlaps(
        self, start: datetime, end: datetime, exclude_id: Optional[str] = None
    ) -> None:
        overlapping = self.find_overlapping(start, end, exclude_id)
        if overlapping:
            ids = ", ".join(item.id for item in overlapping)
            logger.warning(
                f"Schedule window {format_timestamp(start)} - {format_timestamp(end)} "
                f"overlaps existing items: {ids} (latest start wins)"
            )

    def create_schedule_item(
        self,
        asset_id: str,
        scheduled_start: datetime,
        scheduled_end: datetime,
        show_id: Optional[str] = None,
    ) -> ScheduleItem:
        """Schedule an asset for a time window.

        Args:
            asset_id: Asset to play
            scheduled_start: Window start (inclusive)
            scheduled_end: Window end (exclusive)
            show_id: Optional show the slot belongs to

        Returns:
            The created ScheduleItem

        Raises:
            ValueError: If the window is empty or the asset does not exist
        """
        _validate_window(scheduled_start, scheduled_end)
        if self.get_asset(asset_id) is None:
            raise ValueError(f"Asset not found: {asset_id}")

        self._warn_overlaps(scheduled_start, scheduled_end)

        item = ScheduleItem(
            id=_new_id(),
            asset_id=asset_id,
            show_id=show_id,
            scheduled_start=to_utc(scheduled_start),
            scheduled_end=to_utc(scheduled_end),
        )
        with get_radio_db_connection() as conn:
            conn.execute(
                """
                INSERT INTO radio_schedule (id, asset_id, show_id, scheduled_start, scheduled_end)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    item.id,
                    item.asset_id,
                    item.show_id,
                    format_timestamp(item.scheduled_start),
                    format_timestamp(item.scheduled_end),
                ),
            )
            conn.commit()

        logger.info(
            f"Added schedule item {item.id}: asset {asset_id} "
            f"{format_timestamp(scheduled_start)} - {format_timestamp(scheduled_end)}"
        )
        return item

    def update_schedule_item(
        self,
        item_id: str,
        asset_id: Optional[str] = None,
        scheduled_start: Optional[datetime] = None,
        scheduled_end: Optional[datetime] = None,
        show_id: Optional[str] = None,
    ) -> Optional[ScheduleItem]:
        """Update a schedule item.

        Returns:
            The updated ScheduleItem, or None if not found

        Raises:
            ValueError: If the resulting window is empty or the asset does not exist
        """
        existing = self.get_schedule_item(item_id)
        if existing is None:
            return None

        start = scheduled_start if scheduled_start is not None else existing.scheduled_start
        end = scheduled_end if scheduled_end is not None else existing.scheduled_end
        _validate_window(start, end)

        if asset_id is not None and self.get_asset(asset_id) is None:
            raise ValueError(f"Asset not found: {asset_id}")

        if scheduled_start is not None or scheduled_end is not None:
            self._warn_overlaps(start, end, exclude_id=item_id)

        updated = ScheduleItem(
            id=item_id,
            asset_id=asset_id if asset_id is not None else existing.asset_id,
            show_id=show_id if show_id is not None else existing.show_id,
            scheduled_start=to_utc(start),
            scheduled_end=to_utc(end),
        )
        with get_radio_db_connection() as conn:
            conn.execute(
                """
                UPDATE radio_schedule
                SET asset_id = ?, show_id = ?, scheduled_start = ?, scheduled_end = ?
                WHERE id = ?
                """,
                (
                    updated.asset_id,
                    updated.show_id,
                    format_timestamp(updated.scheduled_start),
                    format_timestamp(updated.scheduled_end),
                    item_id,
                ),
            )
            conn.commit()

        logger.info(f"Updated schedule item {item_id}")
        return updated

    def delete_schedule_item(self, item_id: str) -> bool:
        """Delete a schedule item.

        Returns:
            True if deleted, False if item not found
        """
        with get_radio_db_connection() as conn:
            cursor = conn.execute(
                "DELETE FROM radio_schedule WHERE id = ?",
                (item_id,),
            )
            conn.commit()
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info(f"Deleted schedule item {item_id}")
        return deleted

    # === Assets ===

    def list_assets(self) -> list[Asset]:
        with get_radio_db_connection() as conn:
            cursor = conn.execute("SELECT * FROM radio_assets ORDER BY created_at DESC")
            return [_row_to_asset(dict(row)) for row in cursor.fetchall()]

    def get_asset(self, asset_id: str) -> Optional[Asset]:
        """Get an asset by ID, or None if the reference is dangling."""
        with get_radio_db_connection() as conn:
            cursor = conn.execute(
                "SELECT * FROM radio_assets WHERE id = ?",
                (asset_id,),
            )
            row = cursor.fetchone()
            return _row_to_asset(dict(row)) if row else None

    def create_asset(
        self, title: str, artist: str, audio_url: str, duration_seconds: int
    ) -> Asset:
        """Register a playable asset.

        Raises:
            ValueError: If duration is not positive or the URL is empty
        """
        if duration_seconds <= 0:
            raise ValueError("duration_seconds must be positive")
        if not audio_url.strip():
            raise ValueError("audio_url is required")

        asset = Asset(
            id=_new_id(),
            title=title,
            artist=artist,
            audio_url=audio_url,
            duration_seconds=duration_seconds,
        )
        with get_radio_db_connection() as conn:
            conn.execute(
                """
                INSERT INTO radio_assets (id, title, artist, audio_url, duration_seconds)
                VALUES (?, ?, ?, ?, ?)
                """,
                (asset.id, title, artist, audio_url, duration_seconds),
            )
            conn.commit()
        logger.info(f"Added radio asset {asset.id}: {artist} - {title}")
        return asset

    def update_asset(self, asset_id: str, **updates: Any) -> Optional[Asset]:
        """Update asset fields (title, artist, audio_url, duration_seconds).

        Returns:
            The updated Asset, or None if not found

        Raises:
            ValueError: If an unknown field or invalid duration is given
        """
        allowed = {"title", "artist", "audio_url", "duration_seconds"}
        unknown = set(updates) - allowed
        if unknown:
            raise ValueError(f"Unknown asset fields: {sorted(unknown)}")
        if "duration_seconds" in updates and updates["duration_seconds"] <= 0:
            raise ValueError("duration_seconds must be positive")

        if updates:
            columns = sorted(updates)
            assignments = ", ".join(f"{column} = ?" for column in columns)
            params = [updates[column] for column in columns] + [asset_id]
            with get_radio_db_connection() as conn:
                conn.execute(
                    f"UPDATE radio_assets SET {assignments} WHERE id = ?",
                    tuple(params),
                )
                conn.commit()

        return self.get_asset(asset_id)

    def delete_asset(self, asset_id: str) -> bool:
        """Delete an asset. Schedule items referencing it become dangling."""
        with get_radio_db_connection() as conn:
            cursor = conn.execute("DELETE FROM radio_assets WHERE id = ?", (asset_id,))
            conn.commit()
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info(f"Deleted radio asset {asset_id}")
        return deleted

    # === Shows ===

    def list_shows(self) -> list[RadioShow]:
        with get_radio_db_connection() as conn:
            cursor = conn.execute("SELECT * FROM radio_shows ORDER BY name")
            return [_row_to_show(dict(row)) for row in cursor.fetchall()]

    def get_show(self, show_id: str) -> Optional[RadioShow]:
        with get_radio_db_connection() as conn:
            cursor = conn.execute("SELECT * FROM radio_shows WHERE id = ?", (show_id,))
            row = cursor.fetchone()
            return _row_to_show(dict(row)) if row else None

    def create_show(self, name: str, host_name: Optional[str] = None) -> RadioShow:
        if not name.strip():
            raise ValueError("Show name is required")
        show = RadioShow(id=_new_id(), name=name, host_name=host_name)
        with get_radio_db_connection() as conn:
            conn.execute(
                "INSERT INTO radio_shows (id, name, host_name) VALUES (?, ?, ?)",
                (show.id, name, host_name),
            )
            conn.commit()
        logger.info(f"Added radio show {show.id}: {name}")
        return show

    def update_show(
        self,
        show_id: str,
        name: Optional[str] = None,
        host_name: Optional[str] = None,
    ) -> Optional[RadioShow]:
        """Update a show's name and/or host. None leaves a field unchanged.

        Returns:
            The updated RadioShow, or None if not found
        """
        existing = self.get_show(show_id)
        if not existing:
            return None
        if name is not None and not name.strip():
            raise ValueError("Show name is required")

        show = RadioShow(
            id=show_id,
            name=name if name is not None else existing.name,
            host_name=host_name if host_name is not None else existing.host_name,
        )
        with get_radio_db_connection() as conn:
            conn.execute(
                "UPDATE radio_shows SET name = ?, host_name = ? WHERE id = ?",
                (show.name, show.host_name, show_id),
            )
            conn.commit()
        logger.info(f"Updated radio show {show_id}")
        return show

    def delete_show(self, show_id: str) -> bool:
        with get_radio_db_connection() as conn:
            cursor = conn.execute("DELETE FROM radio_shows WHERE id = ?", (show_id,))
            conn.commit()
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info(f"Deleted radio show {show_id}")
        return deleted
