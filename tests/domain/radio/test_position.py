"""Tests for scheduled playback position calculation."""

from datetime import datetime, timedelta, timezone

import pytest

from grouptherapy.domain.radio import Asset, ScheduleItem, calculate_position, is_active_at


@pytest.fixture
def asset() -> Asset:
    return Asset(
        id="asset-1",
        title="Deep Waters",
        artist="Aqua Dreams",
        audio_url="https://cdn.example.com/deep-waters.mp3",
        duration_seconds=180,
    )


@pytest.fixture
def item(asset: Asset, t0: datetime) -> ScheduleItem:
    return ScheduleItem(
        id="item-1",
        asset_id=asset.id,
        scheduled_start=t0,
        scheduled_end=t0 + timedelta(minutes=5),
    )


class TestCalculatePosition:
    def test_position_is_whole_seconds_since_start(self, t0, item, asset) -> None:
        position = calculate_position(t0 + timedelta(seconds=42.9), item, asset)
        assert position.position_seconds == 42
        assert position.is_active

    def test_clamped_to_duration(self, t0, item, asset) -> None:
        """Past the end of the asset but inside the window, position stays at duration."""
        position = calculate_position(t0 + timedelta(seconds=200), item, asset)
        assert position.position_seconds == 180
        assert position.is_active

    def test_clamped_to_zero_before_start(self, t0, item, asset) -> None:
        position = calculate_position(t0 - timedelta(seconds=30), item, asset)
        assert position.position_seconds == 0
        assert not position.is_active

    def test_naive_now_treated_as_utc(self, t0, item, asset) -> None:
        naive = (t0 + timedelta(seconds=10)).replace(tzinfo=None)
        assert calculate_position(naive, item, asset).position_seconds == 10

    def test_non_utc_offset_is_normalized(self, t0, item, asset) -> None:
        plus_two = timezone(timedelta(hours=2))
        now = (t0 + timedelta(seconds=15)).astimezone(plus_two)
        assert calculate_position(now, item, asset).position_seconds == 15


class TestIsActiveAt:
    """Schedule windows are half-open: [start, end)."""

    def test_start_is_inclusive(self, t0, item) -> None:
        assert is_active_at(item, t0)

    def test_end_is_exclusive(self, item) -> None:
        assert not is_active_at(item, item.scheduled_end)

    def test_just_before_end(self, item) -> None:
        assert is_active_at(item, item.scheduled_end - timedelta(microseconds=1))

    def test_aware_item_with_naive_now(self, t0) -> None:
        item = ScheduleItem("i", "a", t0, t0 + timedelta(seconds=1))
        assert is_active_at(item, datetime(2025, 6, 1, 12, 0, 0))
