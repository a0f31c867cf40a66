"""Tests for backend schemas."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from web.backend.schemas import (
    CreateAssetRequest,
    CreateScheduleRequest,
    LoginResponse,
    RadioMetadataResponse,
)


def test_schedule_request_accepts_camel_case():
    req = CreateScheduleRequest.model_validate({
        "assetId": "a1",
        "scheduledStart": "2025-06-01T12:00:00Z",
        "scheduledEnd": "2025-06-01T12:05:00Z",
    })

    assert req.asset_id == "a1"
    assert req.scheduled_start == datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
    assert req.show_id is None


def test_schedule_request_accepts_snake_case():
    req = CreateScheduleRequest(
        asset_id="a1",
        scheduled_start=datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc),
        scheduled_end=datetime(2025, 6, 1, 12, 5, tzinfo=timezone.utc),
    )
    assert req.asset_id == "a1"


def test_asset_duration_must_be_positive():
    with pytest.raises(ValidationError):
        CreateAssetRequest(title="t", artist="a", audio_url="https://x", duration_seconds=-1)


def test_metadata_dumps_camel_case_without_nones():
    response = RadioMetadataResponse.model_validate({
        "isScheduled": False,
        "streamUrl": "https://live",
        "listenerCount": 120,
        "title": "Deep Waters",
    })

    dumped = response.model_dump(by_alias=True, exclude_none=True)

    assert dumped == {
        "isScheduled": False,
        "streamUrl": "https://live",
        "listenerCount": 120,
        "title": "Deep Waters",
    }


def test_login_response_uses_session_id_alias():
    dumped = LoginResponse(session_id="tok", username="dj").model_dump(by_alias=True)
    assert dumped == {"sessionId": "tok", "username": "dj"}
