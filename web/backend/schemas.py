from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys, matching the web client."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AssetInfo(CamelModel):
    id: str
    title: str
    artist: str
    audio_url: str
    duration_seconds: int


class RadioMetadataResponse(CamelModel):
    """Current broadcast state. Fields that do not apply are omitted."""

    is_scheduled: bool
    stream_url: str
    listener_count: int
    current_asset: Optional[AssetInfo] = None
    started_at: Optional[datetime] = None
    duration_seconds: Optional[int] = None
    position_seconds: Optional[int] = None
    title: Optional[str] = None
    artist: Optional[str] = None
    show_name: Optional[str] = None
    host_name: Optional[str] = None


class ScheduleItemResponse(CamelModel):
    id: str
    asset_id: str
    show_id: Optional[str] = None
    scheduled_start: datetime
    scheduled_end: datetime


class CreateScheduleRequest(CamelModel):
    asset_id: str
    scheduled_start: datetime
    scheduled_end: datetime
    show_id: Optional[str] = None


class UpdateScheduleRequest(CamelModel):
    asset_id: Optional[str] = None
    scheduled_start: Optional[datetime] = None
    scheduled_end: Optional[datetime] = None
    show_id: Optional[str] = None


class CreateAssetRequest(CamelModel):
    title: str
    artist: str
    audio_url: str
    duration_seconds: int = Field(gt=0)


class UpdateAssetRequest(CamelModel):
    title: Optional[str] = None
    artist: Optional[str] = None
    audio_url: Optional[str] = None
    duration_seconds: Optional[int] = Field(default=None, gt=0)


class ShowResponse(CamelModel):
    id: str
    name: str
    host_name: Optional[str] = None


class CreateShowRequest(CamelModel):
    name: str
    host_name: Optional[str] = None


class UpdateShowRequest(CamelModel):
    name: Optional[str] = None
    host_name: Optional[str] = None


class LoginRequest(BaseModel):
    username: str = ""
    password: str = ""


class LoginResponse(CamelModel):
    session_id: str
    username: str


class MeResponse(BaseModel):
    username: str
