"""
Radio API endpoints.

Provides the now-playing metadata, the push channel listeners synchronize
on, and admin management of the schedule and the assets it plays.
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import StreamingResponse
from loguru import logger

from grouptherapy.domain.radio import (
    Asset,
    MetadataResolver,
    RadioShow,
    ScheduleItem,
    ScheduleStore,
    state_payload,
)

from ..broadcaster import RadioBroadcaster
from ..deps import get_broadcaster, get_resolver, get_store, require_auth
from ..schemas import (
    AssetInfo,
    CreateAssetRequest,
    CreateScheduleRequest,
    CreateShowRequest,
    RadioMetadataResponse,
    ScheduleItemResponse,
    ShowResponse,
    UpdateAssetRequest,
    UpdateScheduleRequest,
    UpdateShowRequest,
)


router = APIRouter(prefix="/radio", tags=["radio"])


# === Helper Functions ===


def _schedule_item_to_response(item: ScheduleItem) -> ScheduleItemResponse:
    """Convert ScheduleItem dataclass to response model."""
    return ScheduleItemResponse(
        id=item.id,
        asset_id=item.asset_id,
        show_id=item.show_id,
        scheduled_start=item.scheduled_start,
        scheduled_end=item.scheduled_end,
    )


def _asset_to_response(asset: Asset) -> AssetInfo:
    """Convert Asset dataclass to response model."""
    return AssetInfo(
        id=asset.id,
        title=asset.title,
        artist=asset.artist,
        audio_url=asset.audio_url,
        duration_seconds=asset.duration_seconds,
    )


def _show_to_response(show: RadioShow) -> ShowResponse:
    return ShowResponse(id=show.id, name=show.name, host_name=show.host_name)


# === Listener Endpoints ===


@router.get(
    "/metadata",
    response_model=RadioMetadataResponse,
    response_model_exclude_none=True,
)
async def get_metadata(
    resolver: MetadataResolver = Depends(get_resolver),
) -> dict:
    """Get what is playing right now.

    Polled by listeners as a fallback when the push channel is unavailable.
    """
    state = await run_in_threadpool(resolver.resolve_current)
    return state_payload(state)


@router.get("/stream-state")
async def stream_state(
    request: Request,
    broadcaster: RadioBroadcaster = Depends(get_broadcaster),
) -> StreamingResponse:
    """Server-sent event stream of radio state.

    Sends the current state on connect, then schedule changes as they happen,
    with a comment-only keepalive in between.
    """
    channel = await broadcaster.connect()
    return StreamingResponse(
        broadcaster.stream(channel, request.is_disconnected),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


# === Schedule CRUD ===


@router.get("/schedule", response_model=list[ScheduleItemResponse])
def list_schedule(
    _user: str = Depends(require_auth),
    store: ScheduleStore = Depends(get_store),
) -> list[ScheduleItemResponse]:
    """List all schedule items, most recent first."""
    return [_schedule_item_to_response(item) for item in store.list_schedule()]


@router.get("/schedule/{item_id}", response_model=ScheduleItemResponse)
def get_schedule_item(
    item_id: str,
    _user: str = Depends(require_auth),
    store: ScheduleStore = Depends(get_store),
) -> ScheduleItemResponse:
    item = store.get_schedule_item(item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Schedule item not found")
    return _schedule_item_to_response(item)


@router.post("/schedule", response_model=ScheduleItemResponse, status_code=201)
async def create_schedule_item(
    req: CreateScheduleRequest,
    _user: str = Depends(require_auth),
    store: ScheduleStore = Depends(get_store),
    broadcaster: RadioBroadcaster = Depends(get_broadcaster),
) -> ScheduleItemResponse:
    """Schedule an asset and notify connected listeners."""
    try:
        item = await run_in_threadpool(
            store.create_schedule_item,
            req.asset_id,
            req.scheduled_start,
            req.scheduled_end,
            req.show_id,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await broadcaster.publish_schedule_update(item)
    return _schedule_item_to_response(item)


@router.patch("/schedule/{item_id}", response_model=ScheduleItemResponse)
async def update_schedule_item(
    item_id: str,
    req: UpdateScheduleRequest,
    _user: str = Depends(require_auth),
    store: ScheduleStore = Depends(get_store),
    broadcaster: RadioBroadcaster = Depends(get_broadcaster),
) -> ScheduleItemResponse:
    """Update a schedule item and notify connected listeners."""
    try:
        item = await run_in_threadpool(
            store.update_schedule_item,
            item_id,
            req.asset_id,
            req.scheduled_start,
            req.scheduled_end,
            req.show_id,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not item:
        raise HTTPException(status_code=404, detail="Schedule item not found")

    await broadcaster.publish_schedule_update(item)
    return _schedule_item_to_response(item)


@router.delete("/schedule/{item_id}")
async def delete_schedule_item(
    item_id: str,
    _user: str = Depends(require_auth),
    store: ScheduleStore = Depends(get_store),
    broadcaster: RadioBroadcaster = Depends(get_broadcaster),
) -> dict[str, bool]:
    """Delete a schedule item and notify connected listeners."""
    if not await run_in_threadpool(store.delete_schedule_item, item_id):
        raise HTTPException(status_code=404, detail="Schedule item not found")

    await broadcaster.publish_schedule_deleted(item_id)
    return {"ok": True}


# === Assets CRUD ===


@router.get("/assets", response_model=list[AssetInfo])
def list_assets(
    _user: str = Depends(require_auth),
    store: ScheduleStore = Depends(get_store),
) -> list[AssetInfo]:
    return [_asset_to_response(a) for a in store.list_assets()]


@router.get("/assets/{asset_id}", response_model=AssetInfo)
def get_asset(
    asset_id: str,
    _user: str = Depends(require_auth),
    store: ScheduleStore = Depends(get_store),
) -> AssetInfo:
    asset = store.get_asset(asset_id)
    if not asset:
        raise HTTPException(status_code=404, detail="Radio asset not found")
    return _asset_to_response(asset)


@router.post("/assets", response_model=AssetInfo, status_code=201)
def create_asset(
    req: CreateAssetRequest,
    _user: str = Depends(require_auth),
    store: ScheduleStore = Depends(get_store),
) -> AssetInfo:
    """Register an audio asset that can be scheduled."""
    try:
        asset = store.create_asset(
            req.title, req.artist, req.audio_url, req.duration_seconds
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _asset_to_response(asset)


@router.patch("/assets/{asset_id}", response_model=AssetInfo)
async def update_asset(
    asset_id: str,
    req: UpdateAssetRequest,
    _user: str = Depends(require_auth),
    store: ScheduleStore = Depends(get_store),
    broadcaster: RadioBroadcaster = Depends(get_broadcaster),
) -> AssetInfo:
    """Update an asset and push fresh state, in case it is on air."""
    updates = {k: v for k, v in req.model_dump().items() if v is not None}

    try:
        asset = await run_in_threadpool(store.update_asset, asset_id, **updates)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not asset:
        raise HTTPException(status_code=404, detail="Radio asset not found")

    await broadcaster.publish_state(f"asset {asset_id} update")
    return _asset_to_response(asset)


@router.delete("/assets/{asset_id}")
async def delete_asset(
    asset_id: str,
    _user: str = Depends(require_auth),
    store: ScheduleStore = Depends(get_store),
    broadcaster: RadioBroadcaster = Depends(get_broadcaster),
) -> dict[str, bool]:
    """Delete an asset. Schedule items pointing at it fall back to live."""
    if not await run_in_threadpool(store.delete_asset, asset_id):
        raise HTTPException(status_code=404, detail="Radio asset not found")
    logger.info(f"Asset {asset_id} deleted; any schedule items using it are now dangling")

    await broadcaster.publish_state(f"asset {asset_id} delete")
    return {"ok": True}


# === Shows ===


@router.get("/shows", response_model=list[ShowResponse])
def list_shows(
    store: ScheduleStore = Depends(get_store),
) -> list[ShowResponse]:
    """List shows. Public, for the listener-facing show pages."""
    return [_show_to_response(s) for s in store.list_shows()]


@router.get("/shows/{show_id}", response_model=ShowResponse)
def get_show(
    show_id: str,
    store: ScheduleStore = Depends(get_store),
) -> ShowResponse:
    show = store.get_show(show_id)
    if not show:
        raise HTTPException(status_code=404, detail="Show not found")
    return _show_to_response(show)


@router.post("/shows", response_model=ShowResponse, status_code=201)
def create_show(
    req: CreateShowRequest,
    _user: str = Depends(require_auth),
    store: ScheduleStore = Depends(get_store),
) -> ShowResponse:
    try:
        show = store.create_show(req.name, req.host_name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _show_to_response(show)


@router.patch("/shows/{show_id}", response_model=ShowResponse)
async def update_show(
    show_id: str,
    req: UpdateShowRequest,
    _user: str = Depends(require_auth),
    store: ScheduleStore = Depends(get_store),
    broadcaster: RadioBroadcaster = Depends(get_broadcaster),
) -> ShowResponse:
    """Rename a show or change its host; listeners see the new names."""
    try:
        show = await run_in_threadpool(store.update_show, show_id, req.name, req.host_name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not show:
        raise HTTPException(status_code=404, detail="Show not found")

    await broadcaster.publish_state(f"show {show_id} update")
    return _show_to_response(show)


@router.delete("/shows/{show_id}")
def delete_show(
    show_id: str,
    _user: str = Depends(require_auth),
    store: ScheduleStore = Depends(get_store),
) -> dict[str, bool]:
    if not store.delete_show(show_id):
        raise HTTPException(status_code=404, detail="Show not found")
    return {"ok": True}
