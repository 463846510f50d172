from datetime import datetime

from fastapi import APIRouter, Depends, Query

from app.api.admin_auth import AdminIdentity, require_admin
from app.dependencies import get_backend_client, get_now, get_settings
from app.domain.bookings.schemas import ActionResult
from app.domain.broadcasts import schemas as broadcast_schemas
from app.domain.broadcasts import service as broadcast_service
from app.domain.slots import service as slot_service
from app.infra.backend import BackendClient
from app.settings import Settings

router = APIRouter()


@router.get("/v1/admin/broadcasts/calendar", response_model=broadcast_schemas.BroadcastCalendarResponse)
async def broadcast_calendar(
    year: int | None = Query(None, ge=2000, le=2100),
    month: int | None = Query(None, ge=1, le=12),
    client: BackendClient = Depends(get_backend_client),
    app_settings: Settings = Depends(get_settings),
    now: datetime = Depends(get_now),
    identity: AdminIdentity = Depends(require_admin),
) -> broadcast_schemas.BroadcastCalendarResponse:
    del identity
    tz = app_settings.tz
    local_now = now.astimezone(tz)
    year = year or local_now.year
    month = month or local_now.month
    slots = await broadcast_service.load_open_slots(client, now)
    by_date = slot_service.group_slots_by_date(slots, tz)
    month_prefix = f"{year:04d}-{month:02d}-"
    return broadcast_schemas.BroadcastCalendarResponse(
        year=year,
        month=month,
        cells=broadcast_service.calendar_cells(year, month, by_date, now, tz),
        slots_by_date={
            key: [slot_service.to_view(slot, tz) for slot in day_slots]
            for key, day_slots in by_date.items()
            if key.startswith(month_prefix)
        },
    )


@router.get("/v1/admin/broadcasts/affected", response_model=broadcast_schemas.AffectedBookingsResponse)
async def affected_bookings(
    slot_ids: list[str] = Query([]),
    client: BackendClient = Depends(get_backend_client),
    identity: AdminIdentity = Depends(require_admin),
) -> broadcast_schemas.AffectedBookingsResponse:
    del identity
    bookings = await broadcast_service.load_affected_bookings(client, slot_ids)
    return broadcast_schemas.AffectedBookingsResponse(slot_ids=slot_ids, bookings=bookings)


@router.post("/v1/admin/broadcasts", response_model=ActionResult)
async def send_broadcast(
    payload: broadcast_schemas.BroadcastRequest,
    client: BackendClient = Depends(get_backend_client),
    identity: AdminIdentity = Depends(require_admin),
) -> ActionResult:
    del identity
    result = await broadcast_service.send_broadcast(client, payload.message, payload.slot_ids)
    return ActionResult.from_function(result)


@router.post("/v1/admin/broadcasts/weather-cancel", response_model=ActionResult)
async def weather_cancel(
    payload: broadcast_schemas.WeatherCancelRequest,
    client: BackendClient = Depends(get_backend_client),
    identity: AdminIdentity = Depends(require_admin),
) -> ActionResult:
    del identity
    result = await broadcast_service.weather_cancel(client, payload.slot_ids, payload.reason)
    return ActionResult.from_function(result)


@router.get("/v1/admin/broadcasts/history", response_model=list[broadcast_schemas.BroadcastRecord])
async def broadcast_history(
    client: BackendClient = Depends(get_backend_client),
    identity: AdminIdentity = Depends(require_admin),
) -> list[broadcast_schemas.BroadcastRecord]:
    del identity
    return await broadcast_service.load_history(client)
