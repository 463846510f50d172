from datetime import date, datetime

from fastapi import APIRouter, Depends

from app.api.admin_auth import AdminIdentity, require_admin
from app.dependencies import get_backend_client, get_now, get_settings
from app.domain.slots import service as slot_service
from app.domain.slots.schemas import SlotCalendarResponse, SlotToggleResponse
from app.infra.backend import BackendClient
from app.settings import Settings

router = APIRouter()


@router.get("/v1/admin/slots", response_model=SlotCalendarResponse)
async def list_slots(
    day: date | None = None,
    client: BackendClient = Depends(get_backend_client),
    app_settings: Settings = Depends(get_settings),
    now: datetime = Depends(get_now),
    identity: AdminIdentity = Depends(require_admin),
) -> SlotCalendarResponse:
    del identity
    tz = app_settings.tz
    start, end = slot_service.week_range(day or now.astimezone(tz).date(), tz)
    slots = await slot_service.load_slots(client, start, end)
    return SlotCalendarResponse(start=start, end=end, days=slot_service.build_calendar(slots, tz))


@router.post("/v1/admin/slots/{slot_id}/toggle", response_model=SlotToggleResponse)
async def toggle_slot(
    slot_id: str,
    client: BackendClient = Depends(get_backend_client),
    identity: AdminIdentity = Depends(require_admin),
) -> SlotToggleResponse:
    del identity
    slot = await slot_service.get_slot(client, slot_id)
    new_status = await slot_service.toggle_status(client, slot)
    return SlotToggleResponse(id=slot.id, status=new_status)
