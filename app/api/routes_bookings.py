from datetime import date, datetime, time, timedelta

from fastapi import APIRouter, Depends, Query

from app.api.admin_auth import AdminIdentity, require_admin
from app.dependencies import get_backend_client, get_now, get_settings
from app.domain.bookings import schemas as booking_schemas
from app.domain.bookings import service as booking_service
from app.domain.bookings.aggregation import group_bookings
from app.domain.slots import service as slot_service
from app.domain.slots.schemas import RebookOptionsResponse
from app.infra.backend import BackendClient
from app.settings import Settings

router = APIRouter()


def _resolve_range(
    query: booking_schemas.RangeQuery, now: datetime, app_settings: Settings
) -> booking_schemas.BookingRange:
    tz = app_settings.tz
    if query.start is None:
        return booking_service.default_range(now, tz)
    end_day = query.end or query.start + timedelta(days=booking_service.DEFAULT_RANGE_DAYS)
    if end_day < query.start:
        end_day = query.start
    return booking_schemas.BookingRange(
        start=datetime.combine(query.start, time.min, tzinfo=tz),
        end=datetime.combine(end_day, time.max, tzinfo=tz),
    )


@router.get("/v1/admin/bookings", response_model=booking_schemas.BookingListResponse)
async def list_bookings(
    query: booking_schemas.RangeQuery = Depends(),
    client: BackendClient = Depends(get_backend_client),
    app_settings: Settings = Depends(get_settings),
    now: datetime = Depends(get_now),
    identity: AdminIdentity = Depends(require_admin),
) -> booking_schemas.BookingListResponse:
    del identity
    booking_range = _resolve_range(query, now, app_settings)
    if query.shift:
        booking_range = booking_service.shift_range(booking_range, query.shift)
    bookings = await booking_service.load_bookings(client, booking_range.start, booking_range.end)
    return booking_schemas.BookingListResponse(
        range=booking_range,
        days=group_bookings(bookings, app_settings.tz),
    )


@router.get("/v1/admin/bookings/{booking_id}", response_model=booking_schemas.BookingRecord)
async def get_booking(
    booking_id: str,
    client: BackendClient = Depends(get_backend_client),
    identity: AdminIdentity = Depends(require_admin),
) -> booking_schemas.BookingRecord:
    del identity
    return await booking_service.get_booking(client, booking_id)


@router.patch("/v1/admin/bookings/{booking_id}", response_model=booking_schemas.ActionResult)
async def update_booking(
    booking_id: str,
    payload: booking_schemas.BookingUpdateRequest,
    client: BackendClient = Depends(get_backend_client),
    identity: AdminIdentity = Depends(require_admin),
) -> booking_schemas.ActionResult:
    del identity
    await booking_service.update_booking(client, booking_id, payload)
    return booking_schemas.ActionResult(ok=True, message="Booking updated.")


@router.post("/v1/admin/bookings/{booking_id}/mark-paid", response_model=booking_schemas.ActionResult)
async def mark_paid(
    booking_id: str,
    client: BackendClient = Depends(get_backend_client),
    identity: AdminIdentity = Depends(require_admin),
) -> booking_schemas.ActionResult:
    del identity
    await booking_service.mark_paid(client, booking_id)
    return booking_schemas.ActionResult(ok=True, message="Marked as paid.")


@router.post("/v1/admin/bookings/{booking_id}/cancel", response_model=booking_schemas.ActionResult)
async def cancel_booking(
    booking_id: str,
    client: BackendClient = Depends(get_backend_client),
    now: datetime = Depends(get_now),
    identity: AdminIdentity = Depends(require_admin),
) -> booking_schemas.ActionResult:
    del identity
    await booking_service.cancel_booking(client, booking_id, now=now)
    return booking_schemas.ActionResult(ok=True, message="Booking cancelled.")


@router.post("/v1/admin/bookings/{booking_id}/refund", response_model=booking_schemas.ActionResult)
async def refund_booking(
    booking_id: str,
    client: BackendClient = Depends(get_backend_client),
    identity: AdminIdentity = Depends(require_admin),
) -> booking_schemas.ActionResult:
    del identity
    booking = await booking_service.get_booking(client, booking_id)
    result = await booking_service.refund_booking(client, booking)
    return booking_schemas.ActionResult.from_function(result)


@router.get("/v1/admin/bookings/{booking_id}/rebook-options", response_model=RebookOptionsResponse)
async def rebook_options(
    booking_id: str,
    day: date = Query(...),
    client: BackendClient = Depends(get_backend_client),
    app_settings: Settings = Depends(get_settings),
    identity: AdminIdentity = Depends(require_admin),
) -> RebookOptionsResponse:
    del identity
    booking = await booking_service.get_booking(client, booking_id)
    tour_id = booking.slot.tour_id if booking.slot else None
    slots = await slot_service.load_rebook_options(client, day, app_settings.tz, tour_id=tour_id)
    options = [slot for slot in slots if slot.id != booking.slot_id]
    return RebookOptionsResponse(
        slots=[slot_service.to_view(slot, app_settings.tz) for slot in options],
        open_seats=slot_service.open_seat_total(options),
    )


@router.post("/v1/admin/bookings/{booking_id}/rebook", response_model=booking_schemas.ActionResult)
async def rebook_booking(
    booking_id: str,
    payload: booking_schemas.RebookRequest,
    client: BackendClient = Depends(get_backend_client),
    identity: AdminIdentity = Depends(require_admin),
) -> booking_schemas.ActionResult:
    del identity
    result = await booking_service.rebook_booking(client, booking_id, payload.slot_id)
    return booking_schemas.ActionResult.from_function(result)


@router.post("/v1/admin/bookings/{booking_id}/resend-invoice", response_model=booking_schemas.ActionResult)
async def resend_invoice(
    booking_id: str,
    payload: booking_schemas.ResendInvoiceRequest,
    client: BackendClient = Depends(get_backend_client),
    identity: AdminIdentity = Depends(require_admin),
) -> booking_schemas.ActionResult:
    del identity
    result = await booking_service.resend_invoice(
        client,
        booking_id=booking_id,
        invoice_id=payload.invoice_id,
        invoice_number=payload.invoice_number,
    )
    return booking_schemas.ActionResult.from_function(result)
