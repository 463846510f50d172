import logging
from datetime import datetime, time, timedelta, timezone, tzinfo

from app.domain.bookings.schemas import BookingRecord, BookingRange, BookingUpdateRequest
from app.domain.bookings.statuses import ALL_STATUSES, BookingStatus, RefundStatus
from app.domain.errors import DomainError
from app.infra.backend import BackendClient, FunctionResult, eq, gte, in_, lte, normalize_relations

logger = logging.getLogger(__name__)

BOOKING_COLUMNS = (
    "id, slot_id, customer_name, phone, email, qty, total_amount, status, refund_status, "
    "yoco_checkout_id, tours(id,name), slots(id,start_time,tour_id,capacity_total,booked,status)"
)
BOOKING_LIST_LIMIT = 500
DEFAULT_RANGE_DAYS = 7
CANCEL_REASON = "Cancelled by admin"
REFUND_REQUEST_NOTE = "Requested from bookings page"


def to_records(rows: list[dict]) -> list[BookingRecord]:
    return [BookingRecord.model_validate(normalize_relations(row, "tours", "slots")) for row in rows]


def default_range(now: datetime, tz: tzinfo) -> BookingRange:
    today = now.astimezone(tz).date()
    start = datetime.combine(today, time.min, tzinfo=tz)
    end = datetime.combine(today + timedelta(days=DEFAULT_RANGE_DAYS), time.max, tzinfo=tz)
    return BookingRange(start=start, end=end)


def shift_range(current: BookingRange, days: int) -> BookingRange:
    delta = timedelta(days=days)
    return BookingRange(start=current.start + delta, end=current.end + delta)


async def load_bookings(client: BackendClient, start: datetime, end: datetime) -> list[BookingRecord]:
    rows = await client.select(
        "bookings",
        BOOKING_COLUMNS,
        filters=[
            gte("slots.start_time", start.astimezone(timezone.utc)),
            lte("slots.start_time", end.astimezone(timezone.utc)),
            in_("status", ALL_STATUSES),
        ],
        order="created_at.asc",
        limit=BOOKING_LIST_LIMIT,
    )
    return [record for record in to_records(rows) if record.start_time is not None]


async def get_booking(client: BackendClient, booking_id: str) -> BookingRecord:
    rows = await client.select("bookings", BOOKING_COLUMNS, filters=[eq("id", booking_id)], limit=1)
    if not rows:
        raise DomainError(detail="Booking not found", title="Not Found")
    return to_records(rows)[0]


async def update_booking(client: BackendClient, booking_id: str, payload: BookingUpdateRequest) -> None:
    await client.update("bookings", payload.normalized_values(), filters=[eq("id", booking_id)])
    logger.info("booking_updated", extra={"extra": {"booking_id": booking_id, "status": payload.status.value}})


async def mark_paid(client: BackendClient, booking_id: str) -> None:
    await client.update("bookings", {"status": BookingStatus.PAID}, filters=[eq("id", booking_id)])
    logger.info("booking_marked_paid", extra={"extra": {"booking_id": booking_id}})


async def cancel_booking(client: BackendClient, booking_id: str, now: datetime | None = None) -> None:
    cancelled_at = now or datetime.now(tz=timezone.utc)
    await client.update(
        "bookings",
        {
            "status": BookingStatus.CANCELLED,
            "cancellation_reason": CANCEL_REASON,
            "cancelled_at": cancelled_at,
        },
        filters=[eq("id", booking_id)],
    )
    logger.info("booking_cancelled", extra={"extra": {"booking_id": booking_id}})


async def refund_booking(client: BackendClient, booking: BookingRecord) -> FunctionResult:
    """Refund through the payment provider when the booking was paid online,
    otherwise queue it for a manual refund."""
    if booking.yoco_checkout_id:
        result = await client.invoke("process-refund", {"booking_id": booking.id})
        if result.ok:
            return FunctionResult(ok=True, message="Refund processed.", payload=result.payload)
        return FunctionResult(ok=False, message=f"Auto refund failed: {result.message}", payload=result.payload)

    await client.update(
        "bookings",
        {
            "refund_status": RefundStatus.REQUESTED,
            "refund_amount": booking.total_amount,
            "refund_notes": REFUND_REQUEST_NOTE,
        },
        filters=[eq("id", booking.id)],
    )
    logger.info(
        "booking_refund_requested",
        extra={"extra": {"booking_id": booking.id, "refund_amount": str(booking.total_amount)}},
    )
    return FunctionResult(ok=True, message="Refund queued.")


async def rebook_booking(client: BackendClient, booking_id: str, new_slot_id: str) -> FunctionResult:
    await client.update("bookings", {"slot_id": new_slot_id}, filters=[eq("id", booking_id)])
    notify = await client.invoke(
        "booking-rebook-notify",
        {"booking_id": booking_id, "new_slot_id": new_slot_id},
    )
    if not notify.ok:
        logger.warning(
            "booking_rebook_notify_failed",
            extra={"extra": {"booking_id": booking_id, "error": notify.message}},
        )
    logger.info("booking_rebooked", extra={"extra": {"booking_id": booking_id, "slot_id": new_slot_id}})
    return FunctionResult(ok=True, message="Booking moved.", payload={"notified": notify.ok})


async def resend_invoice(
    client: BackendClient,
    booking_id: str | None = None,
    invoice_id: str | None = None,
    invoice_number: str | None = None,
) -> FunctionResult:
    body: dict[str, object] = {"booking_id": booking_id, "invoice_type": "PRO_FORMA", "resend": True}
    if invoice_id:
        body["invoice_id"] = invoice_id
    if invoice_number:
        body["invoice_number"] = invoice_number
    result = await client.invoke("send-invoice", body)
    if result.ok:
        return FunctionResult(ok=True, message="Invoice resend queued.", payload=result.payload)
    return FunctionResult(ok=False, message=f"Resend failed: {result.message}", payload=result.payload)
