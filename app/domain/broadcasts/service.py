import calendar
import logging
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Sequence

from app.domain.bookings.schemas import BookingRecord
from app.domain.bookings.service import BOOKING_COLUMNS, to_records
from app.domain.bookings.statuses import MANIFEST_STATUSES
from app.domain.broadcasts.schemas import DEFAULT_WEATHER_REASON, BroadcastRecord, CalendarCell
from app.domain.errors import DomainError
from app.domain.slots import service as slot_service
from app.domain.slots.schemas import SlotRecord, SlotStatus
from app.infra.backend import BackendClient, FunctionResult, eq, gt, in_, lt

logger = logging.getLogger(__name__)

LOOKAHEAD_DAYS = 365
HISTORY_LIMIT = 15


async def load_open_slots(client: BackendClient, now: datetime) -> list[SlotRecord]:
    future = now + timedelta(days=LOOKAHEAD_DAYS)
    rows = await client.select(
        "slots",
        slot_service.SLOT_COLUMNS,
        filters=[
            eq("status", SlotStatus.OPEN),
            gt("start_time", now.astimezone(timezone.utc)),
            lt("start_time", future.astimezone(timezone.utc)),
        ],
        order="start_time.asc",
    )
    return slot_service.to_records(rows)


def calendar_cells(
    year: int,
    month: int,
    slots_by_date: dict[str, list[SlotRecord]],
    now: datetime,
    tz: tzinfo,
) -> list[CalendarCell]:
    """One cell per day of the month; a day is past once its last second is behind ``now``."""
    cells: list[CalendarCell] = []
    _, days_in_month = calendar.monthrange(year, month)
    for day in range(1, days_in_month + 1):
        current = date(year, month, day)
        day_slots = slots_by_date.get(current.isoformat(), [])
        day_end = datetime.combine(current, time(23, 59, 59), tzinfo=tz)
        cells.append(
            CalendarCell(
                day=day,
                date=current,
                is_past=day_end < now,
                has_slots=bool(day_slots),
                booked_count=sum(slot.booked for slot in day_slots),
            )
        )
    return cells


async def load_affected_bookings(client: BackendClient, slot_ids: Sequence[str]) -> list[BookingRecord]:
    if not slot_ids:
        return []
    rows = await client.select(
        "bookings",
        BOOKING_COLUMNS,
        filters=[in_("slot_id", slot_ids), in_("status", MANIFEST_STATUSES)],
    )
    return to_records(rows)


async def send_broadcast(client: BackendClient, message: str, slot_ids: Sequence[str]) -> FunctionResult:
    text = message.strip()
    if not text:
        raise DomainError(detail="Broadcast message is empty")
    if not slot_ids:
        raise DomainError(detail="Select at least one slot")
    result = await client.invoke(
        "broadcast",
        {
            "action": "broadcast_targeted",
            "message": text,
            "target_group": "SLOT",
            "slot_ids": list(slot_ids),
            "send_email": True,
            "send_whatsapp": True,
        },
    )
    logger.info(
        "broadcast_sent" if result.ok else "broadcast_failed",
        extra={"extra": {"slot_count": len(slot_ids), "error": result.message if not result.ok else None}},
    )
    return result


async def weather_cancel(client: BackendClient, slot_ids: Sequence[str], reason: str) -> FunctionResult:
    if not slot_ids:
        raise DomainError(detail="Select at least one slot")
    result = await client.invoke(
        "broadcast",
        {"action": "weather_cancel", "slot_ids": list(slot_ids), "reason": reason.strip() or DEFAULT_WEATHER_REASON},
    )
    logger.info(
        "weather_cancel_sent" if result.ok else "weather_cancel_failed",
        extra={"extra": {"slot_count": len(slot_ids), "error": result.message if not result.ok else None}},
    )
    return result


async def load_history(client: BackendClient) -> list[BroadcastRecord]:
    rows = await client.select("broadcasts", "*", order="created_at.desc", limit=HISTORY_LIMIT)
    return [BroadcastRecord.model_validate(row) for row in rows]
