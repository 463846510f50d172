import logging
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Iterable

from app.domain.bookings.aggregation import date_key, time_key
from app.domain.errors import DomainError
from app.domain.slots.schemas import SlotDay, SlotRecord, SlotStatus, SlotView
from app.infra.backend import BackendClient, eq, gte, lt, lte, normalize_relations

logger = logging.getLogger(__name__)

SLOT_COLUMNS = (
    "id, start_time, tour_id, capacity_total, booked, held, status, price_per_person_override, tours(name)"
)


def to_records(rows: list[dict]) -> list[SlotRecord]:
    return [SlotRecord.model_validate(normalize_relations(row, "tours")) for row in rows]


def day_bounds(day: date, tz: tzinfo) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start, end


def week_range(day: date, tz: tzinfo) -> tuple[datetime, datetime]:
    monday = day - timedelta(days=day.weekday())
    start = datetime.combine(monday, time.min, tzinfo=tz)
    end = datetime.combine(monday + timedelta(days=6), time.max, tzinfo=tz)
    return start, end


async def load_slots(
    client: BackendClient,
    start: datetime,
    end: datetime,
    status: SlotStatus | None = None,
    tour_id: str | None = None,
    end_inclusive: bool = True,
) -> list[SlotRecord]:
    filters = [
        gte("start_time", start.astimezone(timezone.utc)),
        (lte if end_inclusive else lt)("start_time", end.astimezone(timezone.utc)),
    ]
    if status is not None:
        filters.append(eq("status", status))
    if tour_id:
        filters.append(eq("tour_id", tour_id))
    rows = await client.select("slots", SLOT_COLUMNS, filters=filters, order="start_time.asc")
    return to_records(rows)


async def load_rebook_options(
    client: BackendClient, day: date, tz: tzinfo, tour_id: str | None = None
) -> list[SlotRecord]:
    start, end = day_bounds(day, tz)
    slots = await load_slots(client, start, end, status=SlotStatus.OPEN, tour_id=tour_id, end_inclusive=False)
    return bookable_slots(slots)


async def get_slot(client: BackendClient, slot_id: str) -> SlotRecord:
    rows = await client.select("slots", SLOT_COLUMNS, filters=[eq("id", slot_id)], limit=1)
    if not rows:
        raise DomainError(detail="Slot not found", title="Not Found")
    return to_records(rows)[0]


async def toggle_status(client: BackendClient, slot: SlotRecord) -> SlotStatus:
    new_status = SlotStatus.CLOSED if slot.status == SlotStatus.OPEN else SlotStatus.OPEN
    await client.update("slots", {"status": new_status}, filters=[eq("id", slot.id)])
    logger.info(
        "slot_status_toggled",
        extra={"extra": {"slot_id": slot.id, "from": slot.status.value, "to": new_status.value}},
    )
    return new_status


def group_slots_by_date(slots: Iterable[SlotRecord], tz: tzinfo) -> dict[str, list[SlotRecord]]:
    grouped: dict[str, list[SlotRecord]] = {}
    for slot in slots:
        if slot.start_time is None:
            continue
        grouped.setdefault(date_key(slot.start_time, tz), []).append(slot)
    return {key: grouped[key] for key in sorted(grouped)}


def bookable_slots(slots: Iterable[SlotRecord]) -> list[SlotRecord]:
    return [slot for slot in slots if slot.seats_open > 0]


def open_seat_total(slots: Iterable[SlotRecord]) -> int:
    return sum(slot.seats_open for slot in slots)


def to_view(slot: SlotRecord, tz: tzinfo) -> SlotView:
    return SlotView(
        id=slot.id,
        start_time=slot.start_time,
        time_label=time_key(slot.start_time, tz) if slot.start_time else None,
        tour_name=slot.tour_name,
        status=slot.status,
        capacity_total=slot.capacity_total,
        booked=slot.booked,
        held=slot.held,
        available=slot.available,
    )


def build_calendar(slots: Iterable[SlotRecord], tz: tzinfo) -> list[SlotDay]:
    return [
        SlotDay(day_key=key, slots=[to_view(slot, tz) for slot in day_slots])
        for key, day_slots in group_slots_by_date(slots, tz).items()
    ]
