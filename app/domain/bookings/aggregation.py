"""Day / time-slot grouping of bookings for the bookings list and manifests.

All keys are taken in the business timezone so a viewer in another zone
sees the same day boundaries as the office. Pure functions only; callers
refetch and regroup after every mutation.
"""

from datetime import datetime, tzinfo
from decimal import Decimal
from typing import Iterable

from app.domain.bookings.schemas import BookingRecord, DayGroup, ManifestStats, SlotGroup
from app.domain.bookings.statuses import is_paid

ZERO = Decimal("0")


def date_key(ts: datetime, tz: tzinfo) -> str:
    return ts.astimezone(tz).strftime("%Y-%m-%d")


def time_key(ts: datetime, tz: tzinfo) -> str:
    return ts.astimezone(tz).strftime("%H:%M")


def day_label(ts: datetime, tz: tzinfo) -> str:
    local = ts.astimezone(tz)
    return f"{local:%A}, {local.day} {local:%b %Y}"


def _slot_group(label: str, bookings: list[BookingRecord]) -> SlotGroup:
    billed = sum((booking.total_amount for booking in bookings), ZERO)
    paid = sum((booking.total_amount for booking in bookings if is_paid(booking.status)), ZERO)
    return SlotGroup(
        time_label=label,
        sort_key=label,
        bookings=bookings,
        party_size=sum(booking.qty for booking in bookings),
        billed=billed,
        paid=paid,
        due=billed - paid,
    )


def group_bookings(bookings: Iterable[BookingRecord], tz: tzinfo) -> list[DayGroup]:
    days: dict[str, dict[str, list[BookingRecord]]] = {}
    labels: dict[str, str] = {}
    for booking in bookings:
        start = booking.start_time
        if start is None:
            continue
        dk = date_key(start, tz)
        if dk not in days:
            days[dk] = {}
            labels[dk] = day_label(start, tz)
        days[dk].setdefault(time_key(start, tz), []).append(booking)

    result: list[DayGroup] = []
    for dk in sorted(days):
        slots = [_slot_group(tk, days[dk][tk]) for tk in sorted(days[dk])]
        billed = sum((slot.billed for slot in slots), ZERO)
        paid = sum((slot.paid for slot in slots), ZERO)
        result.append(
            DayGroup(
                day_key=dk,
                day_label=labels[dk],
                slots=slots,
                party_size=sum(slot.party_size for slot in slots),
                billed=billed,
                paid=paid,
                due=billed - paid,
            )
        )
    return result


def manifest_stats(bookings: Iterable[BookingRecord]) -> ManifestStats:
    count = 0
    pax = 0
    revenue = ZERO
    for booking in bookings:
        count += 1
        pax += booking.qty
        revenue += booking.total_amount
    return ManifestStats(bookings=count, pax=pax, revenue=revenue)
