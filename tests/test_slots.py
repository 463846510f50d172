import asyncio
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from app.domain.errors import DomainError
from app.domain.slots import service as slot_service
from app.domain.slots.schemas import SlotRecord, SlotStatus

TZ = ZoneInfo("Africa/Johannesburg")


def _slot(slot_id: str, start: str | None, capacity=10, booked=0, held=0, status="OPEN") -> SlotRecord:
    return SlotRecord.model_validate(
        {
            "id": slot_id,
            "start_time": start,
            "capacity_total": capacity,
            "booked": booked,
            "held": held,
            "status": status,
        }
    )


def test_week_range_starts_on_monday():
    start, end = slot_service.week_range(date(2024, 6, 1), TZ)

    assert start == datetime(2024, 5, 27, tzinfo=TZ)
    assert (end.date(), end.hour, end.minute) == (date(2024, 6, 2), 23, 59)


def test_day_bounds_are_business_local():
    start, end = slot_service.day_bounds(date(2024, 6, 1), TZ)

    assert start.astimezone(timezone.utc) == datetime(2024, 5, 31, 22, 0, tzinfo=timezone.utc)
    assert end.astimezone(timezone.utc) == datetime(2024, 6, 1, 22, 0, tzinfo=timezone.utc)


def test_group_slots_by_date_sorted_and_drops_untimed():
    slots = [
        _slot("late", "2024-06-03T07:00:00Z"),
        _slot("early", "2024-06-01T23:00:00Z"),
        _slot("untimed", None),
    ]

    grouped = slot_service.group_slots_by_date(slots, TZ)

    assert list(grouped) == ["2024-06-02", "2024-06-03"]
    assert [slot.id for slot in grouped["2024-06-02"]] == ["early"]


def test_bookable_slots_and_open_seat_total():
    slots = [_slot("full", "2024-06-01T07:00:00Z", capacity=6, booked=6), _slot("open", "2024-06-01T09:00:00Z", capacity=8, booked=3)]

    assert [slot.id for slot in slot_service.bookable_slots(slots)] == ["open"]
    assert slot_service.open_seat_total(slots) == 5


def test_overbooked_slot_never_reports_negative_seats():
    slot = _slot("over", "2024-06-01T07:00:00Z", capacity=4, booked=6, held=1)

    assert slot.seats_open == 0
    assert slot.available == -3


def test_unknown_status_is_treated_as_closed():
    assert _slot("x", None, status="paused").status == SlotStatus.CLOSED
    assert _slot("y", None, status="open").status == SlotStatus.OPEN


def test_toggle_status_flips_and_patches(fake_backend, backend_client):
    slot = _slot("s1", "2024-06-01T07:00:00Z", status="OPEN")

    new_status = asyncio.run(slot_service.toggle_status(backend_client, slot))

    assert new_status == SlotStatus.CLOSED
    patch = fake_backend.calls("PATCH", "/rest/v1/slots")[0]
    assert patch.param("id") == ["eq.s1"]
    assert patch.body == {"status": "CLOSED"}


def test_get_slot_missing_raises_domain_error(backend_client):
    with pytest.raises(DomainError):
        asyncio.run(slot_service.get_slot(backend_client, "missing"))


def test_load_rebook_options_filters_full_slots(fake_backend, backend_client):
    fake_backend.tables["slots"] = [
        {"id": "full", "tour_id": "t1", "start_time": "2024-06-01T07:00:00Z", "capacity_total": 4, "booked": 4, "status": "OPEN"},
        {"id": "open", "tour_id": "t1", "start_time": "2024-06-01T09:00:00Z", "capacity_total": 4, "booked": 1, "status": "OPEN"},
    ]

    slots = asyncio.run(slot_service.load_rebook_options(backend_client, date(2024, 6, 1), TZ, tour_id="t1"))

    assert [slot.id for slot in slots] == ["open"]
    request = fake_backend.calls("GET", "/rest/v1/slots")[0]
    assert request.param("status") == ["eq.OPEN"]
    assert request.param("tour_id") == ["eq.t1"]
    lower, upper = request.param("start_time")
    assert lower.startswith("gte.2024-05-31T22:00:00")
    assert upper.startswith("lt.2024-06-01T22:00:00")
