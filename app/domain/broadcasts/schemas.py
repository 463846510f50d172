from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.domain.bookings.schemas import BookingRecord
from app.domain.slots.schemas import SlotView
from app.domain.values import to_datetime, to_text

DEFAULT_WEATHER_REASON = "unfavourable weather conditions"


class CalendarCell(BaseModel):
    day: int
    date: date
    is_past: bool
    has_slots: bool
    booked_count: int


class BroadcastCalendarResponse(BaseModel):
    year: int
    month: int
    cells: list[CalendarCell]
    slots_by_date: dict[str, list[SlotView]]


class SlotSelection(BaseModel):
    slot_ids: list[str] = Field(default_factory=list)


class AffectedBookingsResponse(BaseModel):
    slot_ids: list[str]
    bookings: list[BookingRecord]


class BroadcastRequest(SlotSelection):
    message: str = ""


class WeatherCancelRequest(SlotSelection):
    reason: str = DEFAULT_WEATHER_REASON


class BroadcastRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str | None = None
    message: str | None = None
    created_at: datetime | None = None

    @field_validator("id", "message", mode="before")
    @classmethod
    def normalize_text(cls, value: object) -> str | None:
        return to_text(value)

    @field_validator("created_at", mode="before")
    @classmethod
    def parse_created_at(cls, value: object) -> datetime | None:
        return to_datetime(value)
