from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.domain.bookings.schemas import TourRef
from app.domain.values import to_datetime, to_decimal, to_int, to_text


class SlotStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class SlotRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = ""
    start_time: datetime | None = None
    tour_id: str | None = None
    capacity_total: int = 0
    booked: int = 0
    held: int = 0
    status: SlotStatus = SlotStatus.CLOSED
    price_per_person_override: Decimal | None = None
    tour: TourRef | None = Field(default=None, alias="tours")

    @field_validator("id", mode="before")
    @classmethod
    def normalize_id(cls, value: object) -> str:
        return to_text(value, default="")

    @field_validator("tour_id", mode="before")
    @classmethod
    def normalize_tour_id(cls, value: object) -> str | None:
        return to_text(value)

    @field_validator("start_time", mode="before")
    @classmethod
    def parse_start_time(cls, value: object) -> datetime | None:
        return to_datetime(value)

    @field_validator("capacity_total", "booked", "held", mode="before")
    @classmethod
    def coerce_count(cls, value: object) -> int:
        return to_int(value) or 0

    @field_validator("status", mode="before")
    @classmethod
    def coerce_status(cls, value: object) -> SlotStatus:
        try:
            return SlotStatus(str(value).strip().upper())
        except ValueError:
            return SlotStatus.CLOSED

    @field_validator("price_per_person_override", mode="before")
    @classmethod
    def coerce_price(cls, value: object) -> Decimal | None:
        return to_decimal(value, default=None)

    @field_validator("tour", mode="before")
    @classmethod
    def coerce_tour(cls, value: object) -> object:
        return value if isinstance(value, (dict, TourRef)) else None

    @property
    def available(self) -> int:
        """Seats left once confirmed and provisionally held seats are counted."""
        return self.capacity_total - self.booked - self.held

    @property
    def seats_open(self) -> int:
        return max(self.capacity_total - self.booked, 0)

    @property
    def tour_name(self) -> str | None:
        return self.tour.name if self.tour else None


class SlotView(BaseModel):
    id: str
    start_time: datetime | None
    time_label: str | None
    tour_name: str | None
    status: SlotStatus
    capacity_total: int
    booked: int
    held: int
    available: int


class SlotDay(BaseModel):
    day_key: str
    slots: list[SlotView]


class SlotCalendarResponse(BaseModel):
    start: datetime
    end: datetime
    days: list[SlotDay]


class SlotToggleResponse(BaseModel):
    id: str
    status: SlotStatus


class RebookOptionsResponse(BaseModel):
    slots: list[SlotView]
    open_seats: int
