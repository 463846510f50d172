from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.domain.bookings.statuses import (
    BookingStatus,
    RefundStatus,
    normalize_refund_status,
    normalize_status,
)
from app.domain.values import to_datetime, to_decimal, to_int, to_text
from app.infra.backend import FunctionResult


class TourRef(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    name: str | None = None

    @field_validator("id", "name", mode="before")
    @classmethod
    def normalize_text(cls, value: object) -> str | None:
        return to_text(value)


class SlotRef(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    start_time: datetime | None = None
    tour_id: str | None = None
    capacity_total: int = 0
    booked: int = 0
    status: str | None = None

    @field_validator("id", "tour_id", "status", mode="before")
    @classmethod
    def normalize_text(cls, value: object) -> str | None:
        return to_text(value)

    @field_validator("start_time", mode="before")
    @classmethod
    def parse_start_time(cls, value: object) -> datetime | None:
        return to_datetime(value)

    @field_validator("capacity_total", "booked", mode="before")
    @classmethod
    def coerce_count(cls, value: object) -> int:
        return to_int(value) or 0


class BookingRecord(BaseModel):
    """A booking row as the console sees it.

    Construction never fails on bad data: quantities and money fall back to
    zero, unknown statuses to PENDING, unknown refund states to None. The
    ``tours``/``slots`` relations must already be single objects; see
    ``app.infra.backend.normalize_relations``.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = ""
    slot_id: str | None = None
    customer_name: str = ""
    phone: str = ""
    email: str = ""
    qty: int = 0
    total_amount: Decimal = Decimal("0")
    status: BookingStatus = BookingStatus.PENDING
    refund_status: RefundStatus | None = None
    yoco_checkout_id: str | None = None
    tour: TourRef | None = Field(default=None, alias="tours")
    slot: SlotRef | None = Field(default=None, alias="slots")

    @field_validator("id", "customer_name", "phone", "email", mode="before")
    @classmethod
    def normalize_text(cls, value: object) -> str:
        return to_text(value, default="")

    @field_validator("slot_id", "yoco_checkout_id", mode="before")
    @classmethod
    def normalize_optional_text(cls, value: object) -> str | None:
        return to_text(value)

    @field_validator("qty", mode="before")
    @classmethod
    def coerce_qty(cls, value: object) -> int:
        return max(to_int(value) or 0, 0)

    @field_validator("total_amount", mode="before")
    @classmethod
    def coerce_total(cls, value: object) -> Decimal:
        amount = to_decimal(value) or Decimal("0")
        return amount if amount > 0 else Decimal("0")

    @field_validator("status", mode="before")
    @classmethod
    def coerce_status(cls, value: object) -> BookingStatus:
        return normalize_status(value)

    @field_validator("refund_status", mode="before")
    @classmethod
    def coerce_refund_status(cls, value: object) -> RefundStatus | None:
        return normalize_refund_status(value)

    @field_validator("tour", mode="before")
    @classmethod
    def coerce_tour(cls, value: object) -> object:
        return value if isinstance(value, (dict, TourRef)) else None

    @field_validator("slot", mode="before")
    @classmethod
    def coerce_slot(cls, value: object) -> object:
        return value if isinstance(value, (dict, SlotRef)) else None

    @property
    def start_time(self) -> datetime | None:
        return self.slot.start_time if self.slot else None

    @property
    def tour_name(self) -> str | None:
        return self.tour.name if self.tour else None

    @property
    def short_ref(self) -> str:
        return self.id[:8].upper()


class SlotGroup(BaseModel):
    time_label: str
    sort_key: str
    bookings: list[BookingRecord]
    party_size: int
    billed: Decimal
    paid: Decimal
    due: Decimal


class DayGroup(BaseModel):
    day_key: str
    day_label: str
    slots: list[SlotGroup]
    party_size: int
    billed: Decimal
    paid: Decimal
    due: Decimal


class ManifestStats(BaseModel):
    bookings: int
    pax: int
    revenue: Decimal


class BookingRange(BaseModel):
    start: datetime
    end: datetime


class BookingListResponse(BaseModel):
    range: BookingRange
    days: list[DayGroup]


class BookingUpdateRequest(BaseModel):
    customer_name: str = ""
    phone: str = ""
    email: str = ""
    qty: int | str | None = 1
    total_amount: Decimal | str | None = Decimal("0")
    status: BookingStatus = BookingStatus.PENDING

    @field_validator("customer_name", "phone", "email", mode="before")
    @classmethod
    def strip_text(cls, value: object) -> str:
        return to_text(value, default="")

    def normalized_values(self) -> dict[str, object]:
        return {
            "customer_name": self.customer_name,
            "phone": self.phone,
            "email": self.email,
            "qty": max(1, to_int(self.qty) or 1),
            "total_amount": to_decimal(self.total_amount) or Decimal("0"),
            "status": self.status,
        }


class RebookRequest(BaseModel):
    slot_id: str = Field(min_length=1)


class ActionResult(BaseModel):
    ok: bool
    message: str | None = None
    payload: dict[str, Any] | None = None

    @classmethod
    def from_function(cls, result: FunctionResult) -> "ActionResult":
        return cls(ok=result.ok, message=result.message, payload=result.payload)


class ResendInvoiceRequest(BaseModel):
    invoice_id: str | None = None
    invoice_number: str | None = None


class RangeQuery(BaseModel):
    start: date | None = None
    end: date | None = None
    shift: int = 0
