from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from app.domain.bookings.schemas import BookingRecord
from app.domain.values import to_datetime, to_decimal, to_text


class RefundEntry(BookingRecord):
    refund_amount: Decimal = Decimal("0")
    refund_notes: str | None = None
    cancellation_reason: str | None = None
    cancelled_at: datetime | None = None

    @field_validator("refund_amount", mode="before")
    @classmethod
    def coerce_refund_amount(cls, value: object) -> Decimal:
        return to_decimal(value) or Decimal("0")

    @field_validator("refund_notes", "cancellation_reason", mode="before")
    @classmethod
    def normalize_note(cls, value: object) -> str | None:
        return to_text(value)

    @field_validator("cancelled_at", mode="before")
    @classmethod
    def parse_cancelled_at(cls, value: object) -> datetime | None:
        return to_datetime(value)

    @property
    def auto_refund_available(self) -> bool:
        return bool(self.yoco_checkout_id)


class RefundQueue(BaseModel):
    pending: list[RefundEntry] = Field(default_factory=list)
    processed: list[RefundEntry] = Field(default_factory=list)
    pending_total: Decimal = Decimal("0")
