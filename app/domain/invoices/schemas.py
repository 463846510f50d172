from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, field_validator

from app.domain.values import to_datetime, to_decimal, to_text


class InvoiceRecord(BaseModel):
    """Denormalized invoice row; every field is optional and never rejected."""

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    invoice_number: str | None = None
    booking_id: str | None = None
    booking_number: str | None = None
    booking_reference: str | None = None
    customer_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    tour_name: str | None = None
    tour_date: datetime | None = None
    qty: Decimal | None = None
    adults_qty: Decimal | None = None
    children_qty: Decimal | None = None
    guides_qty: Decimal | None = None
    total_amount: Decimal | None = None
    amount_paid: Decimal | None = None
    paid_amount: Decimal | None = None
    payment_method: str | None = None
    notes: str | None = None
    created_at: datetime | None = None
    booking_created_at: datetime | None = None

    @field_validator("id", mode="before")
    @classmethod
    def normalize_id(cls, value: object) -> str:
        return to_text(value, default="")

    @field_validator(
        "invoice_number",
        "booking_id",
        "booking_number",
        "booking_reference",
        "customer_name",
        "customer_email",
        "customer_phone",
        "tour_name",
        "payment_method",
        "notes",
        mode="before",
    )
    @classmethod
    def normalize_text(cls, value: object) -> str | None:
        return to_text(value)

    @field_validator(
        "qty",
        "adults_qty",
        "children_qty",
        "guides_qty",
        "total_amount",
        "amount_paid",
        "paid_amount",
        mode="before",
    )
    @classmethod
    def coerce_number(cls, value: object) -> Decimal | None:
        return to_decimal(value, default=None)

    @field_validator("tour_date", "created_at", "booking_created_at", mode="before")
    @classmethod
    def parse_timestamp(cls, value: object) -> datetime | None:
        return to_datetime(value)

    @property
    def booking_date(self) -> datetime | None:
        return self.booking_created_at or self.tour_date or self.created_at


class InvoiceTotals(BaseModel):
    total: Decimal
    amount_paid: Decimal
    subtotal: Decimal
    tax: Decimal
    balance_due: Decimal


class InvoiceCounts(BaseModel):
    adults: int
    children: int
    guides: int


class InvoiceSort(str, Enum):
    BOOKING_DESC = "booking_desc"
    BOOKING_ASC = "booking_asc"
    CREATED_DESC = "created_desc"
    CREATED_ASC = "created_asc"


class InvoiceListItem(BaseModel):
    id: str
    invoice_number: str
    booking_reference: str
    customer_name: str | None
    customer_email: str | None
    tour_name: str | None
    booking_date: datetime | None
    created_at: datetime | None
    totals: InvoiceTotals


class InvoiceDayGroup(BaseModel):
    day_key: str
    day_label: str
    invoices: list[InvoiceListItem]
    total: Decimal
    paid: Decimal
    due: Decimal


class InvoiceListResponse(BaseModel):
    outstanding_total: Decimal
    days: list[InvoiceDayGroup]
