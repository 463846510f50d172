from __future__ import annotations

import logging
from datetime import datetime, timezone, tzinfo
from decimal import Decimal
from typing import Iterable

from app.domain.bookings.aggregation import date_key, day_label
from app.domain.invoices.schemas import (
    InvoiceCounts,
    InvoiceDayGroup,
    InvoiceListItem,
    InvoiceRecord,
    InvoiceSort,
    InvoiceTotals,
)
from app.domain.values import quantize_money, to_datetime, to_text
from app.infra.backend import BackendClient, eq, in_

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
INVOICE_LIST_LIMIT = 200
UNKNOWN_DAY_KEY = "unknown"
UNKNOWN_DAY_LABEL = "Unknown Date"
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _short_id(invoice: InvoiceRecord) -> str:
    return invoice.id[:8].upper() if invoice.id else "00000000"


def invoice_number(invoice: InvoiceRecord) -> str:
    return to_text(invoice.invoice_number, default=_short_id(invoice))


def booking_reference(invoice: InvoiceRecord) -> str:
    raw = invoice.booking_number or invoice.booking_reference or invoice.booking_id
    return to_text(raw, default=_short_id(invoice))


def invoice_counts(invoice: InvoiceRecord) -> InvoiceCounts:
    adults = invoice.adults_qty if invoice.adults_qty is not None else invoice.qty
    return InvoiceCounts(
        adults=int(adults or 0),
        children=int(invoice.children_qty or 0),
        guides=int(invoice.guides_qty or 0),
    )


def invoice_totals(invoice: InvoiceRecord, tax_rate: float | Decimal) -> InvoiceTotals:
    """Split a tax-inclusive total into subtotal and tax.

    The subtotal is rounded to cents first and the tax taken as the
    remainder, so subtotal + tax always equals the rounded total.
    """
    total = invoice.total_amount or ZERO
    if invoice.amount_paid is not None:
        amount_paid = invoice.amount_paid
    else:
        amount_paid = invoice.paid_amount or ZERO
    rate = Decimal(str(tax_rate))
    subtotal = quantize_money(total / (Decimal("1") + rate))
    tax = quantize_money(total) - subtotal
    return InvoiceTotals(
        total=total,
        amount_paid=amount_paid,
        subtotal=subtotal,
        tax=tax,
        balance_due=max(total - amount_paid, ZERO),
    )


def pro_forma_filename(invoice: InvoiceRecord) -> str:
    return f"proforma-{invoice_number(invoice)}.html"


def to_list_item(invoice: InvoiceRecord, tax_rate: float | Decimal) -> InvoiceListItem:
    return InvoiceListItem(
        id=invoice.id,
        invoice_number=invoice_number(invoice),
        booking_reference=booking_reference(invoice),
        customer_name=invoice.customer_name,
        customer_email=invoice.customer_email,
        tour_name=invoice.tour_name,
        booking_date=invoice.booking_created_at or invoice.tour_date,
        created_at=invoice.created_at,
        totals=invoice_totals(invoice, tax_rate),
    )


def sort_invoices(invoices: Iterable[InvoiceRecord], sort: InvoiceSort = InvoiceSort.BOOKING_DESC) -> list[InvoiceRecord]:
    if sort in (InvoiceSort.BOOKING_DESC, InvoiceSort.BOOKING_ASC):
        key = lambda invoice: invoice.booking_date or _EPOCH  # noqa: E731
    else:
        key = lambda invoice: invoice.created_at or _EPOCH  # noqa: E731
    reverse = sort in (InvoiceSort.BOOKING_DESC, InvoiceSort.CREATED_DESC)
    return sorted(invoices, key=key, reverse=reverse)


def filter_by_day(invoices: Iterable[InvoiceRecord], day_key: str, tz: tzinfo) -> list[InvoiceRecord]:
    return [
        invoice
        for invoice in invoices
        if invoice.booking_date is not None and date_key(invoice.booking_date, tz) == day_key
    ]


def group_invoices_by_day(
    invoices: Iterable[InvoiceRecord], tz: tzinfo, tax_rate: float | Decimal
) -> list[InvoiceDayGroup]:
    """Group invoices by booking day, keeping the order the caller sorted them in."""
    grouped: dict[str, list[InvoiceRecord]] = {}
    for invoice in invoices:
        raw = invoice.booking_date
        key = date_key(raw, tz) if raw else UNKNOWN_DAY_KEY
        grouped.setdefault(key, []).append(invoice)

    groups: list[InvoiceDayGroup] = []
    for key, items in grouped.items():
        listed = [to_list_item(invoice, tax_rate) for invoice in items]
        first_date = items[0].booking_date
        groups.append(
            InvoiceDayGroup(
                day_key=key,
                day_label=day_label(first_date, tz) if first_date else UNKNOWN_DAY_LABEL,
                invoices=listed,
                total=sum((item.totals.total for item in listed), ZERO),
                paid=sum((item.totals.amount_paid for item in listed), ZERO),
                due=sum((item.totals.balance_due for item in listed), ZERO),
            )
        )
    return groups


def outstanding_total(invoices: Iterable[InvoiceRecord], tax_rate: float | Decimal) -> Decimal:
    return sum((invoice_totals(invoice, tax_rate).balance_due for invoice in invoices), ZERO)


async def load_invoices(client: BackendClient, limit: int = INVOICE_LIST_LIMIT) -> list[InvoiceRecord]:
    rows = await client.select("invoices", "*", order="created_at.desc", limit=limit)
    invoices = [InvoiceRecord.model_validate(row) for row in rows]

    booking_ids = sorted({invoice.booking_id for invoice in invoices if invoice.booking_id})
    if not booking_ids:
        return invoices

    booking_rows = await client.select("bookings", "id, created_at", filters=[in_("id", booking_ids)])
    created_by_booking = {str(row.get("id")): row.get("created_at") for row in booking_rows}
    enriched: list[InvoiceRecord] = []
    for invoice in invoices:
        created = created_by_booking.get(invoice.booking_id or "")
        if created:
            invoice = invoice.model_copy(
                update={"booking_created_at": to_datetime(created) or invoice.booking_created_at}
            )
        enriched.append(invoice)
    logger.info(
        "invoices_loaded",
        extra={"extra": {"count": len(enriched), "bookings_enriched": len(created_by_booking)}},
    )
    return enriched


async def get_invoice(client: BackendClient, invoice_id: str) -> InvoiceRecord | None:
    rows = await client.select("invoices", "*", filters=[eq("id", invoice_id)], limit=1)
    if not rows:
        return None
    invoice = InvoiceRecord.model_validate(rows[0])
    if invoice.booking_id and invoice.booking_created_at is None:
        booking_rows = await client.select("bookings", "id, created_at", filters=[eq("id", invoice.booking_id)], limit=1)
        if booking_rows:
            invoice = invoice.model_copy(
                update={"booking_created_at": to_datetime(booking_rows[0].get("created_at"))}
            )
    return invoice
