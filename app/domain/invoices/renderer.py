"""Pro forma invoice document.

Produces one self-contained HTML page (inline styles, no scripts, no
external assets) that prints to a single A4 sheet. Every value taken from
the invoice row goes through :func:`html.escape` before interpolation.
"""

import html
from datetime import datetime, tzinfo
from decimal import Decimal

from app.domain.invoices.schemas import InvoiceRecord
from app.domain.invoices.service import (
    booking_reference,
    invoice_counts,
    invoice_number,
    invoice_totals,
)
from app.domain.values import format_money
from app.settings import BankingDetails, CompanyIdentity

DEFAULT_TOUR_NAME = "Kayak booking"
DEFAULT_CUSTOMER_NAME = "Customer"
MISSING_DATE = "-"

_STYLE = """
    @page { size: A4; margin: 10mm; }
    body { margin: 0; background: #eee; font-family: Arial, Helvetica, sans-serif; color: #111; }
    .sheet { width: 210mm; min-height: 297mm; margin: 0 auto; padding: 12mm; background: #fff; box-sizing: border-box; }
    .split { display: flex; justify-content: space-between; gap: 10mm; }
    .company { font-size: 18px; font-weight: 700; }
    .muted { font-size: 12px; color: #333; margin-top: 4mm; }
    h1 { margin: 0 0 4mm; font-size: 30px; letter-spacing: 0.06em; color: #898989; text-align: right; }
    table { width: 100%; border-collapse: collapse; }
    th, td { border: 1px solid #222; padding: 6px 7px; font-size: 12px; vertical-align: top; }
    th { background: #d8d8d8; text-align: left; }
    .num { text-align: right; font-family: "Courier New", monospace; }
    .lines { white-space: pre-line; }
    .label { text-align: right; font-weight: 700; background: #efefef; }
    .strong { font-weight: 800; background: #d3d3d3; }
    .rule { border: 0; border-top: 1px solid #cfcfcf; margin: 6mm 0; }
    .bank-title { font-size: 24px; font-weight: 700; margin: 8mm 0 3mm; }
    .bank td { border: none; padding: 2px; }
    .bank .key { font-weight: 700; width: 38mm; }
    @media print { body { background: #fff; } .sheet { margin: 0; } }
"""


def _e(value: object) -> str:
    return html.escape(str(value), quote=True)


def long_date(value: datetime | None, tz: tzinfo) -> str:
    if value is None:
        return MISSING_DATE
    local = value.astimezone(tz)
    return f"{local.day} {local:%B %Y}"


def _tax_label(tax_rate: float | Decimal) -> str:
    percent = Decimal(str(tax_rate)) * 100
    return f"VAT - {percent:.1f}%"


def render_pro_forma_html(
    invoice: InvoiceRecord,
    *,
    tax_rate: float | Decimal,
    company: CompanyIdentity,
    banking: BankingDetails,
    tz: tzinfo,
    currency: str = "ZAR",
    group_separator: str = " ",
    decimal_separator: str = ".",
) -> str:
    def money(value: Decimal) -> str:
        return _e(format_money(value, group_separator, decimal_separator))

    number = _e(invoice_number(invoice))
    totals = invoice_totals(invoice, tax_rate)
    counts = invoice_counts(invoice)

    recipient = [invoice.customer_name or DEFAULT_CUSTOMER_NAME]
    recipient += [value for value in (invoice.customer_email, invoice.customer_phone) if value]
    sender = [company.name, *company.address_lines]

    service = f"{invoice.tour_name or DEFAULT_TOUR_NAME} ({long_date(invoice.tour_date or invoice.created_at, tz)})"
    issued = long_date(invoice.created_at or invoice.tour_date, tz)
    payment_due = long_date(invoice.tour_date or invoice.created_at, tz)

    note_row = ""
    if invoice.notes:
        note_row = f'<tr><td colspan="5">Price Change Reason: {_e(invoice.notes)}</td></tr>'

    summary_rows = [
        ("Sub-total (Excl VAT)", money(totals.subtotal), ""),
        (_tax_label(tax_rate), money(totals.tax), ""),
        ("Total:", f"<strong>{money(totals.total)}</strong>", ""),
        ("Amount Paid:", money(totals.amount_paid), ""),
        ("Balance Due:", f"<strong>R{money(totals.balance_due)}</strong>", " strong"),
    ]
    summary_html = "".join(
        f'<tr><td style="width:50%; border:none;"></td>'
        f'<td class="label{extra}">{_e(label)}</td>'
        f'<td class="num{extra}" style="width:20%;">{value}</td></tr>'
        for label, value, extra in summary_rows
    )

    bank_rows = [
        ("Account Owner:", banking.owner),
        ("Account Number:", banking.account_number),
        ("Account Type:", banking.account_type),
        ("Bank Name:", banking.bank_name),
        ("Branch Code:", banking.branch_code),
        ("Reference:", invoice_number(invoice)),
        ("Payment Due:", payment_due),
    ]
    bank_html = "".join(
        f'<tr><td class="key">{_e(label)}</td><td>{_e(value)}</td></tr>' for label, value in bank_rows
    )

    return f"""<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>Pro Forma Invoice {number}</title>
  <style>{_STYLE}</style>
</head>
<body>
  <div class="sheet">
    <div class="split">
      <div>
        <div class="company">{_e(company.name)}</div>
        <div class="muted">{_e(company.registration)} VAT: {_e(company.vat_number)}</div>
      </div>
      <div style="flex:1;"><h1>PROFORMA INVOICE</h1></div>
    </div>

    <div class="split" style="margin-top:6mm;">
      <table style="width:56%;">
        <tr><th style="width:50%;">From:</th><th>To:</th></tr>
        <tr>
          <td class="lines">{_e(chr(10).join(sender))}</td>
          <td class="lines">{_e(chr(10).join(recipient))}</td>
        </tr>
      </table>
      <table style="width:38%;">
        <tr><th style="width:45%;">Invoice #:</th><td class="num">{number}</td></tr>
        <tr><th>Booking #:</th><td class="num">{_e(booking_reference(invoice))}</td></tr>
        <tr><th>Date:</th><td class="num">{_e(issued)}</td></tr>
        <tr><th>Amount Due:</th><td class="num">R{money(totals.balance_due)}</td></tr>
      </table>
    </div>

    <hr class="rule" />
    <table>
      <tr>
        <th>Service</th>
        <th class="num" style="width:17mm;">Adults (Qty)</th>
        <th class="num" style="width:19mm;">Children (Qty)</th>
        <th class="num" style="width:17mm;">Guides (Qty)</th>
        <th class="num" style="width:30mm;">Total Cost ({_e(currency)})</th>
      </tr>
      <tr>
        <td>{_e(service)}</td>
        <td class="num">{counts.adults}</td>
        <td class="num">{counts.children}</td>
        <td class="num">{counts.guides}</td>
        <td class="num">{money(totals.total)}</td>
      </tr>
      {note_row}
    </table>

    <table>{summary_html}</table>

    <div class="bank-title">Banking Details</div>
    <table class="bank">{bank_html}</table>
  </div>
</body>
</html>
"""
