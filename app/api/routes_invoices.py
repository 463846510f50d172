import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import HTMLResponse

from app.api.admin_auth import AdminIdentity, require_admin
from app.dependencies import get_backend_client, get_settings
from app.domain.bookings import service as booking_service
from app.domain.bookings.schemas import ActionResult
from app.domain.invoices import service as invoice_service
from app.domain.invoices.renderer import render_pro_forma_html
from app.domain.invoices.schemas import InvoiceListResponse, InvoiceSort
from app.infra.backend import BackendClient
from app.settings import Settings

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/v1/admin/invoices", response_model=InvoiceListResponse)
async def list_invoices(
    sort: InvoiceSort = InvoiceSort.BOOKING_DESC,
    day: str | None = None,
    client: BackendClient = Depends(get_backend_client),
    app_settings: Settings = Depends(get_settings),
    identity: AdminIdentity = Depends(require_admin),
) -> InvoiceListResponse:
    del identity
    tz = app_settings.tz
    invoices = await invoice_service.load_invoices(client)
    if day:
        invoices = invoice_service.filter_by_day(invoices, day, tz)
    ordered = invoice_service.sort_invoices(invoices, sort)
    return InvoiceListResponse(
        outstanding_total=invoice_service.outstanding_total(ordered, app_settings.tax_rate),
        days=invoice_service.group_invoices_by_day(ordered, tz, app_settings.tax_rate),
    )


@router.get("/v1/admin/invoices/{invoice_id}/pro-forma", response_class=HTMLResponse)
async def download_pro_forma(
    invoice_id: str,
    client: BackendClient = Depends(get_backend_client),
    app_settings: Settings = Depends(get_settings),
    identity: AdminIdentity = Depends(require_admin),
) -> HTMLResponse:
    del identity
    invoice = await invoice_service.get_invoice(client, invoice_id)
    if invoice is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found")
    document = render_pro_forma_html(
        invoice,
        tax_rate=app_settings.tax_rate,
        company=app_settings.company,
        banking=app_settings.banking,
        tz=app_settings.tz,
        currency=app_settings.currency_code,
        group_separator=app_settings.money_group_separator,
        decimal_separator=app_settings.money_decimal_separator,
    )
    filename = invoice_service.pro_forma_filename(invoice)
    logger.info("pro_forma_rendered", extra={"extra": {"invoice_id": invoice.id}})
    return HTMLResponse(
        content=document,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/v1/admin/invoices/{invoice_id}/resend", response_model=ActionResult)
async def resend_invoice(
    invoice_id: str,
    client: BackendClient = Depends(get_backend_client),
    identity: AdminIdentity = Depends(require_admin),
) -> ActionResult:
    del identity
    invoice = await invoice_service.get_invoice(client, invoice_id)
    if invoice is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found")
    result = await booking_service.resend_invoice(
        client,
        booking_id=invoice.booking_id,
        invoice_id=invoice.id,
        invoice_number=invoice_service.invoice_number(invoice),
    )
    return ActionResult.from_function(result)
