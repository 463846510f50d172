import logging
from decimal import Decimal

from app.domain.bookings.statuses import RefundStatus
from app.domain.refunds.schemas import RefundEntry, RefundQueue
from app.infra.backend import BackendClient, FunctionResult, eq, in_, normalize_relations

logger = logging.getLogger(__name__)

REFUND_COLUMNS = (
    "id, customer_name, phone, email, qty, total_amount, refund_status, refund_amount, refund_notes, "
    "cancellation_reason, cancelled_at, yoco_checkout_id, slots(start_time), tours(name)"
)
PROCESSED_LIMIT = 20
MANUAL_REFUND_NOTE = "Manual refund"


def _entries(rows: list[dict]) -> list[RefundEntry]:
    return [RefundEntry.model_validate(normalize_relations(row, "tours", "slots")) for row in rows]


async def load_refund_queue(client: BackendClient) -> RefundQueue:
    pending_rows = await client.select(
        "bookings",
        REFUND_COLUMNS,
        filters=[eq("refund_status", RefundStatus.REQUESTED)],
        order="cancelled_at.desc",
    )
    processed_rows = await client.select(
        "bookings",
        REFUND_COLUMNS,
        filters=[in_("refund_status", [RefundStatus.PROCESSED, RefundStatus.FAILED])],
        order="cancelled_at.desc",
        limit=PROCESSED_LIMIT,
    )
    pending = _entries(pending_rows)
    return RefundQueue(
        pending=pending,
        processed=_entries(processed_rows),
        pending_total=sum((entry.refund_amount for entry in pending), Decimal("0")),
    )


async def process_refund(client: BackendClient, booking_id: str) -> FunctionResult:
    result = await client.invoke("process-refund", {"booking_id": booking_id})
    if result.ok:
        logger.info("refund_processed", extra={"extra": {"booking_id": booking_id}})
    else:
        logger.warning("refund_failed", extra={"extra": {"booking_id": booking_id, "error": result.message}})
    return result


async def mark_manual_refund(client: BackendClient, booking_id: str) -> None:
    await client.update(
        "bookings",
        {"refund_status": RefundStatus.PROCESSED, "refund_notes": MANUAL_REFUND_NOTE},
        filters=[eq("id", booking_id)],
    )
    logger.info("refund_marked_manual", extra={"extra": {"booking_id": booking_id}})
