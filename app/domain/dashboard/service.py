from datetime import datetime, timezone, tzinfo

from pydantic import BaseModel

from app.domain.bookings.aggregation import manifest_stats
from app.domain.bookings.schemas import BookingRecord, ManifestStats
from app.domain.bookings.service import to_records
from app.domain.bookings.statuses import MANIFEST_STATUSES, RefundStatus
from app.domain.slots.service import day_bounds
from app.infra.backend import BackendClient, eq, gte, in_, lt

MANIFEST_COLUMNS = "id, customer_name, phone, email, qty, total_amount, status, slots(start_time), tours(name)"
HUMAN_INBOX_STATUS = "HUMAN"


class DashboardSummary(BaseModel):
    day_key: str
    manifest: list[BookingRecord]
    stats: ManifestStats
    refund_requests: int
    inbox_waiting: int


async def load_dashboard(client: BackendClient, now: datetime, tz: tzinfo) -> DashboardSummary:
    today = now.astimezone(tz).date()
    start, end = day_bounds(today, tz)
    rows = await client.select(
        "bookings",
        MANIFEST_COLUMNS,
        filters=[
            in_("status", MANIFEST_STATUSES),
            gte("slots.start_time", start.astimezone(timezone.utc)),
            lt("slots.start_time", end.astimezone(timezone.utc)),
        ],
        order="created_at.asc",
    )
    manifest = [record for record in to_records(rows) if record.start_time is not None]
    refund_requests = await client.count("bookings", [eq("refund_status", RefundStatus.REQUESTED)])
    inbox_waiting = await client.count("conversations", [eq("status", HUMAN_INBOX_STATUS)])
    return DashboardSummary(
        day_key=today.isoformat(),
        manifest=manifest,
        stats=manifest_stats(manifest),
        refund_requests=refund_requests,
        inbox_waiting=inbox_waiting,
    )
