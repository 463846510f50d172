from enum import Enum


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    HELD = "HELD"
    CONFIRMED = "CONFIRMED"
    PAID = "PAID"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class RefundStatus(str, Enum):
    REQUESTED = "REQUESTED"
    PROCESSED = "PROCESSED"
    FAILED = "FAILED"


ALL_STATUSES = tuple(BookingStatus)
PAID_STATUSES = frozenset({BookingStatus.PAID, BookingStatus.CONFIRMED, BookingStatus.COMPLETED})
# statuses that put a customer on the water and therefore on manifests/broadcasts
MANIFEST_STATUSES = (BookingStatus.PAID, BookingStatus.CONFIRMED)


def normalize_status(value: object) -> BookingStatus:
    if isinstance(value, BookingStatus):
        return value
    try:
        return BookingStatus(str(value).strip().upper())
    except ValueError:
        return BookingStatus.PENDING


def normalize_refund_status(value: object) -> RefundStatus | None:
    if value is None:
        return None
    if isinstance(value, RefundStatus):
        return value
    try:
        return RefundStatus(str(value).strip().upper())
    except ValueError:
        return None


def is_paid(status: object) -> bool:
    return normalize_status(status) in PAID_STATUSES
