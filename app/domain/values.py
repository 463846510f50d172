from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")
# anything at or above this is a data-entry error, not an amount
MAX_MAGNITUDE = Decimal("1e15")
MAX_INT_EXPONENT = 9


def to_decimal(value: object, default: Decimal | None = Decimal("0")) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return default
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return default
    if not number.is_finite() or abs(number) >= MAX_MAGNITUDE:
        return default
    return number


def to_int(value: object, default: int | None = 0) -> int | None:
    number = to_decimal(value, default=None)
    if number is None or number.adjusted() > MAX_INT_EXPONENT:
        return default
    return int(number)


def to_text(value: object, default: str | None = None) -> str | None:
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def to_datetime(value: object) -> datetime | None:
    """Parse a store timestamp; naive values are taken as UTC."""
    parsed: datetime | None = None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        if raw.endswith(("Z", "z")):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(value: Decimal, group_separator: str = " ", decimal_separator: str = ".") -> str:
    """Two decimals with grouped thousands.

    The en-ZA locale writes "1 150,00"; callers pick the marks through
    settings, and the default decimal point keeps amounts machine-readable.
    """
    whole, cents = f"{quantize_money(value):,.2f}".split(".")
    grouped = whole.replace(",", group_separator)
    return f"{grouped}{decimal_separator}{cents}"
