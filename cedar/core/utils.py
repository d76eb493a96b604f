import secrets
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal


def utcnow() -> datetime:
    """Naive UTC timestamp, comparable with values read back from any backend."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def format_inr(amount: Decimal) -> str:
    """Display helper: rounds to the nearest rupee. Stored values are never rounded."""
    rounded = Decimal(amount).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return f"₹{rounded:,}"


def quote_reference(now: datetime) -> str:
    """QT-YYYYMMDD-XXXXXX, the suffix being random hex."""
    return f"QT-{now:%Y%m%d}-{secrets.token_hex(3).upper()}"


def order_reference(order_id: int) -> str:
    return f"ORD-{order_id:06d}"
