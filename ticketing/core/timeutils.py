from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

REFERENCE_TZ = ZoneInfo("Asia/Kolkata")


def now_local() -> datetime:
    """Current wall-clock time in the reference zone, without tzinfo (as stored)."""
    return datetime.now(REFERENCE_TZ).replace(tzinfo=None)


def is_date_only(value: str) -> bool:
    try:
        date.fromisoformat(value.strip())
    except ValueError:
        return False
    return True


def parse_instant(value: str) -> datetime:
    """
    Parse an ISO-8601 date or datetime string into a naive reference-zone datetime.
    Naive input is taken as already being in the reference zone.
    Raises ValueError when the value cannot be parsed.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"not a date: {value!r}")

    dt = datetime.fromisoformat(value.strip())
    if dt.tzinfo is not None:
        dt = dt.astimezone(REFERENCE_TZ).replace(tzinfo=None)
    return dt


def day_span(start: datetime, end: datetime) -> int:
    # whole days between the bounds, truncated toward zero, plus the first day
    return int((end - start) / timedelta(days=1)) + 1
