from datetime import datetime, date, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp for DateTime columns (stored without tz info)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


def parse_calendar_date(value) -> date:
    """Parse a YYYY-MM-DD string (or pass through a date). Raises ValueError otherwise."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError("date must be a YYYY-MM-DD string")
    return date.fromisoformat(value.strip())
