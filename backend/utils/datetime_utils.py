from datetime import datetime, date, timezone
from zoneinfo import ZoneInfo


def utcnow_naive() -> datetime:
    # Naive UTC matches the DateTime columns stored in SQLite.
    return datetime.utcnow()


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


def today_for_tz(tz_name: str | None) -> date:
    """Return today's date in the given timezone."""
    if tz_name:
        try:
            return datetime.now(ZoneInfo(tz_name)).date()
        except Exception:
            pass
    return today_utc()


def parse_iso_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` string; raises ValueError when malformed."""
    return date.fromisoformat((value or "").strip())
