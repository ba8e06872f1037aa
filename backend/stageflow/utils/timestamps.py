from datetime import datetime, timezone


def today_iso() -> str:
    """UTC evaluation date in the YYYY-MM-DD form stored in actual_end_date."""
    return datetime.now(timezone.utc).date().isoformat()


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
