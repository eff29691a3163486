import time
from datetime import datetime, timezone

DAY_S = 24 * 60 * 60

def now_ts() -> int:
    return int(time.time())

def parse_war_date(raw: str) -> datetime | None:
    """Dates P&W en ISO 8601 ("2025-01-02T03:04:05+00:00"); None si illisible."""
    if not raw:
        return None
    try:
        dt = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt
