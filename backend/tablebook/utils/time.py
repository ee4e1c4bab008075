from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from ..config import get_settings


def utc_now_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def reference_timezone() -> ZoneInfo:
    return ZoneInfo(get_settings().timezone)


def local_today(tz: ZoneInfo | None = None) -> date:
    """Current calendar date in the server's reference timezone."""
    return datetime.now(tz or reference_timezone()).date()
