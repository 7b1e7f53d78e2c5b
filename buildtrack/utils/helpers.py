"""
General helper utilities
"""
import math
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional


def percentage(part: int, total: int) -> int:
    """Whole-number percentage, half rounded up; 0 when total is 0"""
    if total <= 0:
        return 0
    return int(math.floor(part / total * 100 + 0.5))


def to_naive_utc(value: datetime) -> datetime:
    """Datetimes are stored naive in UTC; offset-aware input is converted"""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min)


def get_date_range(period: str = "week", anchor: Optional[date] = None) -> tuple[datetime, datetime]:
    """Default calendar window around an anchor day"""
    anchor = anchor or date.today()
    start = start_of_day(anchor)
    if period == "day":
        end = start + timedelta(days=1)
    elif period == "month":
        end = start + timedelta(days=31)
    else:
        end = start + timedelta(days=7)
    return start, end


def file_category(mime_type: Optional[str]) -> str:
    """Map a MIME type onto the file library categories"""
    mime_type = (mime_type or "").lower()
    if mime_type.startswith("image/"):
        return "image"
    if mime_type.startswith("video/"):
        return "video"
    if mime_type.startswith("audio/"):
        return "audio"
    if "pdf" in mime_type or "document" in mime_type or "text" in mime_type or "sheet" in mime_type:
        return "document"
    return "other"


def parse_tags(raw: Optional[str]) -> list[str]:
    if not raw:
        return []
    return [t.strip() for t in raw.split(",") if t.strip()]
