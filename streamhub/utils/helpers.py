"""
Helper Utilities
General purpose utility functions
"""
import time
from datetime import datetime, timezone
from typing import Callable, Hashable, Iterable, List, Optional, TypeVar

T = TypeVar("T")


def deduplicate(
    items: Iterable[T],
    key: Callable[[T], Optional[Hashable]],
) -> List[T]:
    """
    Remove duplicate items, keeping the first occurrence

    Args:
        items: Items to deduplicate
        key: Function returning the identity of an item; items whose key
            is falsy are dropped

    Returns:
        Deduplicated list maintaining original order
    """
    seen = set()
    result = []

    for item in items:
        item_key = key(item)
        if item_key and item_key not in seen:
            seen.add(item_key)
            result.append(item)

    return result


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def format_time(seconds: float) -> str:
    """Format seconds as H:MM:SS, or M:SS under an hour"""
    total = int(max(0.0, seconds))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_remaining(seconds: float) -> str:
    """Human readable remaining time ("1h 5m left", "36m left", ...)"""
    if seconds <= 0:
        return "Finished"

    minutes = int(seconds / 60)
    if minutes >= 60:
        return f"{minutes // 60}h {minutes % 60}m left"
    if minutes > 0:
        return f"{minutes}m left"
    return "< 1m left"


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 (second precision, Z suffix)"""
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


def parse_iso8601(value: Optional[str]) -> int:
    """
    Parse an ISO-8601 timestamp into unix seconds

    Returns 0 when the value is empty or unparseable.
    """
    if not value:
        return 0
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return 0
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())
