"""Reference clock. All scheduling instants are naive UTC."""
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_reference_time(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware instant to naive UTC; naive values are taken as UTC already."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
