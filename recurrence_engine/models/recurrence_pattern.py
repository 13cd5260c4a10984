"""Recurrence pattern enum."""
from enum import Enum
from typing import Optional


class RecurrencePattern(str, Enum):
    """Closed set of supported recurrence frequencies."""

    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"

    @classmethod
    def parse(cls, value) -> Optional["RecurrencePattern"]:
        """Return the matching pattern, or None for an unrecognized value."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None
