"""SQLModel tables for recurring templates, occurrences and recurrence history."""
from recurrence_engine.models.recurrence_pattern import RecurrencePattern
from recurrence_engine.models.recurring_template import RecurringTemplate
from recurrence_engine.models.occurrence import Occurrence
from recurrence_engine.models.recurrence_history import HistoryEntry

__all__ = ["RecurrencePattern", "RecurringTemplate", "Occurrence", "HistoryEntry"]
