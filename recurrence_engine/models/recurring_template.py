"""Recurring template model for SQLModel."""
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, DateTime
from datetime import datetime
from typing import Optional

from recurrence_engine.utils.clock import utcnow


class RecurringTemplate(SQLModel, table=True):
    """Recurrence rule plus scheduling bookkeeping. Never a unit of work itself."""

    __tablename__ = "recurring_templates"

    id: Optional[int] = Field(default=None, primary_key=True)
    organization_id: str = Field(max_length=100, index=True)

    # Shape copied into every occurrence
    title: str = Field(max_length=200, min_length=1)
    description: Optional[str] = Field(default=None, max_length=1000)
    task_type: str = Field(default="general", max_length=50)
    related_entity_type: Optional[str] = Field(default=None, max_length=50)
    related_entity_id: Optional[str] = Field(default=None, max_length=100)
    assignee_id: Optional[str] = Field(default=None, max_length=100)
    priority: str = Field(default="medium", max_length=20)  # high, medium, low
    created_by: Optional[str] = Field(default=None, max_length=100)

    # Rule
    pattern: str = Field(max_length=20)  # daily, weekly, biweekly, monthly, quarterly, yearly
    interval: int = Field(default=1)
    anchor_day_of_week: Optional[int] = Field(default=None)  # 0=Sunday .. 6=Saturday
    anchor_day_of_month: Optional[int] = Field(default=None)  # 1-31
    anchor_month_of_year: Optional[int] = Field(default=None)  # 1-12

    # Scheduling state; next_due of None means paused
    next_due: Optional[datetime] = Field(default=None, sa_column=Column(DateTime, nullable=True, index=True))
    last_materialized_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime, nullable=True))
    occurrences_emitted: int = Field(default=0)
    end_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime, nullable=True))
    occurrence_cap: Optional[int] = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime, nullable=False))
    updated_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime, nullable=False))

    def is_terminal(self) -> bool:
        """True once the end date or the occurrence cap has been reached."""
        if self.occurrence_cap is not None and self.occurrences_emitted >= self.occurrence_cap:
            return True
        if self.end_at is not None and self.next_due is not None and self.next_due > self.end_at:
            return True
        return False
