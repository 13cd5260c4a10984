"""Recurrence history model for SQLModel."""
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, DateTime, Integer, ForeignKey, UniqueConstraint
from datetime import datetime
from typing import Optional

from recurrence_engine.utils.clock import utcnow


class HistoryEntry(SQLModel, table=True):
    """Append-only record of one resolved occurrence number, materialized or skipped."""

    __tablename__ = "recurrence_history"
    __table_args__ = (
        UniqueConstraint("template_id", "occurrence_number", name="uq_recurrence_history_number"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    template_id: int = Field(
        sa_column=Column(Integer, ForeignKey("recurring_templates.id", ondelete="CASCADE"), index=True, nullable=False)
    )
    occurrence_number: int
    occurrence_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("task_occurrences.id", ondelete="SET NULL"), nullable=True),
    )
    scheduled_for: datetime = Field(sa_column=Column(DateTime, nullable=False))
    skipped: bool = Field(default=False)
    skip_reason: Optional[str] = Field(default=None, max_length=500)
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime, nullable=False))
