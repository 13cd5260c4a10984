"""Occurrence model for SQLModel."""
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, DateTime, Integer, ForeignKey
from datetime import datetime
from typing import Optional

from recurrence_engine.utils.clock import utcnow


class Occurrence(SQLModel, table=True):
    """Concrete task instance produced from a recurring template."""

    __tablename__ = "task_occurrences"

    id: Optional[int] = Field(default=None, primary_key=True)
    organization_id: str = Field(max_length=100, index=True)
    # Provenance only; the occurrence outlives its template
    template_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("recurring_templates.id", ondelete="SET NULL"), index=True),
    )
    title: str = Field(max_length=200, min_length=1)
    description: Optional[str] = Field(default=None, max_length=1000)
    task_type: str = Field(default="general", max_length=50)
    related_entity_type: Optional[str] = Field(default=None, max_length=50)
    related_entity_id: Optional[str] = Field(default=None, max_length=100)
    assignee_id: Optional[str] = Field(default=None, max_length=100)
    priority: str = Field(default="medium", max_length=20)
    status: str = Field(default="open", max_length=20)
    due_at: datetime = Field(sa_column=Column(DateTime, nullable=False))
    completed_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime, nullable=True))
    created_by: Optional[str] = Field(default=None, max_length=100)
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime, nullable=False))
    updated_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime, nullable=False))
