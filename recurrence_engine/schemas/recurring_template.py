"""Recurring template schemas."""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from typing import Optional, List

from recurrence_engine.models.recurrence_pattern import RecurrencePattern
from recurrence_engine.utils.clock import as_reference_time


class RecurringTemplateCreate(BaseModel):
    """Schema for creating a recurring template."""
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    task_type: str = Field(default="general", max_length=50)
    related_entity_type: Optional[str] = Field(None, max_length=50)
    related_entity_id: Optional[str] = Field(None, max_length=100)
    assignee_id: Optional[str] = Field(None, max_length=100)
    priority: str = Field(default="medium", pattern=r"^(high|medium|low)$")
    created_by: Optional[str] = Field(None, max_length=100)

    pattern: RecurrencePattern
    interval: int = Field(default=1, ge=1)
    anchor_day_of_week: Optional[int] = Field(None, ge=0, le=6)  # 0=Sunday
    anchor_day_of_month: Optional[int] = Field(None, ge=1, le=31)
    anchor_month_of_year: Optional[int] = Field(None, ge=1, le=12)
    first_due: Optional[datetime] = None  # defaults to now
    end_at: Optional[datetime] = None
    occurrence_cap: Optional[int] = Field(None, ge=1)

    @field_validator("first_due", "end_at")
    @classmethod
    def to_reference_time(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_reference_time(value)


class RecurringTemplateResponse(BaseModel):
    """Schema for recurring template API responses."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    organization_id: str
    title: str
    description: Optional[str] = None
    task_type: str
    related_entity_type: Optional[str] = None
    related_entity_id: Optional[str] = None
    assignee_id: Optional[str] = None
    priority: str
    created_by: Optional[str] = None
    pattern: str
    interval: int
    anchor_day_of_week: Optional[int] = None
    anchor_day_of_month: Optional[int] = None
    anchor_month_of_year: Optional[int] = None
    next_due: Optional[datetime] = None
    last_materialized_at: Optional[datetime] = None
    occurrences_emitted: int
    end_at: Optional[datetime] = None
    occurrence_cap: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class OccurrenceResponse(BaseModel):
    """Schema for a materialized occurrence."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    organization_id: str
    template_id: Optional[int] = None
    title: str
    description: Optional[str] = None
    task_type: str
    related_entity_type: Optional[str] = None
    related_entity_id: Optional[str] = None
    assignee_id: Optional[str] = None
    priority: str
    status: str
    due_at: datetime
    completed_at: Optional[datetime] = None
    created_by: Optional[str] = None
    created_at: datetime


class HistoryEntryResponse(BaseModel):
    """Schema for one recurrence history entry."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    template_id: int
    occurrence_number: int
    occurrence_id: Optional[int] = None
    scheduled_for: datetime
    skipped: bool
    skip_reason: Optional[str] = None
    created_at: datetime


class SkipOccurrenceRequest(BaseModel):
    """Body for skipping the next occurrence."""
    reason: Optional[str] = Field(None, max_length=500)


class ResumeTemplateRequest(BaseModel):
    """Body for resuming a paused template; resume_from defaults to now."""
    resume_from: Optional[datetime] = None

    @field_validator("resume_from")
    @classmethod
    def to_reference_time(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_reference_time(value)


class TickReport(BaseModel):
    """Outcome of one scheduler tick for an organization."""
    organization_id: str
    evaluated_at: datetime
    materialized: List[int] = Field(default_factory=list)  # occurrence ids
    claims_lost: List[int] = Field(default_factory=list)  # template ids
    invalid: List[int] = Field(default_factory=list)  # template ids
    failed: List[int] = Field(default_factory=list)  # template ids

    @property
    def occurrences_created(self) -> int:
        return len(self.materialized)
