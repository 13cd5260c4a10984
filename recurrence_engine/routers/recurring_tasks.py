"""Recurring task router."""
from fastapi import APIRouter, Depends, HTTPException, status
from typing import List, Optional

from recurrence_engine.db.config import engine
from recurrence_engine.schemas.recurring_template import (
    HistoryEntryResponse,
    OccurrenceResponse,
    RecurringTemplateCreate,
    RecurringTemplateResponse,
    ResumeTemplateRequest,
    SkipOccurrenceRequest,
    TickReport,
)
from recurrence_engine.services.exceptions import (
    ConcurrentClaimLost,
    InvalidRule,
    NotFound,
    NotSchedulable,
    RecurrenceError,
    StorageFailure,
)
from recurrence_engine.services.recurring_task_service import RecurringTaskService

router = APIRouter(prefix="/{org_id}/recurring-tasks", tags=["Recurring Tasks"])

ERROR_STATUS = {
    NotFound: status.HTTP_404_NOT_FOUND,
    InvalidRule: status.HTTP_422_UNPROCESSABLE_ENTITY,
    NotSchedulable: status.HTTP_409_CONFLICT,
    ConcurrentClaimLost: status.HTTP_409_CONFLICT,
    StorageFailure: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def get_recurring_task_service() -> RecurringTaskService:
    """Dependency for getting RecurringTaskService instance."""
    return RecurringTaskService(engine)


def to_http_error(error: RecurrenceError) -> HTTPException:
    detail = {"code": error.code, "message": error.message}
    if isinstance(error, InvalidRule):
        detail["errors"] = error.errors
    return HTTPException(
        status_code=ERROR_STATUS.get(type(error), status.HTTP_400_BAD_REQUEST),
        detail=detail,
    )


@router.get("", response_model=List[RecurringTemplateResponse])
async def list_recurring_tasks(
    org_id: str,
    service: RecurringTaskService = Depends(get_recurring_task_service),
):
    """Get all recurring task templates."""
    try:
        return service.list_recurring_templates(org_id)
    except RecurrenceError as e:
        raise to_http_error(e)


@router.post("", response_model=RecurringTemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_recurring_task(
    org_id: str,
    template_data: RecurringTemplateCreate,
    service: RecurringTaskService = Depends(get_recurring_task_service),
):
    """Create a recurring task template."""
    try:
        return service.create_template(org_id, **template_data.model_dump())
    except RecurrenceError as e:
        raise to_http_error(e)


@router.post("/process", response_model=TickReport)
async def process_recurring_tasks(
    org_id: str,
    service: RecurringTaskService = Depends(get_recurring_task_service),
):
    """Create occurrences for every due recurring task."""
    try:
        return service.process_due(org_id)
    except RecurrenceError as e:
        raise to_http_error(e)


@router.get("/{template_id}", response_model=RecurringTemplateResponse)
async def get_recurring_task(
    org_id: str,
    template_id: int,
    service: RecurringTaskService = Depends(get_recurring_task_service),
):
    """Get a recurring task template."""
    try:
        return service.get_template(org_id, template_id)
    except RecurrenceError as e:
        raise to_http_error(e)


@router.get("/{template_id}/occurrences", response_model=List[OccurrenceResponse])
async def get_task_occurrences(
    org_id: str,
    template_id: int,
    service: RecurringTaskService = Depends(get_recurring_task_service),
):
    """Get occurrences created from a recurring task template."""
    try:
        return service.occurrences_of(org_id, template_id)
    except RecurrenceError as e:
        raise to_http_error(e)


@router.get("/{template_id}/history", response_model=List[HistoryEntryResponse])
async def get_recurrence_history(
    org_id: str,
    template_id: int,
    service: RecurringTaskService = Depends(get_recurring_task_service),
):
    """Get recurrence history, most recent first."""
    try:
        return service.history(org_id, template_id)
    except RecurrenceError as e:
        raise to_http_error(e)


@router.post("/{template_id}/skip", response_model=RecurringTemplateResponse)
async def skip_next_occurrence(
    org_id: str,
    template_id: int,
    body: Optional[SkipOccurrenceRequest] = None,
    service: RecurringTaskService = Depends(get_recurring_task_service),
):
    """Skip the next occurrence of a recurring task."""
    try:
        return service.skip_next(org_id, template_id, body.reason if body else None)
    except RecurrenceError as e:
        raise to_http_error(e)


@router.post("/{template_id}/pause", response_model=RecurringTemplateResponse)
async def pause_recurring_task(
    org_id: str,
    template_id: int,
    service: RecurringTaskService = Depends(get_recurring_task_service),
):
    """Pause a recurring task."""
    try:
        return service.pause(org_id, template_id)
    except RecurrenceError as e:
        raise to_http_error(e)


@router.post("/{template_id}/resume", response_model=RecurringTemplateResponse)
async def resume_recurring_task(
    org_id: str,
    template_id: int,
    body: Optional[ResumeTemplateRequest] = None,
    service: RecurringTaskService = Depends(get_recurring_task_service),
):
    """Resume a paused recurring task."""
    try:
        return service.resume(org_id, template_id, body.resume_from if body else None)
    except RecurrenceError as e:
        raise to_http_error(e)
