"""
Recurring Task Service.

Materializes due recurring templates into occurrences and handles
skip / pause / resume, recording every resolved occurrence number
in the recurrence history.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from recurrence_engine.db.config import RECURRENCE_HISTORY_LIMIT
from recurrence_engine.models.occurrence import Occurrence
from recurrence_engine.models.recurrence_history import HistoryEntry
from recurrence_engine.models.recurring_template import RecurringTemplate
from recurrence_engine.schemas.recurring_template import TickReport
from recurrence_engine.services.exceptions import (
    ConcurrentClaimLost,
    InvalidRule,
    NotFound,
    NotSchedulable,
    StorageFailure,
)
from recurrence_engine.services.recurrence_calculator import compute_next
from recurrence_engine.services.recurrence_validator import RecurrenceValidator
from recurrence_engine.services.template_repository import TemplateRepository
from recurrence_engine.utils.clock import as_reference_time, utcnow
from recurrence_engine.utils.logger import scheduler_logger
from recurrence_engine.utils.metrics import metrics_collector

logger = logging.getLogger(__name__)

# Lifecycle operations that do not depend on the schedule they read
LIFECYCLE_RETRIES = 3


class RecurringTaskService:
    """Service to handle recurring task scheduling."""

    def __init__(
        self,
        engine: Engine,
        clock: Callable[[], datetime] = utcnow,
        history_limit: int = RECURRENCE_HISTORY_LIMIT,
    ):
        """Initialize the recurring task service."""
        self.engine = engine
        self.clock = clock
        self.history_limit = history_limit

    def _read(self, operation: Callable[[TemplateRepository], object]):
        """Run a read-only operation against a fresh session."""
        try:
            with Session(self.engine) as session:
                return operation(TemplateRepository(session))
        except SQLAlchemyError as e:
            metrics_collector.storage_failure()
            scheduler_logger.exception("storage_failure", operation="read", error=str(e))
            raise StorageFailure("Failed to read recurring templates") from e

    # ==================== Templates ====================

    def create_template(
        self,
        organization_id: str,
        title: str,
        pattern,
        interval: int = 1,
        anchor_day_of_week: Optional[int] = None,
        anchor_day_of_month: Optional[int] = None,
        anchor_month_of_year: Optional[int] = None,
        first_due: Optional[datetime] = None,
        end_at: Optional[datetime] = None,
        occurrence_cap: Optional[int] = None,
        **shape,
    ) -> RecurringTemplate:
        """
        Create a recurring template after validating its rule.

        Raises:
            InvalidRule: If the rule cannot be scheduled
        """
        first_due = as_reference_time(first_due)
        end_at = as_reference_time(end_at)
        validation = RecurrenceValidator.ensure_valid(
            pattern=pattern,
            interval=interval,
            anchor_day_of_week=anchor_day_of_week,
            anchor_day_of_month=anchor_day_of_month,
            anchor_month_of_year=anchor_month_of_year,
            end_at=end_at,
            occurrence_cap=occurrence_cap,
            first_due=first_due,
        )
        for warning in validation["warnings"]:
            logger.warning("Recurring template %r: %s", title, warning)

        now = self.clock()
        template = RecurringTemplate(
            organization_id=organization_id,
            title=title,
            pattern=getattr(pattern, "value", pattern),
            interval=interval,
            anchor_day_of_week=anchor_day_of_week,
            anchor_day_of_month=anchor_day_of_month,
            anchor_month_of_year=anchor_month_of_year,
            next_due=first_due or now,
            end_at=end_at,
            occurrence_cap=occurrence_cap,
            created_at=now,
            updated_at=now,
            **shape,
        )

        try:
            with Session(self.engine) as session:
                TemplateRepository(session).add_template(template)
                session.commit()
                session.refresh(template)
        except SQLAlchemyError as e:
            metrics_collector.storage_failure()
            scheduler_logger.exception("storage_failure", operation="create_template", error=str(e))
            raise StorageFailure("Failed to create recurring template") from e

        scheduler_logger.info(
            "template_created",
            organization_id=organization_id,
            template_id=template.id,
            pattern=template.pattern,
            next_due=template.next_due,
        )
        return template

    def get_template(self, organization_id: str, template_id: int) -> RecurringTemplate:
        template = self._read(lambda repo: repo.get(organization_id, template_id))
        if template is None:
            raise NotFound("Recurring task not found", {"template_id": template_id})
        return template

    def list_recurring_templates(self, organization_id: str) -> List[RecurringTemplate]:
        """Get all recurring templates for an organization, ordered by title."""
        return self._read(lambda repo: repo.list_for_organization(organization_id))

    def due_templates(self, organization_id: str, now: Optional[datetime] = None) -> List[RecurringTemplate]:
        """Templates whose next_due has passed and that are neither paused nor terminal."""
        now = now or self.clock()
        return self._read(lambda repo: repo.due(organization_id, now))

    def organizations_with_due_work(self, now: Optional[datetime] = None) -> List[str]:
        now = now or self.clock()
        return self._read(lambda repo: repo.organizations_with_due(now))

    # ==================== Scheduling ====================

    def _successor(self, template: RecurringTemplate) -> Optional[datetime]:
        """
        Compute the template's next_due after the instant it currently holds.

        Returns None when the successor falls past end_at or the cap is reached.
        An unusable rule pauses the template and raises InvalidRule.
        """
        validation = RecurrenceValidator.validate_template(template)
        successor = None
        if validation["valid"]:
            successor = compute_next(
                template.next_due,
                template.pattern,
                template.interval,
                template.anchor_day_of_week,
                template.anchor_day_of_month,
                template.anchor_month_of_year,
            )
        if successor is None:
            errors = validation["errors"] or [f"Unsupported recurrence pattern: {template.pattern}"]
            self._suspend_invalid(template, errors)
            raise InvalidRule("; ".join(errors), errors=errors, details={"template_id": template.id})

        if template.end_at is not None and successor > template.end_at:
            return None
        if template.occurrence_cap is not None and template.occurrences_emitted + 1 >= template.occurrence_cap:
            return None
        return successor

    def _suspend_invalid(self, template: RecurringTemplate, errors: List[str]):
        """Report a template whose rule cannot be evaluated and pause it."""
        metrics_collector.invalid_rule()
        scheduler_logger.error(
            "invalid_rule",
            organization_id=template.organization_id,
            template_id=template.id,
            pattern=template.pattern,
            errors=errors,
            action="paused",
        )
        try:
            self._claim(template, {"next_due": None, "updated_at": self.clock()})
        except ConcurrentClaimLost:
            # Already advanced or paused by another writer; the rule is still reported
            pass

    def _claim(
        self,
        template: RecurringTemplate,
        changes: dict,
        occurrence: Optional[Occurrence] = None,
        entry: Optional[HistoryEntry] = None,
    ) -> Tuple[RecurringTemplate, Optional[Occurrence]]:
        """
        Apply scheduling changes, the new occurrence and the history entry as one transaction.

        The update is conditioned on the template still holding the next_due and
        occurrences_emitted values of the given snapshot.

        Raises:
            ConcurrentClaimLost: If the template changed since the snapshot was read
            StorageFailure: If the transaction could not be committed
        """
        with Session(self.engine) as session:
            repo = TemplateRepository(session)
            try:
                claimed = repo.compare_and_swap_schedule(
                    template.id,
                    template.next_due,
                    template.occurrences_emitted,
                    **changes,
                )
                if not claimed:
                    session.rollback()
                    metrics_collector.claim_lost()
                    scheduler_logger.info(
                        "claim_lost",
                        organization_id=template.organization_id,
                        template_id=template.id,
                        expected_next_due=template.next_due,
                    )
                    raise ConcurrentClaimLost(
                        "Recurring task was updated concurrently",
                        {"template_id": template.id},
                    )

                if occurrence is not None:
                    repo.add_occurrence(occurrence)
                    entry.occurrence_id = occurrence.id
                if entry is not None:
                    repo.append_history(entry)
                session.commit()

                if occurrence is not None:
                    session.refresh(occurrence)
                updated = repo.get_by_id(template.id)
            except SQLAlchemyError as e:
                session.rollback()
                metrics_collector.storage_failure()
                scheduler_logger.exception(
                    "storage_failure",
                    organization_id=template.organization_id,
                    template_id=template.id,
                    error=str(e),
                )
                raise StorageFailure("Failed to update recurring task", {"template_id": template.id}) from e

        return updated, occurrence

    def _ensure_schedulable(self, template: RecurringTemplate):
        if template.next_due is None:
            raise NotSchedulable("Recurring task is paused", {"template_id": template.id})
        if template.is_terminal():
            raise NotSchedulable("Recurring task has ended", {"template_id": template.id})

    def materialize(self, template: RecurringTemplate) -> Occurrence:
        """
        Create the occurrence for the template's current next_due and advance the template.

        Args:
            template: Template snapshot as read from due_templates

        Returns:
            The persisted occurrence

        Raises:
            ConcurrentClaimLost: Another worker already resolved this occurrence
            InvalidRule: The rule cannot be evaluated; the template has been paused
            NotSchedulable: The template is paused or terminal
            StorageFailure: Nothing was committed; safe to retry from a fresh read
        """
        self._ensure_schedulable(template)
        scheduled_for = template.next_due
        next_due = self._successor(template)
        now = self.clock()

        occurrence = Occurrence(
            organization_id=template.organization_id,
            template_id=template.id,
            title=template.title,
            description=template.description,
            task_type=template.task_type,
            related_entity_type=template.related_entity_type,
            related_entity_id=template.related_entity_id,
            assignee_id=template.assignee_id,
            priority=template.priority,
            status="open",
            due_at=scheduled_for,
            created_by=template.created_by,
            created_at=now,
            updated_at=now,
        )
        occurrence_number = template.occurrences_emitted + 1
        entry = HistoryEntry(
            template_id=template.id,
            occurrence_number=occurrence_number,
            scheduled_for=scheduled_for,
            skipped=False,
            created_at=now,
        )

        _, occurrence = self._claim(
            template,
            {
                "next_due": next_due,
                "last_materialized_at": now,
                "occurrences_emitted": template.occurrences_emitted + 1,
                "updated_at": now,
            },
            occurrence=occurrence,
            entry=entry,
        )

        metrics_collector.occurrence_materialized()
        scheduler_logger.info(
            "occurrence_materialized",
            organization_id=template.organization_id,
            template_id=template.id,
            occurrence_id=occurrence.id,
            occurrence_number=occurrence_number,
            due_at=scheduled_for,
            next_due=next_due,
        )
        return occurrence

    @metrics_collector.time_operation("tick_duration_seconds")
    def process_due(self, organization_id: str, now: Optional[datetime] = None) -> TickReport:
        """
        Materialize every due template of an organization.

        Failures are isolated per template; the report lists what happened to each.
        """
        now = now or self.clock()
        report = TickReport(organization_id=organization_id, evaluated_at=now)

        for template in self.due_templates(organization_id, now):
            try:
                occurrence = self.materialize(template)
                report.materialized.append(occurrence.id)
            except ConcurrentClaimLost:
                report.claims_lost.append(template.id)
            except InvalidRule:
                report.invalid.append(template.id)
            except Exception as e:
                # StorageFailure or anything unexpected; retried on the next tick
                report.failed.append(template.id)
                logger.warning("Failed to create occurrence for template %s: %s", template.id, e)

        metrics_collector.increment_counter("ticks_total")
        if report.materialized or report.invalid or report.failed:
            scheduler_logger.info(
                "tick_completed",
                organization_id=organization_id,
                materialized=len(report.materialized),
                claims_lost=len(report.claims_lost),
                invalid=len(report.invalid),
                failed=len(report.failed),
            )
        return report

    # ==================== Lifecycle ====================

    def skip_next(self, organization_id: str, template_id: int, reason: Optional[str] = None) -> RecurringTemplate:
        """
        Drop the template's next occurrence without creating it.

        The occurrence number is consumed and recorded as skipped.

        Raises:
            NotFound, NotSchedulable, InvalidRule, ConcurrentClaimLost, StorageFailure
        """
        template = self.get_template(organization_id, template_id)
        self._ensure_schedulable(template)
        scheduled_for = template.next_due
        occurrence_number = template.occurrences_emitted + 1
        next_due = self._successor(template)
        now = self.clock()

        entry = HistoryEntry(
            template_id=template.id,
            occurrence_number=occurrence_number,
            scheduled_for=scheduled_for,
            skipped=True,
            skip_reason=reason,
            created_at=now,
        )
        updated, _ = self._claim(
            template,
            {
                "next_due": next_due,
                "occurrences_emitted": template.occurrences_emitted + 1,
                "updated_at": now,
            },
            entry=entry,
        )

        metrics_collector.occurrence_skipped()
        scheduler_logger.info(
            "occurrence_skipped",
            organization_id=organization_id,
            template_id=template_id,
            occurrence_number=occurrence_number,
            scheduled_for=scheduled_for,
            reason=reason,
            next_due=next_due,
        )
        return updated

    def _set_next_due(self, organization_id: str, template_id: int, next_due: Optional[datetime]) -> RecurringTemplate:
        """Overwrite next_due, re-reading the template if a concurrent write wins."""
        for attempt in range(LIFECYCLE_RETRIES):
            template = self.get_template(organization_id, template_id)
            if template.next_due == next_due:
                return template
            try:
                updated, _ = self._claim(template, {"next_due": next_due, "updated_at": self.clock()})
                return updated
            except ConcurrentClaimLost:
                if attempt == LIFECYCLE_RETRIES - 1:
                    raise
        raise AssertionError("unreachable")

    def pause(self, organization_id: str, template_id: int) -> RecurringTemplate:
        """Pause a recurring template (clears next_due). History is untouched."""
        template = self._set_next_due(organization_id, template_id, None)
        scheduler_logger.info("template_paused", organization_id=organization_id, template_id=template_id)
        return template

    def resume(
        self,
        organization_id: str,
        template_id: int,
        resume_from: Optional[datetime] = None,
    ) -> RecurringTemplate:
        """
        Resume a paused template at resume_from, or now.

        Occurrences missed while paused are not back-filled.
        """
        next_due = as_reference_time(resume_from) or self.clock()
        template = self._set_next_due(organization_id, template_id, next_due)
        scheduler_logger.info(
            "template_resumed",
            organization_id=organization_id,
            template_id=template_id,
            next_due=next_due,
        )
        return template

    # ==================== History ====================

    def history(self, organization_id: str, template_id: int) -> List[HistoryEntry]:
        """Recurrence history of a template, most recent occurrence number first."""
        self.get_template(organization_id, template_id)
        return self._read(lambda repo: repo.history(template_id, self.history_limit))

    def occurrences_of(self, organization_id: str, template_id: int) -> List[Occurrence]:
        """Occurrences created from a template, latest due date first."""
        self.get_template(organization_id, template_id)
        return self._read(lambda repo: repo.occurrences(template_id, self.history_limit))
