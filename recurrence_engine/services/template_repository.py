"""
Template Store and History Log data access.

Scheduling columns of a template change only through compare_and_swap_schedule,
an UPDATE guarded on the (next_due, occurrences_emitted) pair read by the caller.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, or_, update
from sqlmodel import Session, select

from recurrence_engine.models.occurrence import Occurrence
from recurrence_engine.models.recurrence_history import HistoryEntry
from recurrence_engine.models.recurring_template import RecurringTemplate

SCHEDULE_COLUMNS = frozenset({"next_due", "occurrences_emitted", "last_materialized_at", "updated_at"})


def _due_clause(now: datetime):
    return and_(
        RecurringTemplate.next_due.is_not(None),
        RecurringTemplate.next_due <= now,
        or_(RecurringTemplate.end_at.is_(None), RecurringTemplate.next_due <= RecurringTemplate.end_at),
        or_(
            RecurringTemplate.occurrence_cap.is_(None),
            RecurringTemplate.occurrences_emitted < RecurringTemplate.occurrence_cap,
        ),
    )


class TemplateRepository:
    """Session-scoped access to templates, occurrences and history."""

    def __init__(self, session: Session):
        self.session = session

    def add_template(self, template: RecurringTemplate) -> RecurringTemplate:
        self.session.add(template)
        self.session.flush()
        return template

    def get_by_id(self, template_id: int) -> Optional[RecurringTemplate]:
        return self.session.get(RecurringTemplate, template_id)

    def get(self, organization_id: str, template_id: int) -> Optional[RecurringTemplate]:
        statement = select(RecurringTemplate).where(
            RecurringTemplate.id == template_id,
            RecurringTemplate.organization_id == organization_id,
        )
        return self.session.exec(statement).first()

    def list_for_organization(self, organization_id: str) -> List[RecurringTemplate]:
        statement = (
            select(RecurringTemplate)
            .where(RecurringTemplate.organization_id == organization_id)
            .order_by(RecurringTemplate.title, RecurringTemplate.id)
        )
        return list(self.session.exec(statement).all())

    def due(self, organization_id: str, now: datetime) -> List[RecurringTemplate]:
        statement = (
            select(RecurringTemplate)
            .where(RecurringTemplate.organization_id == organization_id, _due_clause(now))
            .order_by(RecurringTemplate.next_due, RecurringTemplate.id)
        )
        return list(self.session.exec(statement).all())

    def organizations_with_due(self, now: datetime) -> List[str]:
        statement = (
            select(RecurringTemplate.organization_id)
            .where(_due_clause(now))
            .distinct()
            .order_by(RecurringTemplate.organization_id)
        )
        return list(self.session.exec(statement).all())

    def compare_and_swap_schedule(
        self,
        template_id: int,
        expected_next_due: Optional[datetime],
        expected_occurrences_emitted: int,
        **changes,
    ) -> bool:
        """
        Apply scheduling changes only if the template still holds the expected state.

        Returns:
            True if the row was updated, False if another writer got there first
        """
        unknown = set(changes) - SCHEDULE_COLUMNS
        if unknown:
            raise ValueError(f"Not a scheduling column: {', '.join(sorted(unknown))}")

        if expected_next_due is None:
            next_due_matches = RecurringTemplate.next_due.is_(None)
        else:
            next_due_matches = RecurringTemplate.next_due == expected_next_due

        statement = (
            update(RecurringTemplate)
            .where(
                RecurringTemplate.id == template_id,
                next_due_matches,
                RecurringTemplate.occurrences_emitted == expected_occurrences_emitted,
            )
            .values(**changes)
            .execution_options(synchronize_session=False)
        )
        result = self.session.connection().execute(statement)
        return result.rowcount == 1

    def add_occurrence(self, occurrence: Occurrence) -> Occurrence:
        self.session.add(occurrence)
        self.session.flush()
        return occurrence

    def occurrences(self, template_id: int, limit: int) -> List[Occurrence]:
        statement = (
            select(Occurrence)
            .where(Occurrence.template_id == template_id)
            .order_by(Occurrence.due_at.desc(), Occurrence.id.desc())
            .limit(limit)
        )
        return list(self.session.exec(statement).all())

    def append_history(self, entry: HistoryEntry) -> HistoryEntry:
        self.session.add(entry)
        self.session.flush()
        return entry

    def history(self, template_id: int, limit: int) -> List[HistoryEntry]:
        statement = (
            select(HistoryEntry)
            .where(HistoryEntry.template_id == template_id)
            .order_by(HistoryEntry.occurrence_number.desc())
            .limit(limit)
        )
        return list(self.session.exec(statement).all())
