"""
Polling worker for the recurrence engine.

Every tick finds organizations with due recurring templates and materializes
their occurrences. Several workers may run at once against the same database.
"""

import asyncio
import logging
from typing import Optional

from recurrence_engine.db.config import LOG_LEVEL, RECURRENCE_TICK_SECONDS, engine
from recurrence_engine.db.init import init_db
from recurrence_engine.schemas.recurring_template import TickReport
from recurrence_engine.services.recurring_task_service import RecurringTaskService

logger = logging.getLogger(__name__)


def run_tick(service: RecurringTaskService) -> list[TickReport]:
    """Process every organization that has due work at the current instant."""
    now = service.clock()
    reports = []
    for organization_id in service.organizations_with_due_work(now):
        try:
            reports.append(service.process_due(organization_id, now))
        except Exception as e:
            logger.error("Recurring tick failed for organization %s: %s", organization_id, e)
    return reports


async def run_forever(
    service: RecurringTaskService,
    tick_seconds: float = RECURRENCE_TICK_SECONDS,
    max_ticks: Optional[int] = None,
):
    """Run ticks until cancelled, or until max_ticks have run."""
    logger.info("Starting recurring task worker (tick every %ss)", tick_seconds)
    ticks = 0
    while max_ticks is None or ticks < max_ticks:
        try:
            reports = await asyncio.to_thread(run_tick, service)
            created = sum(report.occurrences_created for report in reports)
            if created:
                logger.info("Created %d recurring task occurrence(s)", created)
        except Exception as e:
            logger.error("Error in recurring task worker: %s", e)
        ticks += 1
        if max_ticks is None or ticks < max_ticks:
            await asyncio.sleep(tick_seconds)


async def main():
    """Main entry point for the recurring task worker."""
    logging.basicConfig(level=LOG_LEVEL)
    init_db()
    await run_forever(RecurringTaskService(engine))


if __name__ == "__main__":
    asyncio.run(main())
