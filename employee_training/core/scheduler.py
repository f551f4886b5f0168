"""Background job scheduler for attendee reminders and search index rebuilds."""
import logging
from datetime import UTC, datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from employee_training.core.config import settings
from employee_training.search.index import EventSearchIndex
from employee_training.workflow.lifecycle import EventWorkflow

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler(timezone=UTC)

MONDAY = 0


async def send_reminders(workflow: EventWorkflow, index: EventSearchIndex, now: datetime | None = None) -> dict:
    """
    Remind attendees of upcoming events.

    Every day, events starting tomorrow get a reminder. On Mondays, events
    starting in the coming week get one too (an event starting tomorrow is
    only reminded once). A failure for one event is logged and the sweep
    moves on.

    Returns dict with sweep statistics.
    """
    now = now or datetime.now(UTC)
    stats = {"sent": 0, "failed": 0}

    await index.rebuild()
    due = [(doc, "daily") for doc in await index.day_before_reminders()]
    if now.weekday() == MONDAY:
        seen = {(doc.team_id, doc.event_id) for doc, _ in due}
        due += [
            (doc, "weekly")
            for doc in await index.week_before_reminders()
            if (doc.team_id, doc.event_id) not in seen
        ]

    for doc, period in due:
        try:
            await workflow.send_reminder(doc.team_id, doc.event_id, period=period)
            stats["sent"] += 1
        except Exception:
            logger.exception(f"Reminder failed for event {doc.event_id} in team {doc.team_id}")
            stats["failed"] += 1

    logger.info(f"Reminder sweep completed: {stats}")
    return stats


def build_workflow() -> EventWorkflow:
    """Workflow wired the same way as for requests, outside a request."""
    from employee_training.core import dependencies

    db = dependencies.get_engine()
    directory = dependencies.get_directory()
    return EventWorkflow(
        dependencies.get_event_store(db),
        dependencies.get_calendar(directory),
        dependencies.get_search_index(db),
        dependencies.get_notifications(db),
        directory,
        directory,
        categories=dependencies.get_category_store(db),
    )


async def reminder_job():
    """Daily reminder sweep."""
    try:
        workflow = build_workflow()
        await send_reminders(workflow, workflow.index)
    except Exception as e:
        logger.error(f"Reminder sweep failed: {e}")


def start_scheduler():
    """Start the background scheduler."""
    scheduler.add_job(
        reminder_job,
        trigger=CronTrigger(hour=settings.reminder_hour_utc, minute=0, timezone=UTC),
        id="attendee_reminders",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(f"Scheduler started, sending reminders daily at {settings.reminder_hour_utc:02d}:00 UTC")


def shutdown_scheduler():
    """Graceful shutdown."""
    scheduler.shutdown(wait=False)
    logger.info("Scheduler shut down")
