"""
Day Planner Backend — Reminder Dispatch Job
============================================

What:  Runs one reminder pass outside the web server.
How:   Opens its own database session, calls ReminderService, commits, and
       closes the CMS client, redis pool and engine before exiting.
Who:   The `dayplanner-reminders` console script, scheduled by cron:

    */5 * * * * dayplanner-reminders

Exit codes: 0 on a completed pass (even with per-reminder failures),
1 when the pass could not run at all (CMS or database unavailable).
"""

import asyncio
import logging
import sys

from dayplanner.cache import close_redis
from dayplanner.database import async_session_factory, dispose_engine
from dayplanner.exceptions import DayPlannerError
from dayplanner.logging_setup import setup_logging
from dayplanner.schemas.user import ReminderDispatchResponse
from dayplanner.services.cms_client import sanity_client
from dayplanner.services.reminder_service import reminder_service

logger = logging.getLogger(__name__)


async def run_once() -> ReminderDispatchResponse:
    try:
        async with async_session_factory() as session:
            result = await reminder_service.dispatch_due_reminders(session)
            await session.commit()
            return result
    finally:
        await sanity_client.aclose()
        await close_redis()
        await dispose_engine()


def main() -> None:
    setup_logging()
    try:
        result = asyncio.run(run_once())
    except KeyboardInterrupt:
        logger.info("Reminder job interrupted")
        sys.exit(130)
    except DayPlannerError as e:
        logger.error("Reminder job failed: %s", e.message)
        sys.exit(1)

    logger.info(
        "%s (sent=%d skipped=%d failed=%d)",
        result.message,
        result.sent,
        result.skipped,
        result.failed,
    )


if __name__ == "__main__":
    main()
