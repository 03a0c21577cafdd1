"""
Day Planner Backend — Reminder Service
=======================================

What:  One pass of the reminder job: find due, unsent reminders in the CMS
       and email each addressee about the referenced event.
How:   A single sequential loop. Each reminder is handled in isolation; a
       failure on one is logged and the loop moves on.
Who:   GET /api/v1/set-reminder and the `dayplanner-reminders` console script.

Per-reminder flow:
    reminder ──▶ event ref present? ──▶ event exists? ──▶ user exists?
                     │ no                  │ no              │ no
                     ▼                     ▼                 ▼
                   skip                  skip              skip
                                                             │ yes
                                 send email ──▶ patch {sent: true}
                                     │ error          │ error
                                     ▼                ▼
                                   failed           failed

    A reminder is only marked sent after its email went out, so a failed
    pass leaves it for the next run. A patch failure after a successful
    email means the next run will email again (at-least-once delivery).
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from dayplanner.config import settings
from dayplanner.exceptions import DayPlannerError
from dayplanner.schemas.user import ReminderDispatchResponse
from dayplanner.services.cms_client import result_list, sanity_client
from dayplanner.services.mail_service import mail_service
from dayplanner.services.user_service import user_service

logger = logging.getLogger(__name__)

DUE_REMINDERS_QUERY = '*[_type == "reminder" && sent == false && reminderTime <= now()]'
EVENT_BY_ID_QUERY = '*[_type == "event" && _id == $eventId][0]'


def build_event_link(event_id: str) -> str:
    return f"{settings.frontend_url.rstrip('/')}/events/{event_id}"


def event_reference(reminder: Dict[str, Any]) -> Optional[str]:
    """Returns eventId._ref, or None for a missing/malformed reference."""
    ref = reminder.get("eventId")
    if not isinstance(ref, dict):
        return None
    value = ref.get("_ref")
    return value if isinstance(value, str) and value else None


class ReminderService:
    """Reminder dispatch. Stateless; collaborators are module singletons."""

    async def dispatch_due_reminders(self, db: AsyncSession) -> ReminderDispatchResponse:
        """
        Runs one dispatch pass.

        Raises:
            CMSServiceError / CircuitBreakerOpenError: the initial due-reminder
                query failed; nothing was processed.
        """
        reminders = result_list(await sanity_client.fetch(DUE_REMINDERS_QUERY))

        if not reminders:
            logger.info("No reminders to send")
            return ReminderDispatchResponse(message="No reminders to send")

        logger.info("Processing %d due reminder(s)", len(reminders))
        sent = skipped = failed = 0

        for reminder in reminders:
            outcome = await self._process_reminder(db, reminder)
            if outcome == "sent":
                sent += 1
            elif outcome == "skipped":
                skipped += 1
            else:
                failed += 1

        logger.info("Reminder pass done: sent=%d skipped=%d failed=%d", sent, skipped, failed)
        return ReminderDispatchResponse(
            message="Reminders processed successfully",
            sent=sent,
            skipped=skipped,
            failed=failed,
        )

    async def _process_reminder(self, db: AsyncSession, reminder: Dict[str, Any]) -> str:
        """Returns 'sent', 'skipped' or 'failed'. Only lookup errors propagate."""
        reminder_id = reminder.get("_id")

        event_id = event_reference(reminder)
        if not reminder_id or event_id is None:
            logger.warning("Invalid event reference in reminder ID: %s", reminder_id)
            return "skipped"

        try:
            event = await sanity_client.fetch(EVENT_BY_ID_QUERY, {"eventId": event_id})
        except DayPlannerError as e:
            logger.error("Could not load event %s for reminder %s: %s", event_id, reminder_id, e.message)
            return "failed"
        if not event:
            logger.warning("Event not found for reminder ID: %s", reminder_id)
            return "skipped"

        user_id = reminder.get("userId")
        user = await user_service.get_user_by_id(db, user_id)
        if user is None:
            logger.warning("User not found with ID: %s", user_id)
            return "skipped"

        data = {
            "user": {"name": user.name},
            "event": event,
            "eventLink": build_event_link(event.get("_id", event_id)),
        }

        try:
            await mail_service.send_mail(
                template="reminder.html",
                email=user.email,
                subject=f"Reminder: {event.get('title', 'Upcoming event')}",
                data=data,
            )
            await sanity_client.patch_set(reminder_id, {"sent": True})
        except DayPlannerError as e:
            logger.error("Failed to send email to %s: %s", user.email, e.message)
            return "failed"

        logger.info("Reminder %s sent to %s", reminder_id, user.email)
        return "sent"


reminder_service = ReminderService()
