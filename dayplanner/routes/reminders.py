"""
Day Planner Backend — Reminder Trigger Route
=============================================

What:  GET /api/v1/set-reminder runs one pass of the reminder job.
Who:   An external scheduler (cron, platform scheduler) hitting the URL.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from dayplanner.database import get_db_session
from dayplanner.dependencies import require_job_token
from dayplanner.schemas.user import ErrorResponse, ReminderDispatchResponse
from dayplanner.services.reminder_service import reminder_service

router = APIRouter(prefix="/api/v1", tags=["Reminders"])


@router.get(
    "/set-reminder",
    response_model=ReminderDispatchResponse,
    dependencies=[Depends(require_job_token)],
    responses={
        401: {"description": "Wrong X-Job-Token", "model": ErrorResponse},
        503: {"description": "CMS unavailable", "model": ErrorResponse},
    },
    summary="Email users about due reminders",
)
async def set_reminder(db: AsyncSession = Depends(get_db_session)) -> ReminderDispatchResponse:
    return await reminder_service.dispatch_due_reminders(db)
