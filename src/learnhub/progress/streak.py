"""Consecutive-day streak tracking."""

from datetime import date, timedelta

import structlog

from learnhub.models.progress import ProgressRecord

logger = structlog.get_logger()


def advance_streak(record: ProgressRecord, today: date) -> int:
    """Count ``today`` toward the streak and return the resulting streak.

    Repeated calls on the same day leave the streak untouched. Activity on
    the day after ``last_active_date`` extends it; any longer gap (or no
    previous activity at all) starts a new streak of one.
    """
    last_active = record.last_active_date
    if last_active == today:
        return record.current_streak

    if last_active == today - timedelta(days=1):
        record.current_streak += 1
    else:
        if record.current_streak > 1:
            logger.info(
                "streak_broken",
                previous_streak=record.current_streak,
                last_active=str(last_active),
            )
        record.current_streak = 1
    record.last_active_date = today
    return record.current_streak


def is_streak_alive(record: ProgressRecord, today: date) -> bool:
    """True if activity today would still extend the current streak."""
    if record.last_active_date is None or record.current_streak == 0:
        return False
    return (today - record.last_active_date).days <= 1
