"""Day and week arithmetic for bucketing activity.

All functions work at calendar-day granularity on the local wall clock.
Pass ``now`` to evaluate against a fixed instant instead of the current time.
"""

from datetime import date, datetime, timedelta

from learnhub.models.progress import DailyBucket, ProgressRecord

WEEKDAY_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
MONTH_LABELS = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]


def today(now: datetime | None = None) -> date:
    return (now or datetime.now()).date()


def yesterday(now: datetime | None = None) -> date:
    return today(now) - timedelta(days=1)


def monday_of(day: date) -> date:
    """Monday of the week containing ``day`` (Sunday belongs to the week before)."""
    return day - timedelta(days=day.weekday())


def week_start(now: datetime | None = None) -> date:
    return monday_of(today(now))


def bucket_for(record: ProgressRecord, day: date) -> DailyBucket:
    """Return the bucket for ``day``, inserting an empty one if missing."""
    bucket = record.daily_activity.get(day)
    if bucket is None:
        bucket = DailyBucket(date=day)
        record.daily_activity[day] = bucket
    return bucket


def last_n_days(n: int, end: date) -> list[date]:
    """The last ``n`` calendar days ending on ``end``, oldest first."""
    return [end - timedelta(days=offset) for offset in range(n - 1, -1, -1)]


def last_n_months(n: int, end: date) -> list[tuple[int, int]]:
    """The last ``n`` (year, month) pairs ending with the month of ``end``, oldest first."""
    index = end.year * 12 + (end.month - 1)
    months = []
    for offset in range(n - 1, -1, -1):
        year, month0 = divmod(index - offset, 12)
        months.append((year, month0 + 1))
    return months


def weekday_label(day: date) -> str:
    return WEEKDAY_LABELS[day.weekday()]


def month_label(month: int) -> str:
    return MONTH_LABELS[month - 1]
