"""Shared fixtures: a controllable clock and ledgers bound to it."""

from datetime import datetime, timedelta

import pytest

from learnhub.models.progress import ProgressRecord
from learnhub.progress.calendar import monday_of
from learnhub.progress.ledger import ProgressLedger

# A Wednesday, so the week window runs Mon 2026-10-19 .. Sun 2026-10-25.
FIXED_NOW = datetime(2026, 10, 21, 10, 0, 0)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: int = 0, hours: int = 0) -> None:
        self.now += timedelta(days=days, hours=hours)


@pytest.fixture
def clock():
    return FakeClock(FIXED_NOW)


@pytest.fixture
def record(clock):
    return ProgressRecord(week_start_date=monday_of(clock().date()))


@pytest.fixture
def ledger(record, clock):
    return ProgressLedger(record, clock=clock)
