# WORKFLOW: Clock abstraction for reproducible document timestamps.
# Used by: Scenario processors, transformation service, tests
# Classes:
# 1. Clock - Protocol supplying the current instant and date
# 2. SystemClock - Wall-clock implementation used in production
# 3. FixedClock - Frozen instant for tests and reproducible runs

from datetime import date, datetime
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        ...


class SystemClock:
    """Clock backed by the local system time."""

    def now(self) -> datetime:
        return datetime.now()

    def today(self) -> date:
        return date.today()


class FixedClock:
    """Clock that always reports the same instant."""

    def __init__(self, instant: datetime):
        self.instant = instant

    def now(self) -> datetime:
        return self.instant

    def today(self) -> date:
        return self.instant.date()


system_clock = SystemClock()
