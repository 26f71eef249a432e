"""
Injectable time source.

Engines never read the wall clock; services, tasks and the migration
orchestrator take a ``Clock`` so that monthly-reset decisions, migration
timestamps and report file names can be pinned in tests.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

_EPOCH_DEFAULT = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """Returns timezone-aware UTC datetimes."""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock that only moves when told to.

    Naive datetimes passed in are taken to be UTC.
    """

    def __init__(self, start: datetime | None = None):
        self._now = _as_utc(start or _EPOCH_DEFAULT)

    def now(self) -> datetime:
        return self._now

    def set_time(self, moment: datetime) -> None:
        self._now = _as_utc(moment)

    def advance(self, step: timedelta | float = 1) -> datetime:
        """Move forward by ``step`` (a timedelta, or seconds) and return the new time."""
        if not isinstance(step, timedelta):
            step = timedelta(seconds=step)
        if step < timedelta(0):
            raise ValueError("DeterministicClock cannot move backwards")
        self._now += step
        return self._now


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)
