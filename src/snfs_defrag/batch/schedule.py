"""Business-hours window that keeps IO-heavy defragmentation off production hours."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, time

from snfs_defrag.config import DEFAULT_BUSINESS_WEEKDAYS, ScheduleSettings


@dataclass(slots=True, frozen=True)
class ScheduleWindow:
    """Wall-clock position relative to the business day; seconds are signed."""

    is_business_day: bool
    seconds_until_start: float | None
    seconds_until_end: float


@dataclass(slots=True, frozen=True)
class BusinessHours:
    """Business day boundaries, as wall-clock times in the zone of ``now``.

    Naive datetimes are read as system local time.

    ``start=None`` disables the start-of-day check: any time before ``end`` on a
    business day counts as inside business hours.
    """

    start: time | None = time(8, 0)
    end: time = time(17, 0)
    weekdays: frozenset[int] = DEFAULT_BUSINESS_WEEKDAYS

    @classmethod
    def from_settings(cls, settings: ScheduleSettings) -> BusinessHours:
        return cls(
            start=settings.business_day_start,
            end=settings.business_day_end,
            weekdays=settings.business_weekdays,
        )

    def window(self, now: datetime) -> ScheduleWindow:
        return ScheduleWindow(
            is_business_day=self.is_business_day(now),
            seconds_until_start=(
                _seconds_until(now, self.start) if self.start is not None else None
            ),
            seconds_until_end=self.seconds_until_end_of_day(now),
        )

    def is_business_day(self, now: datetime) -> bool:
        return now.weekday() in self.weekdays

    def seconds_until_end_of_day(self, now: datetime) -> float:
        """Signed seconds from ``now`` to the end boundary on the same date."""

        return _seconds_until(now, self.end)

    def sleep_seconds(self, now: datetime) -> float:
        """Seconds to sleep before dispatching more work; zero outside business hours."""

        window = self.window(now)
        if not window.is_business_day:
            return 0.0
        if window.seconds_until_start is not None and window.seconds_until_start > 0:
            return 0.0
        return max(0.0, window.seconds_until_end)


def _seconds_until(now: datetime, boundary: time) -> float:
    # Compare absolute instants so a DST change before the boundary is counted.
    target = datetime.combine(now.date(), boundary, tzinfo=now.tzinfo)
    return (target.astimezone(UTC) - now.astimezone(UTC)).total_seconds()
