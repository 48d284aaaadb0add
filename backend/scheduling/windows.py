"""Expansion of recurring weekly windows into concrete slot start times."""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo

from backend.scheduling.intervals import local_to_utc, minutes_of_day, sunday_based_weekday


@dataclass(frozen=True)
class WeeklyWindow:
    weekday: int
    start_time: time
    end_time: time

    @classmethod
    def from_model(cls, window) -> 'WeeklyWindow':
        return cls(weekday=window.weekday, start_time=window.start_time, end_time=window.end_time)

    def contains(self, wall_time: time) -> bool:
        return minutes_of_day(self.start_time) <= minutes_of_day(wall_time) < minutes_of_day(self.end_time)

    def on_grid(self, wall_time: time, slot_minutes: int) -> bool:
        """Whether ``wall_time`` is a whole number of slots after the window opens."""
        if wall_time.second or wall_time.microsecond:
            return False
        return (minutes_of_day(wall_time) - minutes_of_day(self.start_time)) % slot_minutes == 0

    def admits(self, wall_time: time, duration_minutes: int, slot_minutes: int) -> bool:
        """Whether a slot starting at ``wall_time`` lies on this window's grid and fits inside it."""
        if not self.contains(wall_time) or not self.on_grid(wall_time, slot_minutes):
            return False
        return minutes_of_day(wall_time) + duration_minutes <= minutes_of_day(self.end_time)


def iterate_days(start_date: date, end_date: date) -> Iterator[date]:
    current = start_date
    while current <= end_date:
        yield current
        current += timedelta(days=1)


def expand_window(day: date, window: WeeklyWindow, slot_minutes: int, zone: tzinfo) -> Iterator[datetime]:
    """Yield naive UTC slot starts of ``window`` on ``day``; a partial trailing slot is dropped."""
    cursor = minutes_of_day(window.start_time)
    window_end = minutes_of_day(window.end_time)

    while cursor + slot_minutes <= window_end:
        wall_time = time(cursor // 60, cursor % 60)
        yield local_to_utc(day, wall_time, zone)
        cursor += slot_minutes


def expand_windows(
    start_date: date,
    end_date: date,
    windows: Iterable[WeeklyWindow],
    slot_minutes: int,
    zone: tzinfo,
) -> list[datetime]:
    """Candidate slot starts for every day in ``[start_date, end_date]``.

    The result is chronological. Slots produced by abutting or overlapping
    windows are kept side by side, not merged.
    """
    windows_by_day: dict[int, list[WeeklyWindow]] = {}
    for window in windows:
        windows_by_day.setdefault(window.weekday, []).append(window)

    slot_starts: list[datetime] = []
    for day in iterate_days(start_date, end_date):
        day_slots: list[datetime] = []
        for window in windows_by_day.get(sunday_based_weekday(day), []):
            day_slots.extend(expand_window(day, window, slot_minutes, zone))
        slot_starts.extend(sorted(day_slots))

    return slot_starts
