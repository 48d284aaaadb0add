"""Slot conflict checks over in-memory snapshots of a counselor's schedule.

Nothing here touches the database: callers load a ``CounselorSchedule`` for
the range they care about and ask whether candidate slots are free.
"""

import enum
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, tzinfo

from backend.core.errors import ConflictError
from backend.scheduling.intervals import minutes_of_day, overlaps, sunday_based_weekday, to_local
from backend.scheduling.windows import WeeklyWindow, expand_windows


@dataclass(frozen=True)
class BusyInterval:
    start: datetime
    end: datetime

    @classmethod
    def for_appointment(cls, scheduled_at: datetime, duration_minutes: int) -> 'BusyInterval':
        return cls(start=scheduled_at, end=scheduled_at + timedelta(minutes=duration_minutes))


class SlotRejection(enum.Enum):
    OUTSIDE_AVAILABILITY = 'Selected time is outside counselor availability'
    TIME_OFF = 'Counselor is on time-off during this slot'
    COUNSELOR_BUSY = 'Counselor is not available at this time'
    STUDENT_BUSY = 'You already have an appointment overlapping this time'


@dataclass
class CounselorSchedule:
    slot_minutes: int
    windows: Sequence[WeeklyWindow] = field(default_factory=tuple)
    time_off: Sequence[BusyInterval] = field(default_factory=tuple)
    appointments: Sequence[BusyInterval] = field(default_factory=tuple)


def _any_overlap(start: datetime, end: datetime, intervals: Iterable[BusyInterval]) -> bool:
    return any(overlaps(start, end, interval.start, interval.end) for interval in intervals)


def is_slot_aligned(windows: Iterable[WeeklyWindow], slot_start: datetime, zone: tzinfo, slot_minutes: int) -> bool:
    """Whether ``slot_start`` sits on a slot boundary.

    Inside a window the grid starts at the window's opening time, the same
    grid listing uses. Elsewhere the grid starts at midnight.
    """
    local_start = to_local(slot_start, zone)
    if local_start.second or local_start.microsecond:
        return False

    weekday = sunday_based_weekday(local_start.date())
    wall_time = local_start.time()
    containing = [window for window in windows if window.weekday == weekday and window.contains(wall_time)]
    if containing:
        return any(window.on_grid(wall_time, slot_minutes) for window in containing)
    return minutes_of_day(wall_time) % slot_minutes == 0


def find_conflict(
    schedule: CounselorSchedule,
    slot_start: datetime,
    zone: tzinfo,
    *,
    duration_minutes: int | None = None,
    student_appointments: Iterable[BusyInterval] | None = None,
) -> SlotRejection | None:
    """Return the first reason ``slot_start`` cannot be booked, or None.

    ``slot_start`` is naive UTC. The student check only runs when
    ``student_appointments`` is given, which is the booking path.
    """
    duration = duration_minutes or schedule.slot_minutes
    slot_end = slot_start + timedelta(minutes=duration)

    local_start = to_local(slot_start, zone)
    weekday = sunday_based_weekday(local_start.date())
    wall_time = local_start.time()
    if not any(
        window.weekday == weekday and window.admits(wall_time, duration, schedule.slot_minutes)
        for window in schedule.windows
    ):
        return SlotRejection.OUTSIDE_AVAILABILITY

    if _any_overlap(slot_start, slot_end, schedule.time_off):
        return SlotRejection.TIME_OFF

    if _any_overlap(slot_start, slot_end, schedule.appointments):
        return SlotRejection.COUNSELOR_BUSY

    if student_appointments is not None and _any_overlap(slot_start, slot_end, student_appointments):
        return SlotRejection.STUDENT_BUSY

    return None


def ensure_slot_available(
    schedule: CounselorSchedule,
    slot_start: datetime,
    zone: tzinfo,
    *,
    duration_minutes: int | None = None,
    student_appointments: Iterable[BusyInterval] | None = None,
) -> None:
    rejection = find_conflict(
        schedule,
        slot_start,
        zone,
        duration_minutes=duration_minutes,
        student_appointments=student_appointments,
    )
    if rejection is not None:
        raise ConflictError(rejection.value)


def list_open_slots(schedule: CounselorSchedule, start_date: date, end_date: date, zone: tzinfo) -> list[datetime]:
    """Slot starts in ``[start_date, end_date]`` that pass the window, time-off and booking checks."""
    candidates = expand_windows(start_date, end_date, schedule.windows, schedule.slot_minutes, zone)
    return [slot_start for slot_start in candidates if find_conflict(schedule, slot_start, zone) is None]
