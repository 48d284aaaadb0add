"""Half-open interval arithmetic and scheduling-zone conversions.

All stored timestamps are naive UTC. Weekly windows are wall-clock times in
the scheduling zone, so every comparison between the two goes through
``to_utc`` / ``to_local`` below.
"""

from datetime import date, datetime, time, timezone, tzinfo


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Return True unless ``[a_start, a_end)`` and ``[b_start, b_end)`` are disjoint."""
    return not (a_end <= b_start or a_start >= b_end)


def to_utc(value: datetime, zone: tzinfo) -> datetime:
    """Normalize to naive UTC. Naive input is read as wall clock in ``zone``."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=zone)
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def to_local(value: datetime, zone: tzinfo) -> datetime:
    """Convert a naive UTC timestamp to an aware datetime in ``zone``."""
    return value.replace(tzinfo=timezone.utc).astimezone(zone)


def local_to_utc(day: date, wall_time: time, zone: tzinfo) -> datetime:
    return to_utc(datetime.combine(day, wall_time), zone)


def minutes_of_day(value: time) -> int:
    return value.hour * 60 + value.minute


def sunday_based_weekday(day: date) -> int:
    """0=Sunday .. 6=Saturday, the numbering used by availability windows."""
    return (day.weekday() + 1) % 7


def isoformat_utc(value: datetime) -> str:
    return value.replace(tzinfo=timezone.utc).isoformat().replace('+00:00', 'Z')
