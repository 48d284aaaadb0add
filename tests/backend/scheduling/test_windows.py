from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from backend.scheduling.windows import WeeklyWindow, expand_window, expand_windows

UTC = ZoneInfo('UTC')
MONDAY = date(2030, 1, 7)


def at(hour: int, minute: int = 0, day: date = MONDAY) -> datetime:
    return datetime.combine(day, time(hour, minute))


def test_expand_window_fills_the_window_with_whole_slots() -> None:
    window = WeeklyWindow(weekday=1, start_time=time(9, 0), end_time=time(12, 0))

    slots = list(expand_window(MONDAY, window, 30, UTC))

    assert slots == [at(9), at(9, 30), at(10), at(10, 30), at(11), at(11, 30)]


def test_expand_window_drops_partial_trailing_slot() -> None:
    window = WeeklyWindow(weekday=1, start_time=time(9, 0), end_time=time(10, 45))

    assert list(expand_window(MONDAY, window, 30, UTC)) == [at(9), at(9, 30), at(10)]


def test_expand_window_yields_nothing_when_slot_is_longer_than_window() -> None:
    window = WeeklyWindow(weekday=1, start_time=time(9, 0), end_time=time(9, 45))

    assert list(expand_window(MONDAY, window, 60, UTC)) == []


def test_expand_windows_only_uses_matching_weekdays() -> None:
    windows = [
        WeeklyWindow(weekday=1, start_time=time(9, 0), end_time=time(10, 0)),
        WeeklyWindow(weekday=3, start_time=time(14, 0), end_time=time(15, 0)),
    ]

    slots = expand_windows(date(2030, 1, 6), date(2030, 1, 12), windows, 60, UTC)

    assert slots == [at(9), at(14, day=date(2030, 1, 9))]


def test_expand_windows_keeps_abutting_windows_separate() -> None:
    windows = [
        WeeklyWindow(weekday=1, start_time=time(10, 0), end_time=time(11, 0)),
        WeeklyWindow(weekday=1, start_time=time(9, 0), end_time=time(10, 0)),
    ]

    assert expand_windows(MONDAY, MONDAY, windows, 60, UTC) == [at(9), at(10)]


def test_expand_windows_is_chronological_and_not_deduplicated() -> None:
    windows = [
        WeeklyWindow(weekday=1, start_time=time(9, 0), end_time=time(11, 0)),
        WeeklyWindow(weekday=1, start_time=time(10, 0), end_time=time(12, 0)),
    ]

    assert expand_windows(MONDAY, MONDAY, windows, 60, UTC) == [at(9), at(10), at(10), at(11)]


def test_expand_windows_converts_wall_clock_to_utc() -> None:
    windows = [WeeklyWindow(weekday=1, start_time=time(9, 0), end_time=time(10, 0))]

    slots = expand_windows(MONDAY, MONDAY, windows, 30, ZoneInfo('Asia/Kolkata'))

    assert slots == [at(3, 30), at(4)]


def test_window_admits_only_grid_aligned_slots_that_fit() -> None:
    window = WeeklyWindow(weekday=1, start_time=time(9, 0), end_time=time(12, 0))

    assert window.admits(time(9, 0), 30, 30)
    assert window.admits(time(11, 30), 30, 30)
    assert not window.admits(time(9, 15), 30, 30)
    assert not window.admits(time(12, 0), 30, 30)
    assert not window.admits(time(8, 30), 30, 30)
    assert not window.admits(time(11, 30), 60, 30)
    assert not window.admits(time(9, 0, 30), 30, 30)
