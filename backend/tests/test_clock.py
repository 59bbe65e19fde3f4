from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from pulse.planner.clock import (
    FixedClock,
    SystemClock,
    at_hour,
    generate_id,
    intervals_overlap,
    minutes_between,
    round_up,
    same_day,
)


T0 = datetime(2026, 10, 19, 10, 0, tzinfo=timezone.utc)


def test_fixed_clock_advances_and_sets() -> None:
    clock = FixedClock(T0)
    assert clock.now() == T0

    assert clock.advance(minutes=95) == T0 + timedelta(minutes=95)
    clock.set(datetime(2026, 10, 20, 8, 0))

    assert clock.now() == datetime(2026, 10, 20, 8, 0, tzinfo=timezone.utc)


def test_fixed_clock_assumes_utc_for_naive_instants() -> None:
    clock = FixedClock(datetime(2026, 10, 19, 10, 0))
    assert clock.now().tzinfo is timezone.utc


def test_system_clock_accepts_zone_names() -> None:
    clock = SystemClock("Europe/Berlin")
    assert clock.now().tzinfo is not None
    assert str(clock.tz) == "Europe/Berlin"


def test_half_open_intervals_that_touch_do_not_overlap() -> None:
    a_end = T0 + timedelta(minutes=30)
    assert not intervals_overlap(T0, a_end, a_end, a_end + timedelta(minutes=30))
    assert intervals_overlap(T0, a_end, a_end - timedelta(minutes=1), a_end + timedelta(minutes=30))


@pytest.mark.parametrize(
    "instant, step, expected",
    [
        (datetime(2026, 10, 19, 10, 0, tzinfo=timezone.utc), 5, datetime(2026, 10, 19, 10, 0, tzinfo=timezone.utc)),
        (datetime(2026, 10, 19, 10, 1, tzinfo=timezone.utc), 5, datetime(2026, 10, 19, 10, 5, tzinfo=timezone.utc)),
        (datetime(2026, 10, 19, 10, 4, 30, tzinfo=timezone.utc), 5, datetime(2026, 10, 19, 10, 5, tzinfo=timezone.utc)),
        (datetime(2026, 10, 19, 10, 50, tzinfo=timezone.utc), 15, datetime(2026, 10, 19, 11, 0, tzinfo=timezone.utc)),
        (datetime(2026, 10, 19, 23, 58, tzinfo=timezone.utc), 5, datetime(2026, 10, 20, 0, 0, tzinfo=timezone.utc)),
    ],
)
def test_round_up(instant: datetime, step: int, expected: datetime) -> None:
    assert round_up(instant, step) == expected


def test_at_hour_and_same_day() -> None:
    assert at_hour(T0, 9) == datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)
    assert at_hour(T0, 24) == datetime(2026, 10, 20, 0, 0, tzinfo=timezone.utc)
    assert same_day(T0, T0 + timedelta(hours=13))
    assert not same_day(T0, T0 + timedelta(hours=14))


def test_minutes_between_and_generated_ids() -> None:
    assert minutes_between(T0, T0 + timedelta(minutes=95)) == 95
    first, second = generate_id(), generate_id()
    assert first != second
    millis, suffix = first.split("-")
    assert millis.isdigit()
    assert len(suffix) == 9
