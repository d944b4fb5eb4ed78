from datetime import datetime, timedelta, timezone

import pytest

from woms.services.time_rules import duration_minutes, ensure_utc, iter_months, period_range, subtract_months


T0 = datetime(2025, 3, 12, 9, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "elapsed,expected",
    [
        (timedelta(seconds=29), 0),
        (timedelta(seconds=30), 1),
        (timedelta(minutes=59, seconds=45), 60),
        (timedelta(hours=2), 120),
    ],
)
def test_duration_minutes_rounds_half_up(elapsed, expected):
    assert duration_minutes(T0, T0 + elapsed) == expected


def test_ensure_utc_treats_naive_as_utc():
    naive = datetime(2025, 1, 1, 12, 0)
    assert ensure_utc(naive) == datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
    assert ensure_utc(None) is None


def test_period_range_month_and_last30():
    start, end = period_range("month", "UTC", now=T0)
    assert start == datetime(2025, 3, 1, tzinfo=timezone.utc)
    assert end.day == 31 and end.month == 3

    start, end = period_range("last30", "UTC", now=T0)
    assert end - start == timedelta(days=30)

    assert period_range(None, "UTC", now=T0) is None


def test_subtract_months_clamps_day():
    assert subtract_months(datetime(2025, 3, 31), 1) == datetime(2025, 2, 28)
    assert subtract_months(datetime(2025, 1, 15), 2) == datetime(2024, 11, 15)


def test_iter_months_spans_year_boundary():
    months = list(iter_months(datetime(2024, 11, 20), datetime(2025, 2, 1)))
    assert months == [(2024, 11), (2024, 12), (2025, 1), (2025, 2)]
