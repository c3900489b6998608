from datetime import date

import pytest

from app.services.attendance_policy import (EDIT_WINDOW_MESSAGE, FUTURE_DATE_MESSAGE, HOLIDAY_MESSAGE,
                                            SUNDAY_MESSAGE, allowed_dates, date_violation,
                                            is_date_allowed)

# Wednesday
TODAY = date(2026, 3, 11)


def test_today_is_allowed():
    assert is_date_allowed('2026-03-11', set(), TODAY)


def test_future_date_rejected():
    assert date_violation('2026-03-12', set(), TODAY) == FUTURE_DATE_MESSAGE


@pytest.mark.parametrize('day', ['2026-03-10', '2026-03-09'])
def test_recent_weekdays_allowed(day):
    assert is_date_allowed(day, set(), TODAY)


def test_edge_of_window_allowed_and_beyond_rejected():
    # 2026-03-08 is a Sunday, so use a window that lands on a weekday
    assert is_date_allowed('2026-03-09', set(), TODAY, edit_window_days=2)
    assert date_violation('2026-03-06', set(), TODAY) == EDIT_WINDOW_MESSAGE.format(days=3)


def test_default_window_is_inclusive_of_three_days_back():
    friday = date(2026, 3, 13)
    assert is_date_allowed('2026-03-10', set(), friday)
    assert date_violation('2026-03-09', set(), friday) == EDIT_WINDOW_MESSAGE.format(days=3)


def test_sunday_rejected():
    assert date_violation('2026-03-08', set(), TODAY) == SUNDAY_MESSAGE


def test_holiday_rejected():
    assert date_violation('2026-03-10', {'2026-03-10'}, TODAY) == HOLIDAY_MESSAGE


def test_first_failing_rule_wins():
    # Outside the window and also a Sunday
    assert date_violation('2026-03-01', {'2026-03-01'}, TODAY) == EDIT_WINDOW_MESSAGE.format(days=3)
    # Sunday and holiday
    assert date_violation('2026-03-08', {'2026-03-08'}, TODAY) == SUNDAY_MESSAGE


def test_accepts_date_objects():
    assert is_date_allowed(date(2026, 3, 10), set(), TODAY)


def test_allowed_dates_skip_sundays_and_holidays():
    assert allowed_dates({'2026-03-10'}, TODAY) == ['2026-03-11', '2026-03-09']


def test_allowed_dates_custom_window():
    assert allowed_dates(set(), TODAY, edit_window_days=0) == ['2026-03-11']
