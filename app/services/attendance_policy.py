"""
Which dates a teacher may enter or edit attendance for.

A date is eligible only if it is not in the future, falls inside the edit
window (today and the previous ``edit_window_days`` days), is not a Sunday
and is not a registered holiday. A rejected date gets exactly one message;
the checks run in that order and the first failing one wins.
"""

from datetime import date, timedelta

from app.utils import parse_date

DEFAULT_EDIT_WINDOW_DAYS = 3

FUTURE_DATE_MESSAGE = 'Cannot mark attendance for future dates.'
EDIT_WINDOW_MESSAGE = 'Attendance can only be marked or edited for the last {days} days.'
SUNDAY_MESSAGE = 'Cannot mark attendance on Sundays.'
HOLIDAY_MESSAGE = 'Cannot mark attendance on holidays.'


def date_violation(day, holidays, today=None, edit_window_days=DEFAULT_EDIT_WINDOW_DAYS):
    """Return the message for the first rule ``day`` breaks, or None."""
    day = parse_date(day)
    today = today or date.today()

    if day > today:
        return FUTURE_DATE_MESSAGE
    if day < today - timedelta(days=edit_window_days):
        return EDIT_WINDOW_MESSAGE.format(days=edit_window_days)
    if day.weekday() == 6:
        return SUNDAY_MESSAGE
    if day.isoformat() in holidays:
        return HOLIDAY_MESSAGE
    return None


def is_date_allowed(day, holidays, today=None, edit_window_days=DEFAULT_EDIT_WINDOW_DAYS):
    return date_violation(day, holidays, today, edit_window_days) is None


def allowed_dates(holidays, today=None, edit_window_days=DEFAULT_EDIT_WINDOW_DAYS):
    """Eligible dates inside the edit window, most recent first."""
    today = today or date.today()
    candidates = (today - timedelta(days=offset) for offset in range(edit_window_days + 1))
    return [d.isoformat() for d in candidates
            if is_date_allowed(d, holidays, today, edit_window_days)]
