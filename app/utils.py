"""Date and timestamp helpers shared by services and templates."""

from datetime import date, datetime, timedelta

DATE_FORMAT = '%Y-%m-%d'


def parse_date(value):
    """Parse a YYYY-MM-DD string (or pass through a date/datetime)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(value, DATE_FORMAT).date()


def iter_dates(start, end):
    """Yield every date from start to end inclusive as YYYY-MM-DD strings."""
    current = parse_date(start)
    last = parse_date(end)
    while current <= last:
        yield current.strftime(DATE_FORMAT)
        current += timedelta(days=1)


def is_sunday(value):
    return parse_date(value).weekday() == 6


def month_bounds(year, month):
    """First and last day of a month as YYYY-MM-DD strings."""
    first = date(year, month, 1)
    if month == 12:
        last = date(year, 12, 31)
    else:
        last = date(year, month + 1, 1) - timedelta(days=1)
    return first.strftime(DATE_FORMAT), last.strftime(DATE_FORMAT)


def format_date(value):
    """Format a date string or datetime for display, e.g. 'Jan 15, 2026'."""
    try:
        if isinstance(value, str):
            value = datetime.fromisoformat(value.replace('Z', '+00:00'))
        if not isinstance(value, (date, datetime)):
            return 'Invalid Date'
        return f"{value.strftime('%b')} {value.day}, {value.year}"
    except ValueError:
        return 'Invalid Date'
