import logging

from app import firestore_dao as dao
from app.errors import (HolidayServiceError, INVALID_INPUT, NOT_FOUND, handle_firebase_error,
                        validate_required_fields)
from app.firestore_models import Holiday
from app.utils import iter_dates, is_sunday as _is_sunday, parse_date

from google.api_core.exceptions import GoogleAPICallError

logger = logging.getLogger(__name__)


def get_all_holidays():
    try:
        return [Holiday.from_dict(h, h['id']) for h in dao.get_all_holidays()]
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'holidays.get_all', HolidayServiceError)


def get_holidays_by_year(year):
    """Holidays overlapping the given calendar year."""
    return get_holidays_by_date_range(f'{year}-01-01', f'{year}-12-31')


def get_holidays_by_date_range(start_date, end_date):
    return [h for h in get_all_holidays() if h.overlaps(start_date, end_date)]


def expand_holiday_dates(holidays):
    """Every individual YYYY-MM-DD date covered by the given holidays."""
    dates = set()
    for holiday in holidays:
        dates.update(iter_dates(holiday.start_date, holiday.end_date))
    return dates


def get_holiday_dates_set(year=None):
    holidays = get_holidays_by_year(year) if year else get_all_holidays()
    dates = expand_holiday_dates(holidays)
    logger.debug('Loaded %d holiday dates for %s', len(dates), year or 'all years')
    return dates


def is_holiday(date):
    day = str(parse_date(date))
    return any(h.contains(day) for h in get_all_holidays())


def is_sunday(date):
    return _is_sunday(date)


def is_non_working_day(date):
    if is_sunday(date):
        return True
    return is_holiday(date)


def get_working_days_count(start_date, end_date):
    """Days in [start_date, end_date] that are neither Sundays nor holidays."""
    holiday_dates = expand_holiday_dates(get_all_holidays())
    return sum(
        1 for day in iter_dates(start_date, end_date)
        if not _is_sunday(day) and day not in holiday_dates
    )


def _validate(data):
    validate_required_fields(data, ['name', 'startDate'], 'holidays.save')
    data.setdefault('endDate', data['startDate'])
    if not data['endDate']:
        data['endDate'] = data['startDate']
    try:
        start = parse_date(data['startDate'])
        end = parse_date(data['endDate'])
    except ValueError:
        raise HolidayServiceError('Dates must use the YYYY-MM-DD format.', INVALID_INPUT, 'holidays.save')
    if end < start:
        raise HolidayServiceError('End date cannot be before start date.', INVALID_INPUT, 'holidays.save')


def add_holiday(data, created_by):
    _validate(data)
    holiday = Holiday(
        name=data['name'],
        start_date=data['startDate'],
        end_date=data['endDate'],
        created_by=created_by,
    )
    try:
        holiday_id = dao.create_holiday(holiday.to_dict())
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'holidays.add', HolidayServiceError)
    logger.info('Holiday %s (%s..%s) added', holiday.name, holiday.start_date, holiday.end_date)
    return holiday_id


def update_holiday(holiday_id, data):
    existing = dao.get_holiday(holiday_id)
    if not existing:
        raise HolidayServiceError('Holiday not found.', NOT_FOUND, 'holidays.update')
    merged = {**existing, **data}
    _validate(merged)
    updates = {k: merged[k] for k in ('name', 'startDate', 'endDate')}
    try:
        dao.update_holiday(holiday_id, updates)
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'holidays.update', HolidayServiceError)


def delete_holiday(holiday_id):
    try:
        dao.delete_holiday(holiday_id)
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'holidays.delete', HolidayServiceError)
