import logging
from collections import defaultdict
from datetime import date, timedelta

from google.api_core.exceptions import GoogleAPICallError

from app import firestore_dao as dao
from app.errors import (AttendanceServiceError, INVALID_INPUT, PERMISSION_DENIED,
                        handle_firebase_error)
from app.firestore_models import ATTENDANCE_STATUSES, Attendance, StudentAttendance
from app.services import attendance_policy
from app.services.holidays import get_holiday_dates_set
from app.utils import iter_dates, month_bounds, parse_date

logger = logging.getLogger(__name__)


def holiday_dates_for_window(today=None, edit_window_days=attendance_policy.DEFAULT_EDIT_WINDOW_DAYS):
    """Holiday dates for the current year, plus the previous year when the
    edit window reaches back across January 1st."""
    today = today or date.today()
    years = {today.year, (today - timedelta(days=edit_window_days)).year}
    dates = set()
    for year in sorted(years):
        dates |= get_holiday_dates_set(year)
    return dates


def check_date_for_role(role, day, today=None, edit_window_days=attendance_policy.DEFAULT_EDIT_WINDOW_DAYS):
    """Return the violation message for ``role`` marking ``day``, or None.

    Teachers are held to the full eligibility policy. Admins may correct
    any past date but still cannot mark the future.
    """
    today = today or date.today()
    if role == 'admin':
        if parse_date(day) > today:
            return attendance_policy.FUTURE_DATE_MESSAGE
        return None
    holidays = holiday_dates_for_window(today, edit_window_days)
    return attendance_policy.date_violation(day, holidays, today, edit_window_days)


def _normalise_entries(students):
    entries = []
    for raw in students:
        entry = StudentAttendance.from_dict(raw)
        if not entry.roll_number:
            raise AttendanceServiceError('Every attendance entry needs a roll number.',
                                         INVALID_INPUT, 'attendance.mark')
        if entry.status not in ATTENDANCE_STATUSES:
            raise AttendanceServiceError(f'Invalid attendance status: {entry.status}',
                                         INVALID_INPUT, 'attendance.mark')
        entries.append(entry)
    return entries


def mark_attendance(class_name, day, students, marked_by, role='teacher', today=None,
                    edit_window_days=attendance_policy.DEFAULT_EDIT_WINDOW_DAYS):
    """Create the attendance record for (class, date) or replace its entries.

    Returns ``(attendance_id, created)``.
    """
    if not class_name:
        raise AttendanceServiceError('Class is required.', INVALID_INPUT, 'attendance.mark')
    try:
        day = parse_date(day).isoformat()
    except (TypeError, ValueError):
        raise AttendanceServiceError('Date must use the YYYY-MM-DD format.', INVALID_INPUT, 'attendance.mark')

    violation = check_date_for_role(role, day, today, edit_window_days)
    if violation:
        raise AttendanceServiceError(violation, PERMISSION_DENIED, 'attendance.mark')

    entries = [e.to_dict() for e in _normalise_entries(students)]

    try:
        existing = dao.get_attendance_by_class_and_date(class_name, day)
        if existing:
            dao.update_attendance(existing['id'], {
                'students': entries,
                'updatedBy': marked_by,
            })
            logger.info('Attendance for %s on %s updated by %s', class_name, day, marked_by.get('userId'))
            return existing['id'], False

        record = Attendance(student_class=class_name, date=day, marked_by=marked_by)
        data = record.to_dict()
        data['students'] = entries
        attendance_id = dao.create_attendance(data)
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'attendance.mark', AttendanceServiceError)
    logger.info('Attendance for %s on %s created by %s', class_name, day, marked_by.get('userId'))
    return attendance_id, True


def get_attendance_by_class_and_date(class_name, day):
    record = dao.get_attendance_by_class_and_date(class_name, day)
    return Attendance.from_dict(record, record['id']) if record else None


def get_attendance_by_student(roll_number):
    """All attendance records (newest first) that include the student."""
    records = [Attendance.from_dict(r, r['id']) for r in dao.get_all_attendance()]
    return [r for r in records if r.status_for(roll_number) is not None]


def _students_by_class():
    grouped = defaultdict(list)
    for student in dao.get_all_students():
        grouped[student.get('class', '')].append(student)
    return grouped


def _roster(students):
    return {s.get('rollNumber') or s['id'] for s in students}


def _class_stats(roster, record):
    """Counts for the current roster only; entries for students who have
    since left the class are ignored."""
    stats = {'total': len(roster), 'present': 0, 'absent': 0, 'late': 0, 'missed': len(roster)}
    if record is not None and record.students:
        stats.update(record.status_counts(roster))
        marked = {entry.roll_number for entry in record.students} & roster
        stats['missed'] = len(roster - marked)
    return stats


def get_attendance_statistics(day):
    """Per-class counts for one date. ``missed`` counts students without an entry."""
    students_by_class = _students_by_class()
    records = {}
    for raw in dao.get_attendance_by_date(day):
        record = Attendance.from_dict(raw, raw['id'])
        records[record.student_class] = record

    return {
        class_name: _class_stats(_roster(students), records.get(class_name))
        for class_name, students in students_by_class.items()
    }


def get_attendance_statistics_by_date_range(start_date, end_date):
    students_by_class = _students_by_class()

    records_by_date = defaultdict(dict)
    for raw in dao.get_attendance_by_date_range(start_date, end_date):
        record = Attendance.from_dict(raw, raw['id'])
        records_by_date[record.date][record.student_class] = record

    daily_stats = {}
    summary_stats = {
        class_name: {'total': 0, 'present': 0, 'absent': 0, 'late': 0, 'missed': 0,
                     'daysWithAttendance': 0}
        for class_name in students_by_class
    }

    days = list(iter_dates(start_date, end_date))
    for day in days:
        daily_stats[day] = {}
        for class_name, students in students_by_class.items():
            record = records_by_date[day].get(class_name)
            stats = _class_stats(_roster(students), record)
            daily_stats[day][class_name] = stats

            summary = summary_stats[class_name]
            for key in ('total', 'present', 'absent', 'late', 'missed'):
                summary[key] += stats[key]
            if record is not None and record.students:
                summary['daysWithAttendance'] += 1

    return {'dailyStats': daily_stats, 'summaryStats': summary_stats, 'totalDays': len(days)}


def get_attendance_statistics_by_month(year, month):
    start_date, end_date = month_bounds(year, month)
    stats = get_attendance_statistics_by_date_range(start_date, end_date)
    # Monday to Friday
    stats['workingDays'] = sum(1 for d in iter_dates(start_date, end_date)
                               if parse_date(d).weekday() < 5)
    return stats


def get_student_summary(roll_number, start_date=None, end_date=None):
    """Present/absent/late counts and attendance rate for one student."""
    records = get_attendance_by_student(roll_number)
    if start_date:
        records = [r for r in records if r.date >= start_date]
    if end_date:
        records = [r for r in records if r.date <= end_date]

    counts = {status: 0 for status in ATTENDANCE_STATUSES}
    history = []
    for record in records:
        status = record.status_for(roll_number)
        counts[status] += 1
        history.append({'date': record.date, 'class': record.student_class, 'status': status})

    total = len(records)
    attended = counts['present'] + counts['late']
    return {
        'rollNumber': roll_number,
        'totalDays': total,
        'present': counts['present'],
        'absent': counts['absent'],
        'late': counts['late'],
        'attendanceRate': round(attended / total * 100, 1) if total > 0 else 0,
        'records': history,
    }
