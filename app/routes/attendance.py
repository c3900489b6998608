from datetime import date

from flask import Blueprint, render_template, request, jsonify, current_app

from app.decorators import role_required, api_role_required, get_current_user
from app.errors import AttendanceServiceError, INVALID_INPUT
from app.events import notify_attendance_updated
from app.firestore_models import STUDENT_CLASSES
from app.services import attendance as attendance_service
from app.services import students as student_service
from app.services.attendance_policy import allowed_dates
from app.services.holidays import get_holiday_dates_set
from app.utils import parse_date

bp = Blueprint('attendance', __name__, url_prefix='/attendance')


def _window():
    return current_app.config.get('ATTENDANCE_EDIT_WINDOW_DAYS', 3)


def _date_arg(name, default=None):
    value = request.args.get(name) or default
    if value is None:
        raise AttendanceServiceError(f'{name} is required', INVALID_INPUT, 'attendance.args')
    try:
        return parse_date(value).isoformat()
    except ValueError:
        raise AttendanceServiceError(f'{name} must use the YYYY-MM-DD format', INVALID_INPUT, 'attendance.args')


@bp.route('/')
@role_required('admin', 'teacher')
def mark_page():
    user = get_current_user()
    today = date.today()
    class_name = request.args.get('class', STUDENT_CLASSES[0])
    day = _date_arg('date', today.isoformat())

    holidays = attendance_service.holiday_dates_for_window(today, _window())
    violation = attendance_service.check_date_for_role(user.role, day, today, _window())
    students = student_service.get_students_by_class(class_name) if class_name in STUDENT_CLASSES else []
    record = attendance_service.get_attendance_by_class_and_date(class_name, day)
    statuses = {s.roll_number: s.status for s in record.students} if record else {}

    return render_template('attendance/mark.html',
                           classes=STUDENT_CLASSES,
                           class_name=class_name,
                           day=day,
                           students=students,
                           statuses=statuses,
                           violation=violation,
                           allowed_dates=allowed_dates(holidays, today, _window()))


@bp.route('/api/holidays')
@api_role_required()
def holiday_dates():
    """Holiday set for a year; pages re-fetch this on window focus."""
    year = request.args.get('year', type=int) or date.today().year
    return jsonify({'year': year, 'dates': sorted(get_holiday_dates_set(year))})


@bp.route('/api/check')
@api_role_required('admin', 'teacher')
def check_date():
    day = _date_arg('date')
    violation = attendance_service.check_date_for_role(get_current_user().role, day,
                                                       edit_window_days=_window())
    return jsonify({'date': day, 'allowed': violation is None, 'message': violation})


@bp.route('/api/record')
@api_role_required('admin', 'teacher')
def get_record():
    class_name = request.args.get('class', '')
    day = _date_arg('date')
    record = attendance_service.get_attendance_by_class_and_date(class_name, day)
    if not record:
        return jsonify({'error': 'No attendance recorded', 'code': 'not-found'}), 404
    data = record.to_dict()
    data['id'] = record.id
    return jsonify(data)


@bp.route('/api/mark', methods=['POST'])
@api_role_required('admin', 'teacher')
def mark_attendance():
    user = get_current_user()
    data = request.get_json(silent=True) or {}
    attendance_id, created = attendance_service.mark_attendance(
        data.get('class'),
        data.get('date'),
        data.get('students') or [],
        marked_by=user.actor(),
        role=user.role,
        edit_window_days=_window(),
    )
    notify_attendance_updated(data.get('class'), data.get('date'), attendance_id)
    return jsonify({'id': attendance_id, 'created': created}), 201 if created else 200


@bp.route('/api/stats')
@api_role_required('admin', 'teacher')
def stats_for_date():
    day = _date_arg('date', date.today().isoformat())
    return jsonify(attendance_service.get_attendance_statistics(day))


@bp.route('/api/stats/range')
@api_role_required('admin', 'teacher')
def stats_for_range():
    start, end = _date_arg('start'), _date_arg('end')
    if end < start:
        return jsonify({'error': 'end must not be before start', 'code': 'invalid-input'}), 400
    return jsonify(attendance_service.get_attendance_statistics_by_date_range(start, end))


@bp.route('/api/stats/month')
@api_role_required('admin', 'teacher')
def stats_for_month():
    today = date.today()
    year = request.args.get('year', today.year, type=int)
    month = request.args.get('month', today.month, type=int)
    if not 1 <= month <= 12:
        return jsonify({'error': 'month must be 1-12', 'code': 'invalid-input'}), 400
    return jsonify(attendance_service.get_attendance_statistics_by_month(year, month))
