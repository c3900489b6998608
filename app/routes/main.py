from datetime import date

from flask import Blueprint, render_template, redirect, url_for, jsonify, request, current_app

from app import csrf
from app.decorators import auth_required, get_current_user
from app.firestore_models import STUDENT_CLASSES
from app.services import (assessment, attendance as attendance_service, events as event_service,
                          financial as financial_service, reports as report_service, users as user_service)
from app.services import students as student_service
from app.services.attendance_policy import allowed_dates

bp = Blueprint('main', __name__)


@bp.route('/health')
def health():
    return jsonify({'status': 'ok'}), 200


@bp.route('/')
def index():
    user = get_current_user()
    if user.is_authenticated:
        return redirect(url_for('main.dashboard'))
    return render_template('index.html',
                           events=event_service.get_active_events(),
                           photos=event_service.get_all_photos())


@bp.route('/dashboard')
@auth_required
def dashboard():
    user = get_current_user()
    today = date.today()

    if user.is_admin():
        users = user_service.get_all_users()
        role_counts = {role: 0 for role in ('admin', 'teacher', 'student')}
        for u in users:
            role_counts[u.get('role', 'student')] = role_counts.get(u.get('role', 'student'), 0) + 1
        return render_template('dashboard/admin.html',
                               role_counts=role_counts,
                               attendance_stats=attendance_service.get_attendance_statistics(today.isoformat()),
                               financial_stats=financial_service.get_financial_stats(
                                   f'{today.month:02d}', str(today.year)),
                               events=event_service.get_active_events())

    if user.is_teacher():
        window = current_app.config.get('ATTENDANCE_EDIT_WINDOW_DAYS', 3)
        holidays = attendance_service.holiday_dates_for_window(today, window)
        return render_template('dashboard/teacher.html',
                               classes=STUDENT_CLASSES,
                               allowed_dates=allowed_dates(holidays, today, window),
                               attendance_stats=attendance_service.get_attendance_statistics(today.isoformat()),
                               events=event_service.get_active_events())

    roll_number = user.get('rollNumber') or user.id
    student = student_service.get_student_by_roll_number(roll_number)
    return render_template('dashboard/student.html',
                           student=student,
                           summary=attendance_service.get_student_summary(roll_number),
                           remarks=report_service.get_remarks_by_student(roll_number),
                           reports=report_service.get_academic_reports_by_student(roll_number),
                           events=event_service.get_active_events())


@bp.route('/assessments')
def assessments():
    return render_template('assessments.html',
                           types=assessment.ASSESSMENT_TYPES,
                           titles=assessment.TITLES,
                           questions=assessment.QUESTIONS,
                           options=assessment.OPTIONS)


@bp.route('/api/assessments/<kind>', methods=['POST'])
@csrf.exempt
def score_assessment(kind):
    """Score a screening questionnaire. Nothing is stored."""
    data = request.get_json(silent=True) or {}
    try:
        result = assessment.score_assessment(kind, data.get('answers') or [])
    except assessment.InvalidAnswersError as e:
        return jsonify({'error': str(e), 'code': 'invalid-input'}), 400
    return jsonify(result)
