from flask import Blueprint, render_template, redirect, url_for, flash, jsonify, request, abort

from app.decorators import role_required, api_role_required, get_current_user
from app.errors import FirebaseServiceError
from app.firestore_models import STUDENT_CLASSES
from app.forms import RemarkForm
from app.services import reports as report_service
from app.services import students as student_service

bp = Blueprint('reports', __name__, url_prefix='/reports')


def _own_roll_number(user):
    return user.get('rollNumber') or user.id


@bp.route('/remarks', methods=['GET', 'POST'])
@role_required('admin', 'teacher')
def remarks():
    user = get_current_user()
    class_name = request.args.get('class', '')
    form = RemarkForm()
    if form.validate_on_submit():
        student = student_service.get_student_by_roll_number(form.student_id.data.strip())
        if not student:
            flash(f'No student with roll number {form.student_id.data}.', 'danger')
        else:
            data = {
                'studentId': student.roll_number,
                'studentName': f'{student.first_name} {student.last_name}'.strip(),
                'class': student.student_class,
                'subject': form.subject.data or '',
                'remark': form.remark.data,
                'type': form.type.data,
                'date': form.date.data.isoformat(),
            }
            try:
                report_service.add_remark(data, user.audit())
            except FirebaseServiceError as e:
                flash(e.message, 'danger')
            else:
                flash('Remark saved.', 'success')
                return redirect(url_for('reports.remarks', **{'class': student.student_class}))

    items = report_service.get_remarks(class_name if class_name in STUDENT_CLASSES else None)
    return render_template('reports/remarks.html', form=form, remarks=items,
                           classes=STUDENT_CLASSES, class_name=class_name)


@bp.route('/remarks/<remark_id>/delete', methods=['POST'])
@role_required('admin', 'teacher')
def delete_remark(remark_id):
    try:
        report_service.delete_remark(remark_id)
    except FirebaseServiceError as e:
        flash(e.message, 'danger')
    else:
        flash('Remark deleted.', 'success')
    return redirect(url_for('reports.remarks'))


@bp.route('/api/remarks')
@api_role_required()
def list_remarks():
    user = get_current_user()
    if user.is_student():
        return jsonify(report_service.get_remarks_by_student(_own_roll_number(user)))
    student_id = request.args.get('student')
    if student_id:
        return jsonify(report_service.get_remarks_by_student(student_id))
    return jsonify(report_service.get_remarks(request.args.get('class')))


@bp.route('/api/remarks/<remark_id>', methods=['PUT'])
@api_role_required('admin', 'teacher')
def update_remark(remark_id):
    data = request.get_json(silent=True) or {}
    updates = {k: data[k] for k in ('remark', 'subject', 'type', 'date') if k in data}
    report_service.update_remark(remark_id, updates, get_current_user().audit())
    return jsonify({'success': True})


# ---------------------------------------------------------------------------
# Academic reports
# ---------------------------------------------------------------------------

@bp.route('/api/academic')
@api_role_required()
def list_reports():
    user = get_current_user()
    if user.is_student():
        return jsonify(report_service.get_academic_reports_by_student(_own_roll_number(user)))
    student_id = request.args.get('student')
    if student_id:
        return jsonify(report_service.get_academic_reports_by_student(student_id))
    return jsonify(report_service.get_academic_reports(request.args.get('class')))


@bp.route('/api/academic', methods=['POST'])
@api_role_required('admin', 'teacher')
def add_report():
    data = request.get_json(silent=True) or {}
    report_id = report_service.add_academic_report(data, get_current_user().audit())
    return jsonify({'id': report_id}), 201


@bp.route('/api/academic/<report_id>', methods=['PUT'])
@api_role_required('admin', 'teacher')
def update_report(report_id):
    data = request.get_json(silent=True) or {}
    if not data:
        abort(400)
    report_service.update_academic_report(report_id, data, get_current_user().audit())
    return jsonify({'success': True})


@bp.route('/api/academic/<report_id>', methods=['DELETE'])
@api_role_required('admin')
def delete_report(report_id):
    report_service.delete_academic_report(report_id)
    return jsonify({'success': True})
