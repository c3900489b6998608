from flask import Blueprint, jsonify, request, abort

from app.decorators import api_role_required, get_current_user
from app.firestore_models import STUDENT_CLASSES
from app.services import attendance as attendance_service, students as student_service

bp = Blueprint('students', __name__, url_prefix='/students')

EDITABLE_FIELDS = ('firstName', 'lastName', 'email', 'phone', 'address', 'class', 'age',
                   'parentName', 'parentPhone', 'admissionDate')


def _serialize(student):
    data = student.to_dict()
    data['id'] = student.id
    return data


def _can_view(roll_number):
    user = get_current_user()
    if user.role in ('admin', 'teacher'):
        return True
    return (user.get('rollNumber') or user.id) == roll_number


@bp.route('/api')
@api_role_required('admin', 'teacher')
def list_students():
    class_name = request.args.get('class')
    if class_name:
        if class_name not in STUDENT_CLASSES:
            return jsonify({'error': f'Unknown class: {class_name}', 'code': 'invalid-input'}), 400
        students = student_service.get_students_by_class(class_name)
    else:
        students = student_service.get_all_students()
    return jsonify([_serialize(s) for s in students])


@bp.route('/api/<roll_number>')
@api_role_required()
def get_student(roll_number):
    if not _can_view(roll_number):
        abort(403)
    student = student_service.get_student_by_roll_number(roll_number)
    if not student:
        return jsonify({'error': 'Student not found', 'code': 'not-found'}), 404
    return jsonify(_serialize(student))


@bp.route('/api/<roll_number>', methods=['PUT'])
@api_role_required('admin')
def update_student(roll_number):
    data = request.get_json(silent=True) or {}
    updates = {k: v for k, v in data.items() if k in EDITABLE_FIELDS}
    if not updates:
        return jsonify({'error': 'Nothing to update', 'code': 'invalid-input'}), 400
    student_service.update_student_by_roll_number(roll_number, updates)
    return jsonify({'success': True})


@bp.route('/api/<roll_number>', methods=['DELETE'])
@api_role_required('admin')
def delete_student(roll_number):
    student_service.delete_student_by_roll_number(roll_number)
    return jsonify({'success': True})


@bp.route('/api/<roll_number>/attendance')
@api_role_required()
def student_attendance(roll_number):
    if not _can_view(roll_number):
        abort(403)
    summary = attendance_service.get_student_summary(
        roll_number, request.args.get('start'), request.args.get('end'))
    return jsonify(summary)
