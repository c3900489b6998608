import logging

from flask import (Blueprint, render_template, redirect, url_for, flash, request, jsonify,
                   Response, abort)

from app.decorators import role_required, api_role_required, get_current_user
from app.errors import FirebaseServiceError
from app.forms import BulkUploadForm, UserCreateForm, UserEditForm
from app.services import bulk_import, sync, users as user_service

logger = logging.getLogger(__name__)

bp = Blueprint('users', __name__, url_prefix='/users')

XLSX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


@bp.route('/')
@role_required('admin')
def list_users():
    query = request.args.get('q', '').strip()
    role = request.args.get('role', '')
    if query:
        users = user_service.search_users(query)
    elif role:
        users = user_service.get_users_by_role(role)
    else:
        users = user_service.get_all_users()
    if query and role:
        users = [u for u in users if u.get('role') == role]
    users.sort(key=lambda u: (u.get('role', ''), u.get('firstName', '').lower()))
    return render_template('users/list.html', users=users, query=query, role=role)


@bp.route('/new', methods=['GET', 'POST'])
@role_required('admin')
def create_user():
    form = UserCreateForm()
    if form.validate_on_submit():
        user = get_current_user()
        try:
            result = user_service.create_user(form.email.data, form.password.data,
                                              form.user_data(), created_by=user.uid)
        except FirebaseServiceError as e:
            flash(e.message, 'danger')
            return render_template('users/form.html', form=form, title='New user')
        flash(f'User {form.email.data} created ({result["documentId"]}).', 'success')
        return redirect(url_for('users.list_users'))
    return render_template('users/form.html', form=form, title='New user')


@bp.route('/<user_id>/edit', methods=['GET', 'POST'])
@role_required('admin')
def edit_user(user_id):
    existing = user_service.get_user_by_id(user_id)
    if not existing:
        abort(404)

    form = UserEditForm()
    if request.method == 'GET':
        form.first_name.data = existing.get('firstName', '')
        form.last_name.data = existing.get('lastName', '')
        form.phone.data = existing.get('phone', '')
        form.address.data = existing.get('address', '')
        form.student_class.data = existing.get('class', '')
        form.is_active.data = existing.get('isActive', True)

    if form.validate_on_submit():
        updates = {
            'firstName': form.first_name.data,
            'lastName': form.last_name.data,
            'phone': form.phone.data or None,
            'address': form.address.data or None,
            'isActive': form.is_active.data,
        }
        if existing.get('role') == 'student' and form.student_class.data:
            updates['class'] = form.student_class.data
        try:
            user_service.update_user(user_id, updates)
        except FirebaseServiceError as e:
            flash(e.message, 'danger')
        else:
            flash('User updated.', 'success')
            return redirect(url_for('users.list_users'))
    return render_template('users/form.html', form=form, title='Edit user', user=existing)


@bp.route('/<user_id>/delete', methods=['POST'])
@role_required('admin')
def delete_user(user_id):
    existing = user_service.get_user_by_id(user_id)
    if not existing:
        flash('User not found.', 'danger')
        return redirect(url_for('users.list_users'))
    if existing.get('uid') == get_current_user().uid:
        flash('You cannot delete your own account.', 'danger')
        return redirect(url_for('users.list_users'))
    try:
        result = user_service.delete_user_completely(user_id, existing.get('email'))
    except FirebaseServiceError as e:
        flash(e.message, 'danger')
    else:
        flash(result['message'], 'success')
    return redirect(url_for('users.list_users'))


@bp.route('/bulk', methods=['GET', 'POST'])
@role_required('admin')
def bulk_create():
    form = BulkUploadForm()
    results = rows = None
    if form.validate_on_submit():
        user_type = form.user_type.data
        try:
            rows = bulk_import.parse_workbook(form.excel_file.data, user_type)
        except FirebaseServiceError as e:
            flash(e.message, 'danger')
        else:
            results = bulk_import.create_users(rows, user_type, created_by=get_current_user().uid)
            flash(f"{results['successful']} created, {results['failed']} failed.",
                  'success' if not results['failed'] else 'warning')
    return render_template('users/bulk.html', form=form, rows=rows, results=results)


@bp.route('/bulk/template')
@role_required('admin')
def bulk_template():
    user_type = request.args.get('type', 'student')
    if user_type not in ('student', 'teacher'):
        abort(400)
    return Response(
        bulk_import.build_template(user_type),
        mimetype=XLSX_MIMETYPE,
        headers={'Content-Disposition': f'attachment;filename={user_type}_template.xlsx'}
    )


@bp.route('/api/sync')
@api_role_required('admin')
def sync_report():
    report = sync.check_student_sync()
    report['orphanedStudents'] = [s['id'] for s in sync.find_orphaned_students()]
    return jsonify(report)
