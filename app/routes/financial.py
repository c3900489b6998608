from datetime import date

from flask import Blueprint, render_template, redirect, url_for, flash, jsonify, request

from app.decorators import role_required, api_role_required, get_current_user
from app.errors import FirebaseServiceError
from app.forms import FinancialRecordForm
from app.services import financial as financial_service

bp = Blueprint('financial', __name__, url_prefix='/financial')


@bp.route('/', methods=['GET', 'POST'])
@role_required('admin')
def manage():
    form = FinancialRecordForm()
    if form.validate_on_submit():
        record_date = form.date.data
        data = {
            'type': form.type.data,
            'category': form.category.data,
            'amount': float(form.amount.data),
            'description': form.description.data or '',
            'date': record_date.isoformat(),
            'receiptNumber': form.receipt_number.data,
            'studentName': form.student_name.data,
            'studentClass': form.student_class.data,
            'month': record_date.strftime('%B'),
            'academicYear': str(record_date.year),
        }
        try:
            financial_service.add_financial_record(data, created_by=get_current_user().id)
        except FirebaseServiceError as e:
            flash(e.message, 'danger')
        else:
            flash('Record saved.', 'success')
            return redirect(url_for('financial.manage'))

    record_type = request.args.get('type')
    if record_type in ('income', 'expense'):
        records = financial_service.get_financial_records_by_type(record_type)
    else:
        records = financial_service.get_all_financial_records()
    today = date.today()
    return render_template('financial/list.html', form=form, records=records,
                           record_type=record_type,
                           stats=financial_service.get_financial_stats(),
                           month_stats=financial_service.get_financial_stats(today.month, today.year))


@bp.route('/<record_id>/delete', methods=['POST'])
@role_required('admin')
def delete(record_id):
    try:
        financial_service.delete_financial_record(record_id)
    except FirebaseServiceError as e:
        flash(e.message, 'danger')
    else:
        flash('Record deleted.', 'success')
    return redirect(url_for('financial.manage'))


@bp.route('/api/records')
@api_role_required('admin')
def list_records():
    start, end = request.args.get('start'), request.args.get('end')
    if start and end:
        return jsonify(financial_service.get_financial_records_by_date_range(start, end))
    return jsonify(financial_service.get_all_financial_records())


@bp.route('/api/records/<record_id>', methods=['PUT'])
@api_role_required('admin')
def update_record(record_id):
    data = request.get_json(silent=True) or {}
    financial_service.update_financial_record(record_id, data)
    return jsonify({'success': True})


@bp.route('/api/stats')
@api_role_required('admin')
def stats():
    month = request.args.get('month', type=int)
    year = request.args.get('year', type=int)
    if month is not None and not 1 <= month <= 12:
        return jsonify({'error': 'month must be 1-12', 'code': 'invalid-input'}), 400
    return jsonify(financial_service.get_financial_stats(month, year))
