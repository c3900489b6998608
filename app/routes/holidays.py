from datetime import date

from flask import Blueprint, render_template, redirect, url_for, flash, jsonify, request

from app.decorators import role_required, api_role_required, get_current_user
from app.errors import FirebaseServiceError
from app.events import notify_holidays_updated
from app.forms import HolidayForm
from app.services import holidays as holiday_service

bp = Blueprint('holidays', __name__, url_prefix='/holidays')


def _serialize(holiday):
    return {
        'id': holiday.id,
        'name': holiday.name,
        'startDate': holiday.start_date,
        'endDate': holiday.end_date,
    }


@bp.route('/', methods=['GET', 'POST'])
@role_required('admin')
def manage():
    form = HolidayForm()
    if form.validate_on_submit():
        data = {
            'name': form.name.data,
            'startDate': form.start_date.data.isoformat(),
            'endDate': (form.end_date.data or form.start_date.data).isoformat(),
        }
        try:
            holiday_service.add_holiday(data, get_current_user().actor())
        except FirebaseServiceError as e:
            flash(e.message, 'danger')
        else:
            notify_holidays_updated()
            flash(f"Holiday '{data['name']}' added.", 'success')
            return redirect(url_for('holidays.manage'))

    year = request.args.get('year', date.today().year, type=int)
    holidays = sorted(holiday_service.get_holidays_by_year(year), key=lambda h: h.start_date)
    return render_template('holidays/list.html', form=form, holidays=holidays, year=year)


@bp.route('/<holiday_id>/delete', methods=['POST'])
@role_required('admin')
def delete(holiday_id):
    try:
        holiday_service.delete_holiday(holiday_id)
    except FirebaseServiceError as e:
        flash(e.message, 'danger')
    else:
        notify_holidays_updated()
        flash('Holiday deleted.', 'success')
    return redirect(url_for('holidays.manage'))


@bp.route('/api')
@api_role_required()
def list_holidays():
    year = request.args.get('year', type=int)
    holidays = holiday_service.get_holidays_by_year(year) if year else holiday_service.get_all_holidays()
    return jsonify([_serialize(h) for h in sorted(holidays, key=lambda h: h.start_date)])


@bp.route('/api/<holiday_id>', methods=['PUT'])
@api_role_required('admin')
def update_holiday(holiday_id):
    data = request.get_json(silent=True) or {}
    updates = {k: data[k] for k in ('name', 'startDate', 'endDate') if k in data}
    holiday_service.update_holiday(holiday_id, updates)
    notify_holidays_updated()
    return jsonify({'success': True})


@bp.route('/api/working-days')
@api_role_required()
def working_days():
    start, end = request.args.get('start'), request.args.get('end')
    if not start or not end:
        return jsonify({'error': 'start and end are required', 'code': 'invalid-input'}), 400
    try:
        count = holiday_service.get_working_days_count(start, end)
    except ValueError:
        return jsonify({'error': 'Dates must use the YYYY-MM-DD format', 'code': 'invalid-input'}), 400
    return jsonify({'start': start, 'end': end, 'workingDays': count})
