from flask import Blueprint, render_template, redirect, url_for, flash, jsonify, request

from app.decorators import role_required, api_role_required, get_current_user
from app.errors import FirebaseServiceError
from app.forms import EventForm, PhotoForm
from app.services import events as event_service

bp = Blueprint('events', __name__, url_prefix='/events')


@bp.route('/', methods=['GET', 'POST'])
@role_required('admin')
def manage():
    form = EventForm()
    if form.validate_on_submit():
        data = {
            'title': form.title.data,
            'description': form.description.data or '',
            'date': form.date.data.isoformat(),
            'time': form.time.data or '',
            'location': form.location.data or '',
        }
        try:
            event_service.add_event(data, created_by=get_current_user().id)
        except FirebaseServiceError as e:
            flash(e.message, 'danger')
        else:
            flash(f"Event '{data['title']}' added.", 'success')
            return redirect(url_for('events.manage'))
    events = sorted(event_service.get_all_events(), key=lambda e: e.get('date', ''), reverse=True)
    return render_template('events/list.html', form=form, events=events)


@bp.route('/<event_id>/toggle', methods=['POST'])
@role_required('admin')
def toggle(event_id):
    event = next((e for e in event_service.get_all_events() if e['id'] == event_id), None)
    if not event:
        flash('Event not found.', 'danger')
    else:
        event_service.update_event(event_id, {'isActive': not event.get('isActive')})
    return redirect(url_for('events.manage'))


@bp.route('/<event_id>/delete', methods=['POST'])
@role_required('admin')
def delete(event_id):
    try:
        event_service.delete_event(event_id)
    except FirebaseServiceError as e:
        flash(e.message, 'danger')
    else:
        flash('Event deleted.', 'success')
    return redirect(url_for('events.manage'))


@bp.route('/api')
def list_events():
    """Upcoming active events; public, shown on the guest page."""
    start, end = request.args.get('start'), request.args.get('end')
    if start and end:
        events = [e for e in event_service.get_events_by_date_range(start, end) if e.get('isActive')]
    else:
        events = event_service.get_active_events()
    return jsonify(events)


# ---------------------------------------------------------------------------
# Gallery
# ---------------------------------------------------------------------------

@bp.route('/gallery')
def gallery():
    category = request.args.get('category')
    photos = (event_service.get_photos_by_category(category) if category
              else event_service.get_all_photos())
    categories = sorted({p.get('category', '') for p in event_service.get_all_photos()} - {''})
    form = PhotoForm() if get_current_user().is_admin() else None
    return render_template('events/gallery.html', photos=photos, categories=categories,
                           category=category, form=form)


@bp.route('/photos', methods=['POST'])
@role_required('admin')
def upload_photo():
    form = PhotoForm()
    if form.validate_on_submit():
        image = form.image.data
        try:
            event_service.upload_photo_with_metadata(
                image.stream, image.filename,
                {'title': form.title.data,
                 'description': form.description.data or '',
                 'category': form.category.data},
                content_type=image.mimetype,
            )
        except FirebaseServiceError as e:
            flash(e.message, 'danger')
        else:
            flash('Photo uploaded.', 'success')
    else:
        for errors in form.errors.values():
            for error in errors:
                flash(error, 'danger')
    return redirect(url_for('events.gallery'))


@bp.route('/photos/<photo_id>/delete', methods=['POST'])
@role_required('admin')
def delete_photo(photo_id):
    try:
        event_service.delete_photo(photo_id)
    except FirebaseServiceError as e:
        flash(e.message, 'danger')
    else:
        flash('Photo deleted.', 'success')
    return redirect(url_for('events.gallery'))


@bp.route('/api/photos')
def list_photos():
    category = request.args.get('category')
    if category:
        return jsonify(event_service.get_photos_by_category(category))
    return jsonify(event_service.get_all_photos())


@bp.route('/api/photos/<photo_id>', methods=['PUT'])
@api_role_required('admin')
def update_photo(photo_id):
    data = request.get_json(silent=True) or {}
    updates = {k: data[k] for k in ('title', 'description', 'category') if k in data}
    event_service.update_photo(photo_id, updates)
    return jsonify({'success': True})
