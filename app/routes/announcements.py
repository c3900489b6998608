from datetime import datetime, timezone

from flask import Blueprint, render_template, redirect, url_for, flash, jsonify, request

from app.decorators import role_required, api_role_required, get_current_user
from app.errors import FirebaseServiceError
from app.events import notify_announcements_updated
from app.forms import AnnouncementForm
from app.services import announcements as announcement_service

bp = Blueprint('announcements', __name__, url_prefix='/announcements')


@bp.route('/', methods=['GET', 'POST'])
@role_required('admin')
def manage():
    form = AnnouncementForm()
    if request.method == 'GET':
        start, end = announcement_service.default_window(
            datetime.now(timezone.utc).replace(tzinfo=None, second=0, microsecond=0))
        form.start_date.data, form.end_date.data = start, end

    if form.validate_on_submit():
        media = form.media.data
        try:
            announcement_service.add_announcement(
                media.stream, media.filename, media.mimetype,
                {'startDate': form.start_date.data,
                 'endDate': form.end_date.data,
                 'displayDuration': form.display_duration.data,
                 'isActive': form.is_active.data},
                created_by=get_current_user().id,
            )
        except FirebaseServiceError as e:
            flash(e.message, 'danger')
        else:
            notify_announcements_updated()
            flash('Announcement published.', 'success')
            return redirect(url_for('announcements.manage'))

    return render_template('announcements/list.html', form=form,
                           announcements=announcement_service.get_announcements(),
                           stats=announcement_service.get_announcement_stats(),
                           is_current=announcement_service.is_current)


@bp.route('/<announcement_id>/toggle', methods=['POST'])
@role_required('admin')
def toggle(announcement_id):
    try:
        announcement = announcement_service.get_announcement(announcement_id)
        announcement_service.update_announcement(
            announcement_id, {'isActive': not announcement.get('isActive')},
            updated_by=get_current_user().id)
    except FirebaseServiceError as e:
        flash(e.message, 'danger')
    else:
        notify_announcements_updated()
    return redirect(url_for('announcements.manage'))


@bp.route('/<announcement_id>/delete', methods=['POST'])
@role_required('admin')
def delete(announcement_id):
    try:
        announcement_service.delete_announcement(announcement_id)
    except FirebaseServiceError as e:
        flash(e.message, 'danger')
    else:
        notify_announcements_updated()
        flash('Announcement deleted.', 'success')
    return redirect(url_for('announcements.manage'))


# ---------------------------------------------------------------------------
# JSON API
# ---------------------------------------------------------------------------

@bp.route('/api/active')
@api_role_required()
def active():
    """Current announcements the signed-in user has not dismissed yet."""
    unseen = announcement_service.get_unseen_announcements(get_current_user().id)
    return jsonify([announcement_service.to_json(a) for a in unseen])


@bp.route('/api/<announcement_id>/dismiss', methods=['POST'])
@api_role_required()
def dismiss(announcement_id):
    announcement_service.dismiss_announcement(get_current_user().id, announcement_id)
    return jsonify({'success': True})


@bp.route('/api/dismissed', methods=['DELETE'])
@api_role_required()
def clear_dismissed():
    cleared = announcement_service.clear_dismissed_announcements(get_current_user().id)
    return jsonify({'success': True, 'cleared': cleared})


@bp.route('/api/stats')
@api_role_required('admin')
def stats():
    return jsonify(announcement_service.get_announcement_stats())


@bp.route('/api/<announcement_id>', methods=['PUT'])
@api_role_required('admin')
def update(announcement_id):
    data = request.get_json(silent=True) or {}
    announcement_service.update_announcement(announcement_id, data, updated_by=get_current_user().id)
    notify_announcements_updated()
    return jsonify({'success': True})
