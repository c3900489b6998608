"""Flash announcements: an image or video shown once on every dashboard.

An announcement is *current* while it is active and ``startDate <= now <=
endDate``. Each user dismisses it once; dismissals are kept per user under
``users/<id>/announcementPreferences/<announcementId>``.
"""

import logging
from datetime import datetime, timedelta, timezone

from google.api_core.exceptions import GoogleAPICallError

from app import firestore_dao as dao
from app.errors import (AnnouncementServiceError, INVALID_INPUT, NOT_FOUND, PhotoServiceError,
                        handle_firebase_error)
from app.services import storage

logger = logging.getLogger(__name__)

MEDIA_TYPES = ('image', 'video')
DEFAULT_DISPLAY_SECONDS = 10
MIN_DISPLAY_SECONDS = 5
MAX_DISPLAY_SECONDS = 60
DEFAULT_RUN_DAYS = 7

_EDITABLE_FIELDS = ('isActive', 'startDate', 'endDate', 'displayDuration')


def _now():
    return datetime.now(timezone.utc)


def _as_utc(value, field):
    """Datetime (naive values are UTC) or ISO-8601 string to an aware datetime."""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError:
            value = None
    if not isinstance(value, datetime):
        raise AnnouncementServiceError(f'{field} must be a date and time.', INVALID_INPUT,
                                       'announcements.validate')
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def media_type_for(content_type):
    """'image' or 'video' from a MIME type; anything else is rejected."""
    kind = (content_type or '').split('/', 1)[0].lower()
    if kind not in MEDIA_TYPES:
        raise AnnouncementServiceError('Please upload an image or video file.', INVALID_INPUT,
                                       'announcements.media')
    return kind


def default_window(now=None):
    now = now or _now()
    return now, now + timedelta(days=DEFAULT_RUN_DAYS)


def _validate_schedule(record):
    start = _as_utc(record.get('startDate'), 'startDate')
    end = _as_utc(record.get('endDate'), 'endDate')
    if end <= start:
        raise AnnouncementServiceError('End date must be after start date.', INVALID_INPUT,
                                       'announcements.validate')
    try:
        duration = int(record.get('displayDuration', DEFAULT_DISPLAY_SECONDS))
    except (TypeError, ValueError):
        duration = 0
    if not MIN_DISPLAY_SECONDS <= duration <= MAX_DISPLAY_SECONDS:
        raise AnnouncementServiceError(
            f'Display duration must be between {MIN_DISPLAY_SECONDS} and {MAX_DISPLAY_SECONDS} seconds.',
            INVALID_INPUT, 'announcements.validate')
    record.update({'startDate': start, 'endDate': end, 'displayDuration': duration})
    return record


def is_current(announcement, now=None):
    now = now or _now()
    try:
        start = _as_utc(announcement.get('startDate'), 'startDate')
        end = _as_utc(announcement.get('endDate'), 'endDate')
    except AnnouncementServiceError:
        return False
    return bool(announcement.get('isActive')) and start <= now <= end


def to_json(announcement):
    """Copy with datetimes as ISO-8601 strings, for the dashboard script."""
    return {k: v.isoformat() if isinstance(v, datetime) else v for k, v in announcement.items()}


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def get_announcements():
    try:
        return dao.get_all_announcements()
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'announcements.get_all', AnnouncementServiceError)


def get_announcement(announcement_id):
    announcement = dao.get_announcement(announcement_id)
    if not announcement:
        raise AnnouncementServiceError('Announcement not found.', NOT_FOUND, 'announcements.get')
    return announcement


def get_active_announcements(now=None):
    """Current announcements, most recently started first."""
    now = now or _now()
    current = [a for a in get_announcements() if is_current(a, now)]
    return sorted(current, key=lambda a: _as_utc(a['startDate'], 'startDate'), reverse=True)


def get_dismissed_ids(user_id):
    """Announcement ids the user has dismissed; empty when they cannot be read."""
    try:
        return set(dao.get_dismissed_announcement_ids(user_id))
    except GoogleAPICallError as e:
        logger.warning('Error reading announcement preferences of %s: %s', user_id, e)
        return set()


def get_unseen_announcements(user_id, now=None):
    dismissed = get_dismissed_ids(user_id)
    return [a for a in get_active_announcements(now) if a['id'] not in dismissed]


def get_announcement_stats(now=None):
    now = now or _now()
    announcements = get_announcements()
    stats = {'total': len(announcements), 'active': 0, 'scheduled': 0, 'expired': 0, 'current': 0}
    for announcement in announcements:
        if announcement.get('isActive'):
            stats['active'] += 1
        if is_current(announcement, now):
            stats['current'] += 1
        try:
            if _as_utc(announcement.get('startDate'), 'startDate') > now:
                stats['scheduled'] += 1
            if _as_utc(announcement.get('endDate'), 'endDate') < now:
                stats['expired'] += 1
        except AnnouncementServiceError:
            logger.warning('Announcement %s has an unreadable schedule', announcement['id'])
    return stats


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

def add_announcement(file_data, filename, content_type, data, created_by=None):
    """Upload the media file and record the announcement. Returns its id."""
    media_type = media_type_for(content_type)
    record = _validate_schedule({
        'startDate': data.get('startDate'),
        'endDate': data.get('endDate'),
        'displayDuration': data.get('displayDuration', DEFAULT_DISPLAY_SECONDS),
    })

    try:
        path, url = storage.upload_announcement_media(file_data, filename, content_type)
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'announcements.upload', AnnouncementServiceError)

    record.update({
        'mediaUrl': url,
        'mediaType': media_type,
        'storagePath': path,
        'isActive': bool(data.get('isActive', True)),
        'createdBy': created_by or '',
    })
    try:
        announcement_id = dao.create_announcement(record)
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'announcements.add', AnnouncementServiceError)
    logger.info('Announcement %s (%s) added by %s', announcement_id, media_type, created_by)
    return announcement_id


def update_announcement(announcement_id, updates, updated_by=None):
    announcement = get_announcement(announcement_id)
    changes = {k: updates[k] for k in _EDITABLE_FIELDS if k in updates}
    if not changes:
        raise AnnouncementServiceError('Nothing to update.', INVALID_INPUT, 'announcements.update')
    if {'startDate', 'endDate', 'displayDuration'} & changes.keys():
        schedule = {k: changes.get(k, announcement.get(k)) for k in ('startDate', 'endDate', 'displayDuration')}
        changes.update(_validate_schedule(schedule))
    if 'isActive' in changes:
        changes['isActive'] = bool(changes['isActive'])
    if updated_by:
        changes['updatedBy'] = updated_by
    try:
        dao.update_announcement(announcement_id, changes)
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'announcements.update', AnnouncementServiceError)


def delete_announcement(announcement_id):
    """Delete the announcement and, best effort, its media object."""
    announcement = get_announcement(announcement_id)
    try:
        dao.delete_announcement(announcement_id)
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'announcements.delete', AnnouncementServiceError)

    if announcement.get('storagePath'):
        try:
            storage.delete_file(announcement['storagePath'])
        except (GoogleAPICallError, PhotoServiceError) as e:
            logger.warning('Could not delete storage object %s: %s', announcement['storagePath'], e)


def dismiss_announcement(user_id, announcement_id):
    get_announcement(announcement_id)
    try:
        dao.dismiss_announcement(user_id, announcement_id)
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'announcements.dismiss', AnnouncementServiceError)


def clear_dismissed_announcements(user_id):
    try:
        cleared = dao.clear_dismissed_announcements(user_id)
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'announcements.clear', AnnouncementServiceError)
    logger.info('Cleared %d dismissed announcement(s) for %s', cleared, user_id)
    return cleared
