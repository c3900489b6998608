"""Events (with auto-expiry) and the photo gallery."""

import logging
from datetime import date

from google.api_core.exceptions import GoogleAPICallError

from app import firestore_dao as dao
from app.errors import (EventServiceError, NOT_FOUND, PhotoServiceError, handle_firebase_error,
                        validate_required_fields)
from app.services import storage
from app.utils import parse_date

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

def _is_past(event, today):
    try:
        return parse_date(event.get('date', '')[:10]) < today
    except (TypeError, ValueError):
        return False


def expire_past_events(events, today=None):
    """Mark active events dated before today inactive.

    Failures are logged and swallowed so listing events still works.
    """
    today = today or date.today()
    expired = [e for e in events if e.get('isActive') and _is_past(e, today)]
    if not expired:
        return []
    try:
        dao.deactivate_events([e['id'] for e in expired])
    except GoogleAPICallError as e:
        logger.warning('Error auto-expiring %d past events: %s', len(expired), e)
        return []
    for event in expired:
        event['isActive'] = False
    logger.info('Auto-expired %d past events', len(expired))
    return [e['id'] for e in expired]


def get_all_events(today=None):
    try:
        events = dao.get_all_events()
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'events.get_all', EventServiceError)
    expire_past_events(events, today)
    return events


def get_active_events(today=None):
    """Active events, soonest first."""
    events = [e for e in get_all_events(today) if e.get('isActive')]
    return sorted(events, key=lambda e: e.get('date', ''))


def get_events_by_date_range(start_date, end_date):
    events = [e for e in get_all_events() if start_date <= e.get('date', '')[:10] <= end_date]
    return sorted(events, key=lambda e: e.get('date', ''))


def add_event(data, created_by=None):
    validate_required_fields(data, ['title', 'date'], 'events.add')
    record = {
        'title': data['title'],
        'description': data.get('description', ''),
        'date': data['date'],
        'time': data.get('time', ''),
        'location': data.get('location', ''),
        'isActive': data.get('isActive', True),
    }
    if created_by:
        record['createdBy'] = created_by
    try:
        event_id = dao.create_event(record)
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'events.add', EventServiceError)
    logger.info('Event %s added for %s', record['title'], record['date'])
    return event_id


def update_event(event_id, data):
    if not dao.get_event(event_id):
        raise EventServiceError('Event not found.', NOT_FOUND, 'events.update')
    try:
        dao.update_event(event_id, data)
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'events.update', EventServiceError)


def delete_event(event_id):
    try:
        dao.delete_event(event_id)
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'events.delete', EventServiceError)


# ---------------------------------------------------------------------------
# Photos
# ---------------------------------------------------------------------------

def get_all_photos():
    return dao.get_all_photos()


def get_photos_by_category(category):
    try:
        return dao.get_photos_by_category(category)
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'photos.by_category', PhotoServiceError)


def upload_photo_with_metadata(file_data, filename, metadata, content_type=None):
    """Upload the image, then record it in ``photos``. Returns the photo id."""
    validate_required_fields(metadata, ['title', 'category'], 'photos.upload')
    try:
        path, url = storage.upload_photo(file_data, filename, content_type)
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'photos.upload', PhotoServiceError)

    record = {
        'title': metadata['title'],
        'description': metadata.get('description', ''),
        'category': metadata['category'],
        'imageUrl': url,
        'storagePath': path,
    }
    try:
        photo_id = dao.create_photo(record)
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'photos.add', PhotoServiceError)
    logger.info('Photo %s uploaded to %s', photo_id, path)
    return photo_id


def update_photo(photo_id, data):
    try:
        dao.update_photo(photo_id, data)
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'photos.update', PhotoServiceError)


def delete_photo(photo_id):
    """Delete the photo record and, best effort, its storage object."""
    photo = dao.get_photo(photo_id)
    if not photo:
        raise PhotoServiceError('Photo not found.', NOT_FOUND, 'photos.delete')
    try:
        dao.delete_photo(photo_id)
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'photos.delete', PhotoServiceError)

    if photo.get('storagePath'):
        try:
            storage.delete_file(photo['storagePath'])
        except (GoogleAPICallError, PhotoServiceError) as e:
            logger.warning('Could not delete storage object %s: %s', photo['storagePath'], e)
