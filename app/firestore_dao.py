"""
Firestore Data Access Object (DAO) layer.

Route handlers and services call functions from this module instead of
talking to Firestore directly. Every reader returns plain dicts carrying an
``id`` key with the document ID; writers stamp ``createdAt`` / ``updatedAt``.
"""

from datetime import datetime, timezone

from google.cloud.firestore_v1 import FieldFilter, Increment

from app.firebase_init import get_db


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _doc_to_dict(doc_snapshot):
    """Convert a Firestore DocumentSnapshot to a dict with 'id' field."""
    if not doc_snapshot.exists:
        return None
    d = doc_snapshot.to_dict()
    d['id'] = doc_snapshot.id
    return d


def _query_to_list(query_ref):
    """Run a query and return a list of dicts."""
    return [_doc_to_dict(doc) for doc in query_ref.stream()]


def _first(query_ref):
    for doc in query_ref.limit(1).stream():
        return _doc_to_dict(doc)
    return None


def _now():
    return datetime.now(timezone.utc)


def _add(collection, data):
    data.setdefault('createdAt', _now())
    _, doc_ref = get_db().collection(collection).add(data)
    return doc_ref.id


def _update(collection, doc_id, data):
    data.setdefault('updatedAt', _now())
    get_db().collection(collection).document(doc_id).update(data)


def _delete(collection, doc_id):
    get_db().collection(collection).document(doc_id).delete()


def _get(collection, doc_id):
    if not doc_id:
        return None
    return _doc_to_dict(get_db().collection(collection).document(doc_id).get())


# ========================================================================
# Users  (collection: users)
# ========================================================================

def get_user(doc_id):
    """Get a user document by document ID (roll number or UID)."""
    return _get('users', doc_id)


def get_user_by_uid(uid):
    """Get a user by Firebase Auth UID.

    Staff documents are keyed by UID; student documents are keyed by roll
    number and carry the UID in a ``uid`` field.
    """
    user = get_user(uid)
    if user:
        return user
    return _first(
        get_db().collection('users')
        .where(filter=FieldFilter('uid', '==', uid))
    )


def get_user_by_email(email):
    """Get a user by email address. Returns dict or None."""
    return _first(
        get_db().collection('users')
        .where(filter=FieldFilter('email', '==', email))
    )


def get_all_users():
    return _query_to_list(get_db().collection('users'))


def get_users_by_role(role):
    return _query_to_list(
        get_db().collection('users')
        .where(filter=FieldFilter('role', '==', role))
    )


def set_user(doc_id, data):
    """Create or overwrite a user document under the given ID."""
    data.setdefault('createdAt', _now())
    get_db().collection('users').document(doc_id).set(data)


def update_user(doc_id, data):
    _update('users', doc_id, data)


def delete_user(doc_id):
    _delete('users', doc_id)


# ========================================================================
# Students  (collection: students)
# ========================================================================

def get_student(roll_number):
    """Get a student by document ID (the roll number)."""
    return _get('students', roll_number)


def get_student_by_roll_number(roll_number):
    """Get a student by roll number, falling back to a field query for
    records created before documents were keyed by roll number."""
    student = get_student(roll_number)
    if student:
        return student
    return _first(
        get_db().collection('students')
        .where(filter=FieldFilter('rollNumber', '==', roll_number))
    )


def get_student_by_auth_uid(auth_uid):
    return _first(
        get_db().collection('students')
        .where(filter=FieldFilter('authUid', '==', auth_uid))
    )


def get_all_students():
    return _query_to_list(get_db().collection('students'))


def get_students_by_class(class_name):
    """Get all students in a class ordered by first name."""
    return _query_to_list(
        get_db().collection('students')
        .where(filter=FieldFilter('class', '==', class_name))
        .order_by('firstName')
    )


def set_student(roll_number, data):
    data.setdefault('createdAt', _now())
    get_db().collection('students').document(roll_number).set(data)


def update_student(doc_id, data):
    _update('students', doc_id, data)


def delete_student(doc_id):
    _delete('students', doc_id)


# ========================================================================
# Attendance  (collection: attendance)
# ========================================================================

def get_attendance_by_class_and_date(class_name, date):
    """Get the attendance record of a class on a date. Returns dict or None."""
    return _first(
        get_db().collection('attendance')
        .where(filter=FieldFilter('class', '==', class_name))
        .where(filter=FieldFilter('date', '==', date))
    )


def get_attendance_by_date(date):
    return _query_to_list(
        get_db().collection('attendance')
        .where(filter=FieldFilter('date', '==', date))
    )


def get_attendance_by_date_range(start_date, end_date):
    """Get attendance records with start_date <= date <= end_date, newest first."""
    return _query_to_list(
        get_db().collection('attendance')
        .where(filter=FieldFilter('date', '>=', start_date))
        .where(filter=FieldFilter('date', '<=', end_date))
        .order_by('date', direction='DESCENDING')
    )


def get_all_attendance():
    return _query_to_list(
        get_db().collection('attendance')
        .order_by('date', direction='DESCENDING')
    )


def create_attendance(data):
    """Create an attendance record. Returns the generated doc ID."""
    return _add('attendance', data)


def update_attendance(attendance_id, data):
    _update('attendance', attendance_id, data)


# ========================================================================
# Holidays  (collection: holidays)
# ========================================================================

def get_holiday(holiday_id):
    return _get('holidays', holiday_id)


def get_all_holidays():
    return _query_to_list(get_db().collection('holidays'))


def create_holiday(data):
    return _add('holidays', data)


def update_holiday(holiday_id, data):
    _update('holidays', holiday_id, data)


def delete_holiday(holiday_id):
    _delete('holidays', holiday_id)


# ========================================================================
# Events  (collection: events)
# ========================================================================

def get_event(event_id):
    return _get('events', event_id)


def get_all_events():
    return _query_to_list(get_db().collection('events'))


def get_active_events():
    return _query_to_list(
        get_db().collection('events')
        .where(filter=FieldFilter('isActive', '==', True))
    )


def create_event(data):
    return _add('events', data)


def update_event(event_id, data):
    _update('events', event_id, data)


def delete_event(event_id):
    _delete('events', event_id)


def deactivate_events(event_ids):
    """Mark several events inactive in one batch."""
    if not event_ids:
        return
    db = get_db()
    batch = db.batch()
    now = _now()
    for event_id in event_ids:
        batch.update(db.collection('events').document(event_id),
                     {'isActive': False, 'updatedAt': now})
    batch.commit()


# ========================================================================
# Photos  (collection: photos)
# ========================================================================

def get_photo(photo_id):
    return _get('photos', photo_id)


def get_all_photos():
    return _query_to_list(get_db().collection('photos'))


def get_photos_by_category(category):
    """Get photos of a category, newest upload first."""
    return _query_to_list(
        get_db().collection('photos')
        .where(filter=FieldFilter('category', '==', category))
        .order_by('uploadedAt', direction='DESCENDING')
    )


def create_photo(data):
    data.setdefault('uploadedAt', _now())
    _, doc_ref = get_db().collection('photos').add(data)
    return doc_ref.id


def update_photo(photo_id, data):
    _update('photos', photo_id, data)


def delete_photo(photo_id):
    _delete('photos', photo_id)


# ========================================================================
# Remarks  (collection: remarks)
# ========================================================================

def get_remark(remark_id):
    return _get('remarks', remark_id)


def get_remarks(class_name=None):
    """Get remarks, optionally for one class."""
    q = get_db().collection('remarks')
    if class_name and class_name != 'all':
        q = q.where(filter=FieldFilter('class', '==', class_name))
    return _query_to_list(q)


def get_remarks_by_student(student_id):
    return _query_to_list(
        get_db().collection('remarks')
        .where(filter=FieldFilter('studentId', '==', student_id))
    )


def create_remark(data):
    return _add('remarks', data)


def update_remark(remark_id, data):
    _update('remarks', remark_id, data)


def delete_remark(remark_id):
    _delete('remarks', remark_id)


# ========================================================================
# Academic Reports  (collection: academicReports)
# ========================================================================

def get_academic_report(report_id):
    return _get('academicReports', report_id)


def get_academic_reports(class_name=None):
    q = get_db().collection('academicReports')
    if class_name and class_name != 'all':
        q = q.where(filter=FieldFilter('class', '==', class_name))
    return _query_to_list(q)


def get_academic_reports_by_student(student_id):
    return _query_to_list(
        get_db().collection('academicReports')
        .where(filter=FieldFilter('studentId', '==', student_id))
    )


def create_academic_report(data):
    return _add('academicReports', data)


def update_academic_report(report_id, data):
    _update('academicReports', report_id, data)


def delete_academic_report(report_id):
    _delete('academicReports', report_id)


# ========================================================================
# Financial Records  (collection: financialRecords)
# ========================================================================

def get_financial_record(record_id):
    return _get('financialRecords', record_id)


def get_all_financial_records():
    return _query_to_list(get_db().collection('financialRecords'))


def get_financial_records_by_type(record_type):
    """Get income or expense records, newest first."""
    return _query_to_list(
        get_db().collection('financialRecords')
        .where(filter=FieldFilter('type', '==', record_type))
        .order_by('date', direction='DESCENDING')
    )


def get_financial_records_by_date_range(start_date, end_date):
    return _query_to_list(
        get_db().collection('financialRecords')
        .where(filter=FieldFilter('date', '>=', start_date))
        .where(filter=FieldFilter('date', '<=', end_date))
        .order_by('date', direction='DESCENDING')
    )


def create_financial_record(data):
    return _add('financialRecords', data)


def update_financial_record(record_id, data):
    _update('financialRecords', record_id, data)


def delete_financial_record(record_id):
    _delete('financialRecords', record_id)


# ========================================================================
# Announcements  (collection: announcements,
#                 subcollection: users/<id>/announcementPreferences)
# ========================================================================

def _announcement_preferences(user_id):
    return get_db().collection('users').document(user_id).collection('announcementPreferences')


def get_announcement(announcement_id):
    return _get('announcements', announcement_id)


def get_all_announcements():
    """All announcements, newest first."""
    return _query_to_list(
        get_db().collection('announcements')
        .order_by('createdAt', direction='DESCENDING')
    )


def create_announcement(data):
    return _add('announcements', data)


def update_announcement(announcement_id, data):
    _update('announcements', announcement_id, data)


def delete_announcement(announcement_id):
    _delete('announcements', announcement_id)


def get_dismissed_announcement_ids(user_id):
    return [doc.id for doc in _announcement_preferences(user_id).stream()]


def dismiss_announcement(user_id, announcement_id):
    now = _now()
    _announcement_preferences(user_id).document(announcement_id).set(
        {'dismissedAt': now, 'lastViewed': now, 'viewCount': Increment(1)},
        merge=True,
    )


def clear_dismissed_announcements(user_id):
    """Delete every dismissal of a user; returns how many were removed."""
    prefs = _announcement_preferences(user_id)
    ids = [doc.id for doc in prefs.stream()]
    for announcement_id in ids:
        prefs.document(announcement_id).delete()
    return len(ids)


# ========================================================================
# WhatsApp  (collections: whatsapp_messages, whatsapp_users)
# ========================================================================

def save_whatsapp_message(message_id, data):
    """Store a message under its provider message ID."""
    data.setdefault('createdAt', _now())
    get_db().collection('whatsapp_messages').document(message_id).set(data)


def get_conversation_history(phone_number, limit=10):
    """Get the latest messages sent by a phone number, oldest first."""
    messages = _query_to_list(
        get_db().collection('whatsapp_messages')
        .where(filter=FieldFilter('from', '==', phone_number))
        .order_by('timestamp', direction='DESCENDING')
        .limit(limit)
    )
    messages.reverse()
    return messages


def get_whatsapp_user(phone_number):
    return _get('whatsapp_users', phone_number)


def create_whatsapp_user(phone_number, data):
    get_db().collection('whatsapp_users').document(phone_number).set(data)


def update_whatsapp_user(phone_number, data):
    get_db().collection('whatsapp_users').document(phone_number).update(data)
