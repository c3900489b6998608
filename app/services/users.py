"""
User lifecycle across Firebase Auth, ``users`` and ``students``.

A student-role account lives in two collections: ``users/<rollNumber>`` and
``students/<rollNumber>``. The writes are sequential and not transactional;
if the second one fails the collections drift apart until someone runs the
sync diagnostics (see ``app.services.sync``). Secondary clean-up steps on
deletion are best effort: failures are logged and the primary operation is
still reported as successful.
"""

import logging

from firebase_admin.exceptions import FirebaseError
from google.api_core.exceptions import GoogleAPICallError

from app import firestore_dao as dao
from app.errors import (AUTH_WEAK_PASSWORD, INVALID_INPUT, NOT_FOUND, UserServiceError,
                        handle_firebase_error, validate_email, validate_required_fields,
                        validate_roll_number)
from app.firebase_init import get_auth
from app.firestore_models import ROLES, Student, User

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

# Fields copied onto the students mirror when a student user is edited.
STUDENT_MIRROR_FIELDS = ('firstName', 'lastName', 'email', 'phone', 'address', 'class')


def create_user(email, password, user_data, created_by):
    """Create the auth account and the user document (plus student record).

    Returns a dict with the new auth ``userId`` and the Firestore
    ``documentId`` the profile was written under.
    """
    validate_required_fields(user_data, ['firstName', 'lastName', 'role'], 'users.create')
    validate_email(email, 'users.create')
    if user_data.get('rollNumber'):
        validate_roll_number(user_data['rollNumber'], 'users.create', UserServiceError)
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise UserServiceError('Password should be at least 6 characters long.',
                               AUTH_WEAK_PASSWORD, 'users.create')
    if user_data['role'] not in ROLES:
        raise UserServiceError(f"Unknown role: {user_data['role']}", INVALID_INPUT, 'users.create')

    auth = get_auth()
    try:
        record = auth.create_user(email=email, password=password)
    except (FirebaseError, ValueError) as e:
        raise handle_firebase_error(e, 'users.create', UserServiceError)

    user = User.from_dict(user_data)
    user.uid = record.uid
    user.email = email
    user.created_by = created_by
    document_id = user.document_id()

    try:
        profile = {**user_data, **user.to_dict()}
        dao.set_user(document_id, profile)

        if user.has_student_record():
            student = Student.from_user(user, user_data)
            dao.set_student(user.roll_number, student.to_dict())
        elif user.is_student():
            logger.warning(
                'Student user %s created without a students record; missing: %s',
                email, ', '.join(user.missing_student_fields()),
            )
    except GoogleAPICallError as e:
        logger.error('Auth account %s created but profile write failed', record.uid)
        raise handle_firebase_error(e, 'users.create', UserServiceError)

    logger.info('User %s created by %s as %s', email, created_by, document_id)
    return {'userId': record.uid, 'documentId': document_id}


def _delete_student_record(roll_number):
    """Best-effort removal of a students document. Returns True if removed."""
    try:
        if not dao.get_student(roll_number):
            return False
        dao.delete_student(roll_number)
        return True
    except GoogleAPICallError as e:
        logger.warning('Could not delete associated student record %s: %s', roll_number, e)
        return False


def delete_user_from_auth(email):
    """Delete the auth credential registered for ``email``."""
    auth = get_auth()
    try:
        record = auth.get_user_by_email(email)
        auth.delete_user(record.uid)
    except (FirebaseError, ValueError) as e:
        raise handle_firebase_error(e, 'users.delete_from_auth', UserServiceError)
    logger.info('User %s deleted from Firebase Authentication', email)


def delete_user_completely(user_id, email=None):
    """Delete the user document, then its student record and auth credential.

    Only the ``users`` deletion can fail the call. The student record and
    the auth credential are removed best effort and never roll anything back.
    """
    target = dao.get_user(user_id)
    email = email or (target or {}).get('email')

    try:
        dao.delete_user(user_id)
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'users.delete', UserServiceError)

    student_deleted = False
    if target is None or target.get('role') == 'student':
        roll_number = (target or {}).get('rollNumber') or user_id
        student_deleted = _delete_student_record(roll_number)

    auth_deleted = False
    if email:
        try:
            delete_user_from_auth(email)
            auth_deleted = True
        except UserServiceError as e:
            logger.warning('Could not delete user %s from Firebase Auth: %s', email, e.original_error)

    logger.info('User %s deleted (student record: %s, auth: %s)', user_id, student_deleted, auth_deleted)
    return {
        'success': True,
        'message': f'User {email or user_id} deleted completely',
        'studentDeleted': student_deleted,
        'authDeleted': auth_deleted,
    }


def update_user(user_id, data):
    """Update a user and mirror shared fields onto the student record."""
    existing = dao.get_user(user_id)
    if not existing:
        raise UserServiceError('User not found in database', NOT_FOUND, 'users.update')
    data = {k: v for k, v in data.items() if v is not None}
    try:
        dao.update_user(user_id, data)
    except GoogleAPICallError as e:
        raise handle_firebase_error(e, 'users.update', UserServiceError)

    roll_number = existing.get('rollNumber')
    mirror = {k: data[k] for k in STUDENT_MIRROR_FIELDS if k in data}
    if existing.get('role') == 'student' and roll_number and mirror:
        try:
            if dao.get_student(roll_number):
                dao.update_student(roll_number, mirror)
        except GoogleAPICallError as e:
            logger.warning('Could not mirror user %s onto student record: %s', user_id, e)


def get_user_by_id(user_id):
    return dao.get_user(user_id)


def get_all_users():
    return dao.get_all_users()


def get_users_by_role(role):
    return dao.get_users_by_role(role)


def search_users(query):
    """Case-insensitive match on name, email or roll number."""
    needle = query.lower()
    return [
        u for u in dao.get_all_users()
        if needle in (u.get('firstName') or '').lower()
        or needle in (u.get('lastName') or '').lower()
        or needle in (u.get('email') or '').lower()
        or needle in (u.get('rollNumber') or '').lower()
    ]
