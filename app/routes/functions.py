"""
Callable user-lifecycle functions.

Requests follow the Firebase callable protocol: the body is
``{"data": {...}}``, the caller's ID token travels as
``Authorization: Bearer <token>``, and the reply is either
``{"result": ...}`` or ``{"error": {"status": ..., "message": ...}}``.
"""

import logging
from functools import wraps

from firebase_admin.exceptions import FirebaseError
from flask import Blueprint, jsonify, request, g

from app import firestore_dao as dao
from app.errors import (AUTH_EMAIL_ALREADY_IN_USE, AUTH_INVALID_EMAIL, AUTH_USER_NOT_FOUND,
                        AUTH_WEAK_PASSWORD, INVALID_INPUT, FirebaseServiceError, HttpsError)
from app.firebase_init import get_auth
from app.services import users as user_service

logger = logging.getLogger(__name__)

bp = Blueprint('functions', __name__, url_prefix='/functions')

_ARGUMENT_CODES = (INVALID_INPUT, AUTH_INVALID_EMAIL, AUTH_WEAK_PASSWORD)


def _caller_uid():
    header = request.headers.get('Authorization', '')
    if not header.startswith('Bearer '):
        raise HttpsError('UNAUTHENTICATED', 'User must be authenticated')
    try:
        decoded = get_auth().verify_id_token(header[len('Bearer '):])
    except (FirebaseError, ValueError) as e:
        logger.warning('Rejected callable token: %s', e)
        raise HttpsError('UNAUTHENTICATED', 'User must be authenticated')
    return decoded['uid']


def admin_callable(action):
    """Authenticate the caller, require an admin profile, unwrap ``data``."""
    def decorator(f):
        @wraps(f)
        def decorated():
            uid = _caller_uid()
            caller = dao.get_user_by_uid(uid)
            if not caller:
                raise HttpsError('NOT_FOUND', 'User not found')
            if caller.get('role') != 'admin':
                raise HttpsError('PERMISSION_DENIED', f'Only admins can {action}')
            g.caller_uid = uid
            payload = request.get_json(silent=True) or {}
            data = payload.get('data')
            return jsonify({'result': f(data if isinstance(data, dict) else {})})
        return decorated
    return decorator


@bp.route('/createUser', methods=['POST'])
@admin_callable('create users')
def create_user(data):
    email, password, user_data = data.get('email'), data.get('password'), data.get('userData')
    if not email or not password or not isinstance(user_data, dict):
        raise HttpsError('INVALID_ARGUMENT', 'Email, password, and user data are required')
    try:
        created = user_service.create_user(email, password, user_data, created_by=g.caller_uid)
    except FirebaseServiceError as e:
        if e.code in _ARGUMENT_CODES:
            raise HttpsError('INVALID_ARGUMENT', e.message)
        if e.code == AUTH_EMAIL_ALREADY_IN_USE:
            raise HttpsError('ALREADY_EXISTS', e.message)
        logger.error('createUser failed for %s: %s', email, e.original_error or e)
        raise HttpsError('INTERNAL', 'Failed to create user')
    return {
        'success': True,
        'message': f'User {email} created successfully',
        'userId': created['userId'],
        'documentId': created['documentId'],
    }


@bp.route('/deleteUserCompletely', methods=['POST'])
@admin_callable('delete users')
def delete_user_completely(data):
    user_id, email = data.get('userId'), data.get('email')
    if not user_id or not email:
        raise HttpsError('INVALID_ARGUMENT', 'User ID and email are required')
    try:
        return user_service.delete_user_completely(user_id, email)
    except FirebaseServiceError as e:
        logger.error('deleteUserCompletely failed for %s: %s', user_id, e.original_error or e)
        raise HttpsError('INTERNAL', 'Failed to delete user completely')


@bp.route('/deleteUserFromAuth', methods=['POST'])
@admin_callable('delete users')
def delete_user_from_auth(data):
    email = data.get('email')
    if not email:
        raise HttpsError('INVALID_ARGUMENT', 'Email is required')
    try:
        user_service.delete_user_from_auth(email)
    except FirebaseServiceError as e:
        if e.code == AUTH_USER_NOT_FOUND:
            raise HttpsError('NOT_FOUND', e.message)
        raise HttpsError('INTERNAL', 'Failed to delete user from Firebase Auth')
    return {'success': True, 'message': f'User {email} deleted successfully'}
