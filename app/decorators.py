import logging
from functools import wraps

from firebase_admin.exceptions import FirebaseError
from flask import request, redirect, url_for, flash, g, session, jsonify

from app import firestore_dao as dao
from app.firebase_init import get_auth

logger = logging.getLogger(__name__)


def _verify_session():
    """Verify Firebase session cookie and load the caller's user document."""
    session_cookie = session.get('firebase_session')
    if not session_cookie:
        return None

    auth = get_auth()
    try:
        decoded = auth.verify_session_cookie(session_cookie, check_revoked=True)
    except (FirebaseError, ValueError) as e:
        logger.info('Rejected session cookie: %s', e)
        return None

    uid = decoded['uid']
    # Student documents are keyed by roll number, so fall back to the uid field.
    user_data = dao.get_user_by_uid(uid)
    if not user_data:
        return None
    user_data['uid'] = uid
    return user_data


class CurrentUser:
    """Proxy object providing attribute access to the current user dict."""

    def __init__(self, data=None):
        self._data = data or {}

    def __getattr__(self, name):
        if name.startswith('_'):
            raise AttributeError(name)
        return self._data.get(name)

    def __getitem__(self, key):
        return self._data[key]

    def __contains__(self, key):
        return key in self._data

    def get(self, key, default=None):
        return self._data.get(key, default)

    @property
    def is_authenticated(self):
        return bool(self._data)

    @property
    def uid(self):
        return self._data.get('uid', '')

    @property
    def id(self):
        """Document id in ``users``: roll number for students, uid otherwise."""
        return self._data.get('id') or self.uid

    @property
    def role(self):
        return self._data.get('role', 'student')

    @property
    def display_name(self):
        name = f"{self._data.get('firstName', '')} {self._data.get('lastName', '')}".strip()
        return name or self._data.get('email', '')

    @property
    def initial(self):
        name = self.display_name
        return name[0].upper() if name else '?'

    def is_admin(self):
        return self.role == 'admin'

    def is_teacher(self):
        return self.role == 'teacher'

    def is_student(self):
        return self.role == 'student'

    def actor(self):
        """Who-did-it snapshot stored on attendance and holiday records."""
        return {'userId': self.id, 'name': self.display_name, 'email': self.email or ''}

    def audit(self):
        return {
            'userId': self.id,
            'userName': self.display_name,
            'userEmail': self.email or '',
            'userRole': self.role,
        }


def load_current_user():
    """Load current user into g before each request."""
    if hasattr(g, '_current_user'):
        return
    user_data = _verify_session()
    g._current_user = CurrentUser(user_data)


def get_current_user():
    if not hasattr(g, '_current_user'):
        load_current_user()
    return g._current_user


def auth_required(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        user = get_current_user()
        if not user.is_authenticated:
            flash('Please sign in to continue.', 'info')
            return redirect(url_for('auth.login', next=request.url))
        g.current_user = user
        return f(*args, **kwargs)
    return decorated


def role_required(*roles):
    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            user = get_current_user()
            if not user.is_authenticated:
                flash('Please sign in to continue.', 'info')
                return redirect(url_for('auth.login', next=request.url))
            if user.role not in roles:
                flash('You do not have access to that page.', 'danger')
                return redirect(url_for('main.dashboard'))
            g.current_user = user
            return f(*args, **kwargs)
        return decorated
    return decorator


def api_role_required(*roles):
    """Like role_required, but answers JSON 401/403 for API views."""
    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            user = get_current_user()
            if not user.is_authenticated:
                return jsonify({'error': 'Authentication required', 'code': 'unauthenticated'}), 401
            if roles and user.role not in roles:
                return jsonify({'error': 'You do not have permission to perform this action.',
                                'code': 'permission-denied'}), 403
            g.current_user = user
            return f(*args, **kwargs)
        return decorated
    return decorator
