import logging
from datetime import timedelta
from urllib.parse import urlparse

import requests as http_requests
from firebase_admin.exceptions import FirebaseError
from flask import (Blueprint, render_template, redirect, url_for, flash,
                   request, session, current_app)

from app.decorators import get_current_user
from app.errors import (AUTH_INVALID_EMAIL, AUTH_USER_NOT_FOUND, AUTH_WRONG_PASSWORD,
                        RESOURCE_EXHAUSTED, UNAVAILABLE, UNKNOWN_ERROR, message_for_code)
from app.firebase_init import get_auth
from app.forms import ForgotPasswordForm, LoginForm

logger = logging.getLogger(__name__)

bp = Blueprint('auth', __name__, url_prefix='/auth')

IDENTITY_TOOLKIT_URL = 'https://identitytoolkit.googleapis.com/v1/accounts'

# Identity Toolkit REST error messages -> our error codes
_REST_ERROR_CODES = {
    'EMAIL_NOT_FOUND': AUTH_USER_NOT_FOUND,
    'INVALID_PASSWORD': AUTH_WRONG_PASSWORD,
    'INVALID_LOGIN_CREDENTIALS': AUTH_WRONG_PASSWORD,
    'INVALID_EMAIL': AUTH_INVALID_EMAIL,
    'TOO_MANY_ATTEMPTS_TRY_LATER': RESOURCE_EXHAUSTED,
}


def _rest_error_code(resp):
    try:
        message = resp.json().get('error', {}).get('message', '')
    except ValueError:
        return UNKNOWN_ERROR
    # e.g. "TOO_MANY_ATTEMPTS_TRY_LATER : Access to this account has been temporarily disabled"
    return _REST_ERROR_CODES.get(message.split(' ')[0], UNKNOWN_ERROR)


def _firebase_sign_in(email, password):
    """Verify email/password via Firebase Auth REST API.

    Returns ``(id_token, error_code)``; exactly one of them is None.
    """
    api_key = current_app.config.get('FIREBASE_WEB_API_KEY')
    if not api_key:
        logger.error('FIREBASE_WEB_API_KEY is not configured; password sign-in is unavailable')
        return None, UNKNOWN_ERROR

    try:
        resp = http_requests.post(
            f'{IDENTITY_TOOLKIT_URL}:signInWithPassword?key={api_key}',
            json={
                'email': email,
                'password': password,
                'returnSecureToken': True,
            },
            timeout=10,
        )
    except http_requests.RequestException as e:
        logger.error('Sign-in request failed: %s', e)
        return None, UNAVAILABLE
    if resp.status_code == 200:
        return resp.json().get('idToken'), None
    return None, _rest_error_code(resp)


def _send_password_reset(email):
    api_key = current_app.config.get('FIREBASE_WEB_API_KEY')
    if not api_key:
        return False
    try:
        resp = http_requests.post(
            f'{IDENTITY_TOOLKIT_URL}:sendOobCode?key={api_key}',
            json={'requestType': 'PASSWORD_RESET', 'email': email},
            timeout=10,
        )
    except http_requests.RequestException as e:
        logger.error('Password reset request failed: %s', e)
        return False
    if resp.status_code != 200:
        logger.info('Password reset for %s not sent (%s)', email, _rest_error_code(resp))
    return resp.status_code == 200


def is_safe_url(target):
    if not target:
        return False
    ref_url = urlparse(request.host_url)
    test_url = urlparse(target)
    return test_url.scheme in ('', 'http', 'https') and ref_url.netloc == test_url.netloc


@bp.route('/login', methods=['GET', 'POST'])
def login():
    current_user = get_current_user()
    if current_user.is_authenticated:
        return redirect(url_for('main.dashboard'))

    form = LoginForm()
    if form.validate_on_submit():
        # Verify credentials via Firebase Auth REST API
        id_token, error_code = _firebase_sign_in(form.email.data, form.password.data)
        if id_token:
            auth = get_auth()
            try:
                expires_in = timedelta(days=current_app.config.get('SESSION_COOKIE_DAYS', 5))
                session['firebase_session'] = auth.create_session_cookie(id_token, expires_in=expires_in)
            except (FirebaseError, ValueError) as e:
                logger.error('Session cookie creation failed for %s: %s', form.email.data, e)
                flash(message_for_code(UNKNOWN_ERROR), 'danger')
                return render_template('auth/login.html', form=form)

            logger.info('%s signed in', form.email.data)
            flash('Signed in successfully.', 'success')
            next_page = request.args.get('next')
            if next_page and is_safe_url(next_page):
                return redirect(next_page)
            return redirect(url_for('main.dashboard'))

        flash(message_for_code(error_code), 'danger')

    return render_template('auth/login.html', form=form)


@bp.route('/logout')
def logout():
    session.pop('firebase_session', None)
    flash('You have been signed out.', 'success')
    return redirect(url_for('main.index'))


@bp.route('/forgot-password', methods=['GET', 'POST'])
def forgot_password():
    form = ForgotPasswordForm()
    if form.validate_on_submit():
        _send_password_reset(form.email.data)
        # Same message whether or not the account exists.
        flash('If an account exists for that email, a reset link has been sent.', 'info')
        return redirect(url_for('auth.login'))
    return render_template('auth/forgot_password.html', form=form)
