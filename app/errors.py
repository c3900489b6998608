"""
Error types and provider error translation.

Firebase Admin and Google Cloud client errors are normalised to a short
code (``auth/user-not-found``, ``permission-denied``, ...) and then looked up
in ``ERROR_MESSAGES`` to get the text shown to users. Codes that are not in
the table fall back to the generic "unknown-error" message.
"""

import re
import logging

import email_validator
from firebase_admin import auth as firebase_auth
from firebase_admin import exceptions as firebase_exceptions
from google.api_core import exceptions as gcloud_exceptions

logger = logging.getLogger(__name__)


AUTH_USER_NOT_FOUND = 'auth/user-not-found'
AUTH_WRONG_PASSWORD = 'auth/wrong-password'
AUTH_EMAIL_ALREADY_IN_USE = 'auth/email-already-in-use'
AUTH_WEAK_PASSWORD = 'auth/weak-password'
AUTH_INVALID_EMAIL = 'auth/invalid-email'
AUTH_REQUIRES_RECENT_LOGIN = 'auth/requires-recent-login'

PERMISSION_DENIED = 'permission-denied'
NOT_FOUND = 'not-found'
ALREADY_EXISTS = 'already-exists'
RESOURCE_EXHAUSTED = 'resource-exhausted'
UNAVAILABLE = 'unavailable'

STORAGE_UNAUTHORIZED = 'storage/unauthorized'
STORAGE_QUOTA_EXCEEDED = 'storage/quota-exceeded'
STORAGE_UNAUTHENTICATED = 'storage/unauthenticated'

INVALID_INPUT = 'invalid-input'
OPERATION_FAILED = 'operation-failed'
UNKNOWN_ERROR = 'unknown-error'


ERROR_MESSAGES = {
    AUTH_USER_NOT_FOUND: 'No account found with this email address.',
    AUTH_WRONG_PASSWORD: 'Incorrect password. Please try again.',
    AUTH_EMAIL_ALREADY_IN_USE: 'An account with this email already exists.',
    AUTH_WEAK_PASSWORD: 'Password should be at least 6 characters long.',
    AUTH_INVALID_EMAIL: 'Please enter a valid email address.',
    AUTH_REQUIRES_RECENT_LOGIN: 'This operation requires recent login. Please sign in again.',

    PERMISSION_DENIED: 'You do not have permission to perform this action.',
    NOT_FOUND: 'The requested resource was not found.',
    ALREADY_EXISTS: 'This resource already exists.',
    RESOURCE_EXHAUSTED: 'Too many requests. Please try again later.',
    UNAVAILABLE: 'Service temporarily unavailable. Please try again.',

    STORAGE_UNAUTHORIZED: 'You do not have permission to access this file.',
    STORAGE_QUOTA_EXCEEDED: 'Storage quota exceeded. Please contact administrator.',
    STORAGE_UNAUTHENTICATED: 'Please sign in to upload files.',

    INVALID_INPUT: 'Invalid input data. Please check your entries.',
    OPERATION_FAILED: 'Operation failed. Please try again.',
    UNKNOWN_ERROR: 'An unexpected error occurred. Please try again.',
}

# HTTP status used when a service error reaches a JSON view.
HTTP_STATUS = {
    AUTH_USER_NOT_FOUND: 404,
    AUTH_WRONG_PASSWORD: 401,
    AUTH_EMAIL_ALREADY_IN_USE: 409,
    AUTH_WEAK_PASSWORD: 400,
    AUTH_INVALID_EMAIL: 400,
    AUTH_REQUIRES_RECENT_LOGIN: 401,
    PERMISSION_DENIED: 403,
    NOT_FOUND: 404,
    ALREADY_EXISTS: 409,
    RESOURCE_EXHAUSTED: 429,
    UNAVAILABLE: 503,
    INVALID_INPUT: 400,
}

# Ordered most specific first; auth errors subclass the generic Firebase ones.
_EXCEPTION_CODES = (
    (firebase_auth.UserNotFoundError, AUTH_USER_NOT_FOUND),
    (firebase_auth.EmailAlreadyExistsError, AUTH_EMAIL_ALREADY_IN_USE),
    (firebase_exceptions.PermissionDeniedError, PERMISSION_DENIED),
    (firebase_exceptions.NotFoundError, NOT_FOUND),
    (firebase_exceptions.AlreadyExistsError, ALREADY_EXISTS),
    (firebase_exceptions.ResourceExhaustedError, RESOURCE_EXHAUSTED),
    (firebase_exceptions.UnavailableError, UNAVAILABLE),
    (gcloud_exceptions.PermissionDenied, PERMISSION_DENIED),
    (gcloud_exceptions.Forbidden, PERMISSION_DENIED),
    (gcloud_exceptions.NotFound, NOT_FOUND),
    (gcloud_exceptions.AlreadyExists, ALREADY_EXISTS),
    (gcloud_exceptions.Conflict, ALREADY_EXISTS),
    (gcloud_exceptions.ResourceExhausted, RESOURCE_EXHAUSTED),
    (gcloud_exceptions.TooManyRequests, RESOURCE_EXHAUSTED),
    (gcloud_exceptions.ServiceUnavailable, UNAVAILABLE),
)


class FirebaseServiceError(Exception):
    """Service-layer error carrying a normalised code and a user-facing message."""

    def __init__(self, message, code=UNKNOWN_ERROR, context=None, original_error=None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.context = context
        self.original_error = original_error

    @property
    def http_status(self):
        return HTTP_STATUS.get(self.code, 500)

    def to_dict(self):
        return {'error': self.message, 'code': self.code}


class AuthError(FirebaseServiceError):
    pass


class UserServiceError(FirebaseServiceError):
    pass


class StudentServiceError(FirebaseServiceError):
    pass


class AttendanceServiceError(FirebaseServiceError):
    pass


class HolidayServiceError(FirebaseServiceError):
    pass


class EventServiceError(FirebaseServiceError):
    pass


class PhotoServiceError(FirebaseServiceError):
    pass


class FinancialServiceError(FirebaseServiceError):
    pass


class ReportServiceError(FirebaseServiceError):
    pass


class AnnouncementServiceError(FirebaseServiceError):
    pass


# ---------------------------------------------------------------------------
# Callable function errors
# ---------------------------------------------------------------------------

CALLABLE_STATUS = {
    'INVALID_ARGUMENT': 400,
    'UNAUTHENTICATED': 401,
    'PERMISSION_DENIED': 403,
    'NOT_FOUND': 404,
    'ALREADY_EXISTS': 409,
    'INTERNAL': 500,
}


class HttpsError(Exception):
    """Error returned to callers of the ``/functions`` endpoints."""

    def __init__(self, status, message):
        if status not in CALLABLE_STATUS:
            raise ValueError(f'Unknown callable error status: {status}')
        super().__init__(message)
        self.status = status
        self.message = message

    @property
    def http_status(self):
        return CALLABLE_STATUS[self.status]

    def to_dict(self):
        return {'error': {'status': self.status, 'message': self.message}}


# ---------------------------------------------------------------------------
# Translation
# ---------------------------------------------------------------------------

def error_code_for(error):
    """Return the normalised error code for a provider exception."""
    if isinstance(error, FirebaseServiceError):
        return error.code
    for exc_type, code in _EXCEPTION_CODES:
        if isinstance(error, exc_type):
            return code
    code = getattr(error, 'code', None)
    if isinstance(code, str) and code:
        return code.lower().replace('_', '-')
    return UNKNOWN_ERROR


def message_for_code(code):
    return ERROR_MESSAGES.get(code, ERROR_MESSAGES[UNKNOWN_ERROR])


def handle_firebase_error(error, context=None, error_class=FirebaseServiceError):
    """Wrap ``error`` in a service error with a user-facing message."""
    if isinstance(error, FirebaseServiceError):
        return error

    code = error_code_for(error)
    message = message_for_code(code)
    logger.error('[%s] %s (%s): %s', context or 'firebase', message, code, error)
    return error_class(message, code, context, error)


def validate_required_fields(data, required_fields, context=None):
    missing = [field for field in required_fields if not data.get(field)]
    if missing:
        raise FirebaseServiceError(
            f"Missing required fields: {', '.join(missing)}",
            INVALID_INPUT,
            context,
        )


def validate_email(email, context=None):
    """Syntax check with the same rules as the login form (no DNS lookup)."""
    try:
        email_validator.validate_email(email or '', check_deliverability=False)
    except email_validator.EmailNotValidError as e:
        raise FirebaseServiceError(
            'Please enter a valid email address',
            AUTH_INVALID_EMAIL,
            context,
            e,
        )


# Roll numbers are used as document ids in ``users`` and ``students``.
_RESERVED_ID_RE = re.compile(r'^__.*__$')


def validate_roll_number(roll_number, context=None, error_class=FirebaseServiceError):
    roll_number = str(roll_number or '')
    if '/' in roll_number or roll_number in ('.', '..') or _RESERVED_ID_RE.match(roll_number):
        raise error_class(
            f"Invalid roll number '{roll_number}': it cannot contain '/', be '.' or '..', "
            "or start and end with '__'",
            INVALID_INPUT,
            context,
        )
