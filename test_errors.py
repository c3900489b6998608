import pytest
from firebase_admin import auth as firebase_auth
from google.api_core import exceptions as gcloud_exceptions

from app.errors import (ERROR_MESSAGES, FirebaseServiceError, HttpsError, UserServiceError,
                        error_code_for, handle_firebase_error, message_for_code,
                        validate_email, validate_required_fields, validate_roll_number)


def test_auth_errors_map_to_codes():
    assert error_code_for(firebase_auth.UserNotFoundError('x')) == 'auth/user-not-found'
    assert error_code_for(firebase_auth.EmailAlreadyExistsError('x', None, None)) == 'auth/email-already-in-use'


def test_gcloud_errors_map_to_codes():
    assert error_code_for(gcloud_exceptions.PermissionDenied('x')) == 'permission-denied'
    assert error_code_for(gcloud_exceptions.NotFound('x')) == 'not-found'
    assert error_code_for(gcloud_exceptions.ServiceUnavailable('x')) == 'unavailable'


def test_unmapped_code_falls_back_to_generic_message():
    assert message_for_code('auth/something-new') == ERROR_MESSAGES['unknown-error']
    assert error_code_for(RuntimeError('boom')) == 'unknown-error'


def test_handle_firebase_error_wraps_with_message():
    original = gcloud_exceptions.PermissionDenied('denied')
    err = handle_firebase_error(original, 'users.get', UserServiceError)
    assert isinstance(err, UserServiceError)
    assert err.code == 'permission-denied'
    assert err.message == 'You do not have permission to perform this action.'
    assert err.original_error is original
    assert err.http_status == 403


def test_handle_firebase_error_passes_service_errors_through():
    err = FirebaseServiceError('x', 'invalid-input')
    assert handle_firebase_error(err) is err


def test_validate_required_fields():
    with pytest.raises(FirebaseServiceError) as exc:
        validate_required_fields({'a': 1, 'b': ''}, ['a', 'b', 'c'])
    assert exc.value.message == 'Missing required fields: b, c'


@pytest.mark.parametrize('email', ['', 'plain', 'a@b', 'a b@c.com', 'teacher@school.test'])
def test_validate_email_rejects(email):
    with pytest.raises(FirebaseServiceError) as exc:
        validate_email(email)
    assert exc.value.code == 'auth/invalid-email'


def test_validate_email_accepts_form_valid_address():
    validate_email('teacher@example.com')


@pytest.mark.parametrize('roll', ['LK001', '2026-01', 'UK 12'])
def test_validate_roll_number_accepts(roll):
    validate_roll_number(roll)


@pytest.mark.parametrize('roll', ['2026/01', '.', '..', '__name__'])
def test_validate_roll_number_rejects(roll):
    with pytest.raises(FirebaseServiceError) as exc:
        validate_roll_number(roll)
    assert exc.value.code == 'invalid-input'


def test_https_error_payload():
    err = HttpsError('PERMISSION_DENIED', 'Only admins can delete users')
    assert err.http_status == 403
    assert err.to_dict() == {'error': {'status': 'PERMISSION_DENIED',
                                       'message': 'Only admins can delete users'}}
    with pytest.raises(ValueError):
        HttpsError('TEAPOT', 'nope')
