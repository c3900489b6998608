import pytest

from app.errors import UserServiceError
from app.services import users as user_service

STUDENT = {
    'firstName': 'Kabir',
    'lastName': 'Singh',
    'role': 'student',
    'class': 'lkg',
    'rollNumber': 'LK001',
    'parentName': 'Harpreet Singh',
}


def test_student_with_class_and_roll_gets_both_documents(db, fake_auth):
    result = user_service.create_user('kabir@example.com', 'secret1', STUDENT, created_by='admin1')

    assert result['documentId'] == 'LK001'
    user = db.docs('users')['LK001']
    student = db.docs('students')['LK001']
    assert user['uid'] == result['userId']
    assert user['createdBy'] == 'admin1'
    assert student['authUid'] == result['userId']
    assert student['userId'] == 'LK001'
    assert student['class'] == 'lkg'
    assert student['parentName'] == 'Harpreet Singh'


@pytest.mark.parametrize('missing', ['class', 'rollNumber'])
def test_student_missing_class_or_roll_gets_users_document_only(db, fake_auth, missing):
    data = {k: v for k, v in STUDENT.items() if k != missing}
    result = user_service.create_user('kabir@example.com', 'secret1', data, created_by='admin1')

    assert result['documentId'] in db.docs('users')
    assert db.docs('students') == {}


def test_staff_are_keyed_by_uid(db, fake_auth):
    result = user_service.create_user('t@example.com', 'secret1',
                                      {'firstName': 'A', 'lastName': 'B', 'role': 'teacher'}, 'admin1')
    assert result['documentId'] == result['userId']
    assert db.docs('students') == {}


@pytest.mark.parametrize('roll', ['2026/01', '.', '..', '__id__'])
def test_unusable_roll_number_rejected_before_auth(db, fake_auth, roll):
    with pytest.raises(UserServiceError) as exc:
        user_service.create_user('kabir@example.com', 'secret1', {**STUDENT, 'rollNumber': roll}, 'admin1')
    assert exc.value.code == 'invalid-input'
    assert fake_auth.users == {}
    assert db.docs('users') == {}


def test_reserved_email_domain_rejected(db, fake_auth):
    with pytest.raises(UserServiceError) as exc:
        user_service.create_user('kabir@school.test', 'secret1', STUDENT, 'admin1')
    assert exc.value.code == 'auth/invalid-email'
    assert fake_auth.users == {}


def test_weak_password_rejected_before_auth(db, fake_auth):
    with pytest.raises(UserServiceError) as exc:
        user_service.create_user('kabir@example.com', '123', STUDENT, 'admin1')
    assert exc.value.code == 'auth/weak-password'
    assert fake_auth.users == {}


def test_duplicate_email_maps_to_message(db, fake_auth):
    user_service.create_user('kabir@example.com', 'secret1', STUDENT, 'admin1')
    with pytest.raises(UserServiceError) as exc:
        user_service.create_user('kabir@example.com', 'secret1', {**STUDENT, 'rollNumber': 'LK002'}, 'admin1')
    assert exc.value.code == 'auth/email-already-in-use'
    assert exc.value.message == 'An account with this email already exists.'


def test_students_write_failure_leaves_users_document(db, fake_auth):
    db.fail('set', 'students')
    with pytest.raises(UserServiceError):
        user_service.create_user('kabir@example.com', 'secret1', STUDENT, 'admin1')
    assert 'LK001' in db.docs('users')
    assert db.docs('students') == {}


def test_delete_student_user_removes_everything(db, fake_auth):
    user_service.create_user('kabir@example.com', 'secret1', STUDENT, 'admin1')

    result = user_service.delete_user_completely('LK001', 'kabir@example.com')

    assert result['success'] and result['studentDeleted'] and result['authDeleted']
    assert db.docs('users') == {}
    assert db.docs('students') == {}
    assert fake_auth.users == {}


def test_student_delete_failure_does_not_roll_back(db, fake_auth):
    user_service.create_user('kabir@example.com', 'secret1', STUDENT, 'admin1')
    db.fail('delete', 'students')

    result = user_service.delete_user_completely('LK001', 'kabir@example.com')

    assert result['success'] is True
    assert result['studentDeleted'] is False
    assert 'LK001' not in db.docs('users')
    assert 'LK001' in db.docs('students')


def test_missing_auth_account_is_not_fatal(db, fake_auth):
    db.seed('users', 'uid9', {'role': 'teacher', 'email': 'gone@example.com'})
    result = user_service.delete_user_completely('uid9', 'gone@example.com')
    assert result['success'] is True
    assert result['authDeleted'] is False


def test_users_delete_failure_raises(db, fake_auth):
    db.seed('users', 'uid9', {'role': 'teacher', 'email': 't@example.com'})
    db.fail('delete', 'users')
    with pytest.raises(UserServiceError):
        user_service.delete_user_completely('uid9', 't@example.com')


def test_delete_from_auth_unknown_email(db, fake_auth):
    with pytest.raises(UserServiceError) as exc:
        user_service.delete_user_from_auth('nobody@example.com')
    assert exc.value.code == 'auth/user-not-found'


def test_update_user_mirrors_onto_student(db, fake_auth):
    user_service.create_user('kabir@example.com', 'secret1', STUDENT, 'admin1')
    user_service.update_user('LK001', {'class': 'ukg', 'phone': None})
    assert db.docs('users')['LK001']['class'] == 'ukg'
    assert db.docs('students')['LK001']['class'] == 'ukg'


def test_update_unknown_user(db):
    with pytest.raises(UserServiceError) as exc:
        user_service.update_user('nope', {'firstName': 'x'})
    assert exc.value.code == 'not-found'


def test_search_users(db):
    db.seed('users', 'LK001', {'firstName': 'Kabir', 'lastName': 'Singh', 'email': 'k@example.com', 'rollNumber': 'LK001'})
    db.seed('users', 'u2', {'firstName': 'Asha', 'lastName': 'Verma', 'email': 'asha@example.com'})
    assert [u['id'] for u in user_service.search_users('VERMA')] == ['u2']
    assert [u['id'] for u in user_service.search_users('lk00')] == ['LK001']
