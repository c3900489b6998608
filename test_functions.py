import pytest


@pytest.fixture
def admin_token(make_user, fake_auth):
    uid = make_user('admin', email='admin@example.com')
    return fake_auth.issue_token(uid)


def _call(client, name, data, token=None):
    headers = {'Authorization': f'Bearer {token}'} if token else {}
    return client.post(f'/functions/{name}', json={'data': data}, headers=headers)


def test_requires_token(client):
    resp = _call(client, 'createUser', {})
    assert resp.status_code == 401
    assert resp.get_json()['error']['status'] == 'UNAUTHENTICATED'


def test_rejects_bad_token(client):
    resp = _call(client, 'createUser', {}, token='forged')
    assert resp.status_code == 401


def test_caller_without_profile(client, fake_auth):
    record = fake_auth.create_user(email='ghost@example.com')
    resp = _call(client, 'createUser', {}, token=fake_auth.issue_token(record.uid))
    assert resp.status_code == 404
    assert resp.get_json()['error'] == {'status': 'NOT_FOUND', 'message': 'User not found'}


def test_non_admin_denied(client, make_user, fake_auth):
    uid = make_user('teacher')
    resp = _call(client, 'deleteUserFromAuth', {'email': 'x@example.com'}, token=fake_auth.issue_token(uid))
    assert resp.status_code == 403
    assert resp.get_json()['error']['status'] == 'PERMISSION_DENIED'


def test_create_user(client, admin_token, db):
    resp = _call(client, 'createUser', {
        'email': 'kabir@example.com',
        'password': 'secret1',
        'userData': {'firstName': 'Kabir', 'lastName': 'Singh', 'role': 'student',
                     'class': 'lkg', 'rollNumber': 'LK001'},
    }, token=admin_token)

    assert resp.status_code == 200
    result = resp.get_json()['result']
    assert result['success'] is True
    assert result['documentId'] == 'LK001'
    assert 'LK001' in db.docs('students')


def test_create_user_missing_arguments(client, admin_token):
    resp = _call(client, 'createUser', {'email': 'kabir@example.com'}, token=admin_token)
    assert resp.status_code == 400
    assert resp.get_json()['error']['status'] == 'INVALID_ARGUMENT'


def test_create_user_path_like_roll_number(client, admin_token, db):
    resp = _call(client, 'createUser', {
        'email': 'kabir@example.com',
        'password': 'secret1',
        'userData': {'firstName': 'Kabir', 'lastName': 'Singh', 'role': 'student',
                     'class': 'lkg', 'rollNumber': 'LK/001'},
    }, token=admin_token)
    assert resp.status_code == 400
    assert resp.get_json()['error']['status'] == 'INVALID_ARGUMENT'
    assert db.docs('students') == {}


def test_create_user_duplicate_email(client, admin_token):
    resp = _call(client, 'createUser', {
        'email': 'admin@example.com', 'password': 'secret1',
        'userData': {'firstName': 'A', 'lastName': 'B', 'role': 'teacher'},
    }, token=admin_token)
    assert resp.status_code == 409
    assert resp.get_json()['error']['status'] == 'ALREADY_EXISTS'


def test_delete_user_completely(client, admin_token, make_user, db, fake_auth):
    make_user('student', doc_id='LK001', email='kabir@example.com', rollNumber='LK001', **{'class': 'lkg'})
    db.seed('students', 'LK001', {'rollNumber': 'LK001'})

    resp = _call(client, 'deleteUserCompletely', {'userId': 'LK001', 'email': 'kabir@example.com'},
                 token=admin_token)

    assert resp.status_code == 200
    assert resp.get_json()['result']['message'] == 'User kabir@example.com deleted completely'
    assert 'LK001' not in db.docs('users')
    assert 'LK001' not in db.docs('students')
    assert all(u.email != 'kabir@example.com' for u in fake_auth.users.values())


def test_delete_user_completely_requires_both_arguments(client, admin_token):
    resp = _call(client, 'deleteUserCompletely', {'userId': 'LK001'}, token=admin_token)
    assert resp.status_code == 400


def test_delete_user_completely_primary_failure_is_internal(client, admin_token, make_user, db):
    make_user('teacher', email='t@example.com')
    db.fail('delete', 'users')
    resp = _call(client, 'deleteUserCompletely', {'userId': 'whoever', 'email': 't@example.com'},
                 token=admin_token)
    assert resp.status_code == 500
    assert resp.get_json()['error']['status'] == 'INTERNAL'


def test_delete_user_from_auth(client, admin_token, make_user, fake_auth):
    make_user('teacher', email='t@example.com')
    resp = _call(client, 'deleteUserFromAuth', {'email': 't@example.com'}, token=admin_token)
    assert resp.status_code == 200
    assert resp.get_json()['result']['message'] == 'User t@example.com deleted successfully'

    resp = _call(client, 'deleteUserFromAuth', {'email': 't@example.com'}, token=admin_token)
    assert resp.status_code == 404
