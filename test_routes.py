import io
from datetime import date, timedelta

import pytest

from app.routes import auth as auth_routes


class FakeResponse:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        return self._payload


@pytest.fixture
def admin(make_user, login):
    uid = make_user('admin', email='admin@example.com')
    login(uid)
    return uid


@pytest.fixture
def teacher(make_user, login):
    uid = make_user('teacher', email='teacher@example.com')
    login(uid)
    return uid


def test_health(client):
    resp = client.get('/health')
    assert resp.status_code == 200
    assert resp.get_json() == {'status': 'ok'}


def test_index_for_guests(client, db):
    db.seed('events', 'e1', {'title': 'Sports Day', 'date': '2099-01-10', 'isActive': True})
    resp = client.get('/')
    assert resp.status_code == 200
    assert b'Sports Day' in resp.data


# ---------------------------------------------------------------------------
# Sign in / out
# ---------------------------------------------------------------------------

def test_login_success(client, make_user, fake_auth, monkeypatch):
    uid = make_user('teacher', email='teacher@example.com')
    token = fake_auth.issue_token(uid)
    monkeypatch.setattr(auth_routes.http_requests, 'post',
                        lambda *a, **kw: FakeResponse(200, {'idToken': token}))

    resp = client.post('/auth/login', data={'email': 'teacher@example.com', 'password': 'secret1'})

    assert resp.status_code == 302
    assert resp.headers['Location'].endswith('/dashboard')
    with client.session_transaction() as sess:
        assert sess['firebase_session'] == f'session-{uid}'


def test_login_wrong_password(client, monkeypatch):
    monkeypatch.setattr(auth_routes.http_requests, 'post',
                        lambda *a, **kw: FakeResponse(400, {'error': {'message': 'INVALID_LOGIN_CREDENTIALS'}}))

    resp = client.post('/auth/login', data={'email': 'teacher@example.com', 'password': 'nope'})

    assert resp.status_code == 200
    assert b'Incorrect password' in resp.data
    with client.session_transaction() as sess:
        assert 'firebase_session' not in sess


def test_logout_clears_session(client, admin):
    resp = client.get('/auth/logout')
    assert resp.status_code == 302
    with client.session_transaction() as sess:
        assert 'firebase_session' not in sess


def test_forgot_password_always_confirms(client, monkeypatch):
    monkeypatch.setattr(auth_routes.http_requests, 'post',
                        lambda *a, **kw: FakeResponse(400, {'error': {'message': 'EMAIL_NOT_FOUND'}}))
    resp = client.post('/auth/forgot-password', data={'email': 'ghost@example.com'},
                       follow_redirects=True)
    assert b'If an account exists' in resp.data


# ---------------------------------------------------------------------------
# Dashboards and access control
# ---------------------------------------------------------------------------

def test_dashboard_requires_login(client):
    resp = client.get('/dashboard')
    assert resp.status_code == 302
    assert '/auth/login' in resp.headers['Location']


@pytest.mark.parametrize('role', ['admin', 'teacher'])
def test_staff_dashboards(client, make_user, login, role):
    login(make_user(role))
    assert client.get('/dashboard').status_code == 200


def test_student_dashboard(client, db, make_user, login):
    uid = make_user('student', doc_id='LK001', rollNumber='LK001', **{'class': 'lkg'})
    db.seed('students', 'LK001', {'rollNumber': 'LK001', 'firstName': 'Kabir', 'lastName': 'Singh',
                                  'class': 'lkg', 'authUid': uid})
    login(uid)
    resp = client.get('/dashboard')
    assert resp.status_code == 200
    assert b'LK001' in resp.data


def test_students_are_kept_off_staff_pages(client, make_user, login):
    login(make_user('student', doc_id='LK001', rollNumber='LK001'))
    resp = client.get('/users/')
    assert resp.status_code == 302
    assert resp.headers['Location'].endswith('/dashboard')


def test_api_requires_authentication(client):
    resp = client.get('/attendance/api/check?date=2026-03-11')
    assert resp.status_code == 401
    assert resp.get_json()['code'] == 'unauthenticated'


def test_api_rejects_wrong_role(client, make_user, login):
    login(make_user('student', doc_id='LK001', rollNumber='LK001'))
    resp = client.get('/attendance/api/check?date=2026-03-11')
    assert resp.status_code == 403


# ---------------------------------------------------------------------------
# Attendance
# ---------------------------------------------------------------------------

def test_teacher_cannot_check_future_date(client, teacher):
    tomorrow = (date.today() + timedelta(days=1)).isoformat()
    data = client.get(f'/attendance/api/check?date={tomorrow}').get_json()
    assert data['allowed'] is False
    assert data['message'] == 'Cannot mark attendance for future dates.'


def test_bad_date_argument(client, teacher):
    resp = client.get('/attendance/api/check?date=11/03/2026')
    assert resp.status_code == 400
    assert resp.get_json()['code'] == 'invalid-input'


def test_mark_then_update(client, db, admin):
    today = date.today().isoformat()
    payload = {
        'class': 'lkg',
        'date': today,
        'students': [{'rollNumber': 'LK001', 'studentName': 'Kabir Singh', 'status': 'present'}],
    }
    first = client.post('/attendance/api/mark', json=payload)
    assert first.status_code == 201
    assert first.get_json()['created'] is True

    payload['students'][0]['status'] = 'late'
    second = client.post('/attendance/api/mark', json=payload)
    assert second.status_code == 200
    assert second.get_json()['id'] == first.get_json()['id']

    record = client.get(f'/attendance/api/record?class=lkg&date={today}').get_json()
    assert record['students'][0]['status'] == 'late'


def test_mark_future_date_forbidden(client, admin):
    tomorrow = (date.today() + timedelta(days=1)).isoformat()
    resp = client.post('/attendance/api/mark', json={'class': 'lkg', 'date': tomorrow, 'students': []})
    assert resp.status_code == 403
    assert resp.get_json()['code'] == 'permission-denied'


def test_holiday_dates_api(client, db, teacher):
    db.seed('holidays', 'h1', {'name': 'Republic Day', 'startDate': '2026-01-26', 'endDate': '2026-01-26'})
    data = client.get('/attendance/api/holidays?year=2026').get_json()
    assert data == {'year': 2026, 'dates': ['2026-01-26']}


def test_month_stats_validates_month(client, admin):
    assert client.get('/attendance/api/stats/month?year=2026&month=13').status_code == 400


def test_working_days_requires_both_dates(client, admin):
    resp = client.get('/holidays/api/working-days?start=2026-03-09')
    assert resp.status_code == 400


# ---------------------------------------------------------------------------
# Users and students
# ---------------------------------------------------------------------------

def test_user_list_and_search(client, make_user, admin):
    make_user('teacher', email='asha@example.com', firstName='Asha')
    resp = client.get('/users/?q=asha')
    assert resp.status_code == 200
    assert b'asha@example.com' in resp.data


def test_admin_cannot_delete_self(client, db, admin):
    resp = client.post(f'/users/{admin}/delete', follow_redirects=True)
    assert b'You cannot delete your own account.' in resp.data
    assert admin in db.docs('users')


def test_bulk_template_download(client, admin):
    resp = client.get('/users/bulk/template?type=teacher')
    assert resp.status_code == 200
    assert resp.headers['Content-Disposition'] == 'attachment;filename=teacher_template.xlsx'
    assert resp.data[:2] == b'PK'


def test_bulk_template_rejects_unknown_type(client, admin):
    assert client.get('/users/bulk/template?type=parent').status_code == 400


def test_sync_report(client, db, make_user, admin):
    make_user('student', doc_id='LK001', rollNumber='LK001')
    db.seed('students', 'UK009', {'rollNumber': 'UK009', 'class': 'ukg'})

    report = client.get('/users/api/sync').get_json()

    assert report['isSync'] is False
    assert report['missingFromStudents'] == ['LK001']
    assert report['missingFromUsers'] == ['UK009']
    assert report['orphanedStudents'] == ['UK009']


def test_student_api(client, db, make_user, login):
    db.seed('students', 'LK001', {'rollNumber': 'LK001', 'firstName': 'Kabir', 'class': 'lkg'})
    db.seed('students', 'UK001', {'rollNumber': 'UK001', 'firstName': 'Meera', 'class': 'ukg'})

    login(make_user('teacher'))
    students = client.get('/students/api?class=lkg').get_json()
    assert [s['id'] for s in students] == ['LK001']
    assert client.get('/students/api?class=college').status_code == 400


def test_student_sees_only_own_record(client, db, make_user, login):
    db.seed('students', 'LK001', {'rollNumber': 'LK001', 'firstName': 'Kabir', 'class': 'lkg'})
    db.seed('students', 'UK001', {'rollNumber': 'UK001', 'firstName': 'Meera', 'class': 'ukg'})
    login(make_user('student', doc_id='LK001', rollNumber='LK001'))

    assert client.get('/students/api/LK001').status_code == 200
    assert client.get('/students/api/UK001').status_code == 403


# ---------------------------------------------------------------------------
# Events, gallery, financial
# ---------------------------------------------------------------------------

def test_events_api_is_public(client, db):
    db.seed('events', 'e1', {'title': 'Sports Day', 'date': '2099-01-10', 'isActive': True})
    db.seed('events', 'e2', {'title': 'Cancelled', 'date': '2099-01-11', 'isActive': False})
    titles = [e['title'] for e in client.get('/events/api').get_json()]
    assert titles == ['Sports Day']


def test_photo_upload(client, db, bucket, admin):
    resp = client.post('/events/photos', data={
        'title': 'Sports day',
        'category': 'Sports',
        'image': (io.BytesIO(b'\x89PNG fake'), 'race.png'),
    }, content_type='multipart/form-data')

    assert resp.status_code == 302
    assert len(bucket.objects) == 1
    photo = next(iter(db.docs('photos').values()))
    assert photo['category'] == 'Sports'
    assert photo['storagePath'] in bucket.objects
    assert client.get('/events/api/photos?category=Sports').get_json()[0]['title'] == 'Sports day'


def test_photo_upload_rejects_non_images(client, bucket, admin):
    client.post('/events/photos', data={
        'title': 'Notes',
        'category': 'Misc',
        'image': (io.BytesIO(b'text'), 'notes.txt'),
    }, content_type='multipart/form-data')
    assert bucket.objects == {}


def test_financial_stats_api(client, db, admin):
    db.seed('financialRecords', 'f1', {'type': 'income', 'amount': 2500, 'date': '2026-03-02'})
    db.seed('financialRecords', 'f2', {'type': 'expense', 'amount': 800, 'date': '2026-03-05'})
    db.seed('financialRecords', 'f3', {'type': 'income', 'amount': 1000, 'date': '2026-04-01'})

    stats = client.get('/financial/api/stats?month=3&year=2026').get_json()
    assert stats['totalIncome'] == 2500
    assert stats['balance'] == 1700
    assert client.get('/financial/api/stats?month=0&year=2026').status_code == 400


def test_financial_api_admin_only(client, teacher):
    assert client.get('/financial/api/stats').status_code == 403
