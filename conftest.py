import copy
import itertools

import pytest
from firebase_admin import auth as firebase_auth
from google.api_core.exceptions import NotFound
from google.cloud.firestore_v1 import Increment

from config import Config


# ---------------------------------------------------------------------------
# In-memory Firestore
# ---------------------------------------------------------------------------

_OPS = {
    '==': lambda a, b: a == b,
    '!=': lambda a, b: a != b,
    '<': lambda a, b: a is not None and a < b,
    '<=': lambda a, b: a is not None and a <= b,
    '>': lambda a, b: a is not None and a > b,
    '>=': lambda a, b: a is not None and a >= b,
    'in': lambda a, b: a in b,
}


class FakeSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None


class FakeDocument:
    def __init__(self, db, collection, doc_id):
        self._db = db
        self._collection = collection
        self.id = doc_id

    @property
    def _store(self):
        return self._db.data.setdefault(self._collection, {})

    def get(self):
        return FakeSnapshot(self.id, self._store.get(self.id))

    def collection(self, name):
        return FakeCollection(self._db, f'{self._collection}/{self.id}/{name}')

    def set(self, data, merge=False):
        self._db.check_fail('set', self._collection)
        current = self._store.get(self.id, {}) if merge else {}
        stored = dict(current)
        for key, value in data.items():
            if isinstance(value, Increment):
                stored[key] = (current.get(key) or 0) + value.value
            else:
                stored[key] = copy.deepcopy(value)
        self._store[self.id] = stored

    def update(self, data):
        self._db.check_fail('update', self._collection)
        if self.id not in self._store:
            raise NotFound(f'No document to update: {self._collection}/{self.id}')
        self._store[self.id].update(copy.deepcopy(data))

    def delete(self):
        self._db.check_fail('delete', self._collection)
        self._store.pop(self.id, None)


class FakeQuery:
    def __init__(self, db, collection, filters=(), orders=(), limit=None):
        self._db = db
        self._collection = collection
        self._filters = list(filters)
        self._orders = list(orders)
        self._limit = limit

    def _copy(self, **changes):
        kwargs = {'filters': self._filters, 'orders': self._orders, 'limit': self._limit}
        kwargs.update(changes)
        return FakeQuery(self._db, self._collection, **kwargs)

    def where(self, field_path=None, op_string=None, value=None, filter=None):
        if filter is not None:
            field_path, op_string, value = filter.field_path, filter.op_string, filter.value
        return self._copy(filters=self._filters + [(field_path, op_string, value)])

    def order_by(self, field_path, direction='ASCENDING'):
        return self._copy(orders=self._orders + [(field_path, direction)])

    def limit(self, count):
        return self._copy(limit=count)

    def stream(self):
        self._db.check_fail('stream', self._collection)
        items = list(self._db.data.get(self._collection, {}).items())
        for field, op, value in self._filters:
            items = [(k, v) for k, v in items if _OPS[op](v.get(field), value)]
        for field, direction in reversed(self._orders):
            items.sort(key=lambda kv: (kv[1].get(field) is None, kv[1].get(field)),
                       reverse=direction == 'DESCENDING')
        if self._limit is not None:
            items = items[:self._limit]
        return [FakeSnapshot(k, copy.deepcopy(v)) for k, v in items]


class FakeCollection(FakeQuery):
    def __init__(self, db, name):
        super().__init__(db, name)

    def document(self, doc_id=None):
        return FakeDocument(self._db, self._collection, doc_id or self._db.next_id())

    def add(self, data):
        ref = self.document()
        ref.set(data)
        return None, ref


class FakeBatch:
    def __init__(self):
        self._ops = []

    def update(self, ref, data):
        self._ops.append((ref.update, data))

    def set(self, ref, data):
        self._ops.append((ref.set, data))

    def commit(self):
        for op, data in self._ops:
            op(data)


class FakeFirestore:
    def __init__(self):
        self.data = {}
        self.failures = {}
        self._ids = itertools.count(1)

    def next_id(self):
        return f'doc{next(self._ids)}'

    def fail(self, operation, collection, error=None):
        """Make ``operation`` on ``collection`` raise (default: ServiceUnavailable)."""
        from google.api_core.exceptions import ServiceUnavailable
        self.failures[(operation, collection)] = error or ServiceUnavailable('backend down')

    def check_fail(self, operation, collection):
        error = self.failures.get((operation, collection))
        if error is not None:
            raise error

    def collection(self, name):
        return FakeCollection(self, name)

    def batch(self):
        return FakeBatch()

    def seed(self, collection, doc_id, data):
        self.data.setdefault(collection, {})[doc_id] = copy.deepcopy(data)

    def docs(self, collection):
        return self.data.get(collection, {})


# ---------------------------------------------------------------------------
# Firebase Auth
# ---------------------------------------------------------------------------

class FakeUserRecord:
    def __init__(self, uid, email):
        self.uid = uid
        self.email = email


class FakeAuth:
    def __init__(self):
        self.users = {}
        self.sessions = {}
        self.id_tokens = {}
        self._uids = itertools.count(1)

    def create_user(self, email=None, password=None, **kwargs):
        if any(u.email == email for u in self.users.values()):
            raise firebase_auth.EmailAlreadyExistsError('The user with the provided email already exists',
                                                        None, None)
        uid = f'uid{next(self._uids)}'
        self.users[uid] = FakeUserRecord(uid, email)
        return self.users[uid]

    def get_user_by_email(self, email):
        for user in self.users.values():
            if user.email == email:
                return user
        raise firebase_auth.UserNotFoundError(f'No user record found for {email}')

    def delete_user(self, uid):
        if uid not in self.users:
            raise firebase_auth.UserNotFoundError(f'No user record found for {uid}')
        del self.users[uid]

    def verify_session_cookie(self, cookie, check_revoked=False):
        if cookie not in self.sessions:
            raise firebase_auth.InvalidSessionCookieError('Invalid session cookie')
        return {'uid': self.sessions[cookie]}

    def create_session_cookie(self, id_token, expires_in=None):
        uid = self.verify_id_token(id_token)['uid']
        cookie = f'session-{uid}'
        self.sessions[cookie] = uid
        return cookie

    def verify_id_token(self, id_token):
        if id_token not in self.id_tokens:
            raise firebase_auth.InvalidIdTokenError('Invalid ID token')
        return {'uid': self.id_tokens[id_token]}

    def issue_token(self, uid):
        token = f'token-{uid}'
        self.id_tokens[token] = uid
        return token


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

class FakeBlob:
    def __init__(self, bucket, name):
        self._bucket = bucket
        self.name = name
        self.public_url = f'https://storage.example/{name}'

    def upload_from_file(self, file_obj, content_type=None):
        self._bucket.objects[self.name] = file_obj.read()

    def upload_from_string(self, data, content_type=None):
        self._bucket.objects[self.name] = data

    def exists(self):
        return self.name in self._bucket.objects

    def make_public(self):
        pass

    def delete(self):
        if self.name not in self._bucket.objects:
            raise NotFound(f'No such object: {self.name}')
        del self._bucket.objects[self.name]


class FakeBucket:
    def __init__(self):
        self.objects = {}

    def blob(self, name):
        return FakeBlob(self, name)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

class TestConfig(Config):
    TESTING = True
    WTF_CSRF_ENABLED = False
    SECRET_KEY = 'test-secret'
    SOCKETIO_ASYNC_MODE = 'threading'
    FIREBASE_WEB_API_KEY = 'test-api-key'
    WHATSAPP_ACCESS_TOKEN = 'wa-token'
    WHATSAPP_PHONE_ID = '1234567890'
    WHATSAPP_VERIFY_TOKEN = 'verify-me'
    SCHOOL_NAME = 'Maplekids'


@pytest.fixture
def db(monkeypatch):
    from app import firebase_init
    fake = FakeFirestore()
    monkeypatch.setattr(firebase_init, '_app', object())
    monkeypatch.setattr(firebase_init, '_db', fake)
    return fake


@pytest.fixture
def fake_auth(monkeypatch):
    from app import firebase_init
    fake = FakeAuth()
    monkeypatch.setattr(firebase_init, '_auth', fake)
    return fake


@pytest.fixture
def bucket(monkeypatch):
    from app import firebase_init
    fake = FakeBucket()
    monkeypatch.setattr(firebase_init, '_bucket', fake)
    return fake


@pytest.fixture
def app(db, fake_auth, bucket):
    from app import create_app
    application = create_app(TestConfig)
    return application


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(db, fake_auth):
    """Store a user profile (and auth record); returns its uid."""
    def _make(role='admin', doc_id=None, **fields):
        record = fake_auth.create_user(email=fields.pop('email', f'{role}{len(fake_auth.users)}@example.com'))
        data = {
            'uid': record.uid,
            'email': record.email,
            'firstName': fields.pop('firstName', role.title()),
            'lastName': fields.pop('lastName', 'User'),
            'role': role,
            'isActive': True,
        }
        data.update(fields)
        db.seed('users', doc_id or record.uid, data)
        return record.uid
    return _make


@pytest.fixture
def login(client, fake_auth):
    def _login(uid):
        cookie = f'session-{uid}'
        fake_auth.sessions[cookie] = uid
        with client.session_transaction() as sess:
            sess['firebase_session'] = cookie
    return _login
