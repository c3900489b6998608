import pytest

from app.services import whatsapp_client

SENDER = '919876543210'


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self.ok = status_code < 400
        self._payload = payload or {'messages': [{'id': 'wamid.out'}]}
        self.text = str(self._payload)

    def json(self):
        return self._payload


@pytest.fixture
def sent(monkeypatch):
    calls = []

    def fake_post(url, json=None, headers=None, timeout=None):
        calls.append({'url': url, 'json': json, 'headers': headers})
        return FakeResponse()

    monkeypatch.setattr(whatsapp_client.http_requests, 'post', fake_post)
    return calls


def _delivery(text, msg_id='wamid.in1', msg_type='text'):
    message = {'from': SENDER, 'id': msg_id, 'timestamp': '1773200000', 'type': msg_type}
    if msg_type == 'text':
        message['text'] = {'body': text}
    return {
        'object': 'whatsapp_business_account',
        'entry': [{'changes': [{
            'field': 'messages',
            'value': {'metadata': {'phone_number_id': '1234567890'}, 'messages': [message]},
        }]}],
    }


def test_verification_handshake(client):
    resp = client.get('/whatsapp/webhook?hub.mode=subscribe&hub.verify_token=verify-me&hub.challenge=42')
    assert resp.status_code == 200
    assert resp.data == b'42'
    assert resp.mimetype == 'text/plain'


def test_verification_wrong_token(client):
    resp = client.get('/whatsapp/webhook?hub.mode=subscribe&hub.verify_token=nope&hub.challenge=42')
    assert resp.status_code == 403


def test_other_objects_not_found(client, sent):
    resp = client.post('/whatsapp/webhook', json={'object': 'page'})
    assert resp.status_code == 404
    assert sent == []


def test_other_methods_not_allowed(client):
    assert client.put('/whatsapp/webhook').status_code == 405


def test_greeting_round_trip(client, db, sent):
    resp = client.post('/whatsapp/webhook', json=_delivery('Hello there'))

    assert resp.status_code == 200
    assert resp.data == b'EVENT_RECEIVED'
    assert len(sent) == 1
    assert sent[0]['headers']['Authorization'] == 'Bearer wa-token'
    assert sent[0]['url'].endswith('/1234567890/messages')
    assert sent[0]['json']['to'] == SENDER
    assert 'Welcome to Maplekids' in sent[0]['json']['text']['body']

    messages = db.docs('whatsapp_messages')
    assert messages['wamid.in1']['direction'] == 'incoming'
    assert messages['wamid.in1']['text'] == 'Hello there'
    outgoing = [m for m in messages.values() if m['direction'] == 'outgoing']
    assert outgoing[0]['to'] == SENDER
    assert 'lastMessageAt' in db.docs('whatsapp_users')[SENDER]


def test_image_placeholder_and_echo(client, db, sent):
    client.post('/whatsapp/webhook', json=_delivery(None, msg_type='image'))
    assert db.docs('whatsapp_messages')['wamid.in1']['text'] == '[Image received]'
    assert sent[0]['json']['text']['body'].startswith('You said: "[Image received]"')


def test_link_then_attendance(client, db, sent):
    db.seed('students', 'LK001', {'rollNumber': 'LK001', 'firstName': 'Kabir', 'lastName': 'Singh',
                                  'class': 'lkg'})

    client.post('/whatsapp/webhook', json=_delivery('LINK LK001'))
    assert db.docs('whatsapp_users')[SENDER]['studentId'] == 'LK001'
    assert sent[-1]['json']['text']['body'].startswith('Linked to Kabir')

    client.post('/whatsapp/webhook', json=_delivery('attendance please', msg_id='wamid.in2'))
    assert 'Kabir Singh' in sent[-1]['json']['text']['body']


def test_unlinked_attendance_asks_to_link(client, sent):
    client.post('/whatsapp/webhook', json=_delivery('attendance'))
    assert 'LINK' in sent[-1]['json']['text']['body']


def test_send_failure_returns_500(client, monkeypatch):
    monkeypatch.setattr(whatsapp_client.http_requests, 'post',
                        lambda *a, **kw: FakeResponse(status_code=401, payload={'error': 'bad token'}))
    resp = client.post('/whatsapp/webhook', json=_delivery('hi'))
    assert resp.status_code == 500


def test_template_message_payload(app, sent):
    with app.app_context():
        whatsapp_client.send_template_message(SENDER, 'fee_reminder', ['Kabir', 2500])
    template = sent[0]['json']['template']
    assert template['name'] == 'fee_reminder'
    assert template['components'][0]['parameters'][1] == {'type': 'text', 'text': '2500'}
