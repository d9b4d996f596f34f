import jwt
import pytest
from fastapi.testclient import TestClient

from edwind import identity
from edwind.errors import IdentityProviderError
from edwind.main import app


def _token(sub='user_1', sid='sess_1', org='org_1'):
    # signature is not checked when ALLOW_INSECURE_JWT is on
    return jwt.encode({'sub': sub, 'sid': sid, 'org_id': org}, 'test-secret-with-enough-bytes-for-hs256', algorithm='HS256')


@pytest.fixture
def anon_client():
    app.dependency_overrides.clear()
    return TestClient(app)


@pytest.fixture
def fake_user(monkeypatch):
    def get_user(user_id):
        if user_id != 'user_1':
            raise IdentityProviderError('not found', 404)
        return {'id': user_id, 'email': 'ada@example.com', 'first_name': 'Ada', 'last_name': 'Lovelace'}

    monkeypatch.setattr(identity.client, 'get_user', get_user)


def _login(client, token, user_id='user_1', session_id='sess_1'):
    client.cookies.set('workos_user_id', user_id)
    client.cookies.set('workos_access_token', token)
    client.cookies.set('workos_session_id', session_id)


def test_missing_cookies_is_401(anon_client):
    r = anon_client.get('/api/projects')
    assert r.status_code == 401
    assert r.json()['code'] == 'UNAUTHORIZED'


def test_valid_session_resolves_user(anon_client, fake_user):
    _login(anon_client, _token())
    r = anon_client.get('/api/auth/me')
    assert r.status_code == 200
    body = r.json()
    assert body['user']['email'] == 'ada@example.com'
    assert body['user']['organization_id'] == 'org_1'
    assert body['display_name'] == 'Ada Lovelace'


def test_token_for_other_user_is_rejected(anon_client, fake_user):
    _login(anon_client, _token(sub='someone_else'))
    assert anon_client.get('/api/auth/me').status_code == 401


def test_session_mismatch_is_rejected(anon_client, fake_user):
    _login(anon_client, _token(sid='other_session'))
    assert anon_client.get('/api/auth/me').status_code == 401


def test_garbage_token_is_rejected(anon_client, fake_user):
    _login(anon_client, 'not-a-jwt')
    r = anon_client.get('/api/auth/me')
    assert r.status_code == 401
    assert r.json()['message'] == 'invalid access token'


def test_unknown_user_is_rejected(anon_client, fake_user):
    _login(anon_client, _token(sub='user_2'), user_id='user_2')
    assert anon_client.get('/api/auth/me').status_code == 401


def test_logout_clears_cookies(anon_client, fake_user):
    _login(anon_client, _token())
    r = anon_client.post('/api/auth/logout')
    assert r.status_code == 200
    assert 'session_id=sess_1' in r.json()['logout_url']
    cleared = r.headers.get_list('set-cookie')
    assert any(c.startswith('workos_access_token=') for c in cleared)


def test_health_is_public(anon_client):
    r = anon_client.get('/health')
    assert r.json() == {'status': 'ok'}
    assert r.headers['X-Request-ID']
