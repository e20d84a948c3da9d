import httpx
from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.requests import Request

from casechat.main import app, mount_spa
from casechat.routers.webhook import get_http_client

client = TestClient(app)

SIGNUP = {
    'name': 'Ana Diaz',
    'email': 'ana@example.com',
    'password': 'longenough',
    'confirmPassword': 'longenough',
    'age': '30',
    'gender': 'female',
}


def test_health_and_ping():
    assert client.get('/health').json() == {'status': 'ok'}
    resp = client.get('/api/ping')
    assert resp.status_code == 200
    assert 'message' in resp.json()


def test_signup_success():
    resp = client.post('/api/signup', json=SIGNUP)
    assert resp.status_code == 200
    data = resp.json()
    assert data['success'] is True
    assert data['user']['age'] == 30
    assert data['user']['email'] == 'ana@example.com'
    assert data['user']['id']


def test_signup_missing_fields():
    resp = client.post('/api/signup', json={**SIGNUP, 'gender': ''})
    assert resp.status_code == 400
    assert resp.json() == {'error': 'Missing required fields'}


def test_signup_rules():
    cases = [
        ({'confirmPassword': 'different1'}, 'Passwords do not match'),
        ({'password': 'short', 'confirmPassword': 'short'}, 'Password must be at least 8 characters'),
        # a mismatch is reported before the length rule on this route
        ({'password': 'short', 'confirmPassword': 'other'}, 'Passwords do not match'),
        ({'age': '12'}, 'You must be at least 13 years old'),
        ({'age': 'old'}, 'You must be at least 13 years old'),
    ]
    for override, error in cases:
        resp = client.post('/api/signup', json={**SIGNUP, **override})
        assert resp.status_code == 400
        assert resp.json() == {'error': error}


def test_demo_chat_reply():
    resp = client.post('/api/chat', json={'message': 'Hello there', 'conversationId': 'c1'})
    assert resp.status_code == 200
    data = resp.json()
    assert data['success'] is True
    assert data['conversationId'] == 'c1'
    assert data['response'].startswith('Hello!')


def test_demo_chat_fallback_and_missing_fields():
    resp = client.post('/api/chat', json={'message': 'Zzz', 'conversationId': 'c1'})
    assert 'That\'s an interesting question: "Zzz"' in resp.json()['response']

    resp = client.post('/api/chat', json={'message': 'Hello'})
    assert resp.status_code == 400
    assert resp.json() == {'error': 'Missing required fields'}


def make_spa(tmp_path):
    spa = tmp_path / 'spa'
    spa.mkdir()
    (spa / 'index.html').write_text('<html>index</html>')
    (spa / 'robots.txt').write_text('User-agent: *')
    private = tmp_path / 'spa-private'
    private.mkdir()
    (private / 'secret.txt').write_text('TOP SECRET')
    spa_app = FastAPI()
    assert mount_spa(spa_app, str(spa)) is True
    return TestClient(spa_app)


def test_spa_serves_files_and_index_fallback(tmp_path):
    spa_client = make_spa(tmp_path)
    assert spa_client.get('/robots.txt').text == 'User-agent: *'
    resp = spa_client.get('/cases/4')
    assert resp.status_code == 200
    assert resp.text == '<html>index</html>'
    resp = spa_client.get('/api/missing')
    assert resp.status_code == 404
    assert resp.json() == {'error': 'Not found'}


def test_spa_does_not_serve_sibling_directories(tmp_path):
    spa_client = make_spa(tmp_path)
    resp = spa_client.get('/..%2Fspa-private%2Fsecret.txt')
    assert 'TOP SECRET' not in resp.text
    assert resp.text == '<html>index</html>'


def test_spa_mount_skipped_without_build(tmp_path):
    assert mount_spa(FastAPI(), str(tmp_path)) is False


def test_lifespan_shares_one_http_client():
    with TestClient(app):
        shared = app.state.http_client
        assert isinstance(shared, httpx.AsyncClient)
        request = Request({'type': 'http', 'app': app, 'headers': []})
        assert get_http_client(request) is shared
        assert not shared.is_closed
    assert shared.is_closed
