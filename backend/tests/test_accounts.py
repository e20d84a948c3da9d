import asyncio
import json

import httpx
import pytest

from casechat import accounts
from casechat.cases import CaseDirectory
from casechat.config import build_api_url
from casechat.errors import FormValidationError, SessionExpiredError
from casechat.services.webhook_client import WebhookClient
from casechat.session import AuthSession

BASE = "http://backend.test/webhook"

SIGNUP_FORM = {
    'name': 'Ana', 'email': 'ana@example.com', 'password': 'longenough',
    'confirmPassword': 'longenough', 'age': '30', 'gender': 'female',
}


def make_client(handler, token=None):
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return WebhookClient(AuthSession(token), base_url=BASE, client=http)


def never_called(request):
    raise AssertionError(f"unexpected request to {request.url}")


def test_build_api_url_strips_leading_slash():
    assert build_api_url('/login', 'http://h/webhook') == 'http://h/webhook/login'
    assert build_api_url('login', 'http://h/webhook/') == 'http://h/webhook/login'


def test_login_validation_runs_before_network():
    client = make_client(never_called)
    for email, password, error in [
        ('', 'longenough', 'Please fill in all fields'),
        ('not-an-email', 'longenough', 'Please enter a valid email'),
        ('a@b.co', 'short', 'Password must be at least 8 characters'),
    ]:
        with pytest.raises(FormValidationError, match=error):
            asyncio.run(accounts.login(client, email, password))


def test_login_starts_session():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={'token': 'tok-9'})

    client = make_client(handler)
    asyncio.run(accounts.login(client, 'a@b.co', 'longenough'))
    assert client.session.token == 'tok-9'
    assert json.loads(seen[0].content) == {'email': 'a@b.co', 'password': 'longenough'}
    assert 'authorization' not in seen[0].headers


def test_login_failure_messages():
    client = make_client(lambda r: httpx.Response(401, json={'message': 'Wrong password'}))
    with pytest.raises(FormValidationError, match='Wrong password'):
        asyncio.run(accounts.login(client, 'a@b.co', 'longenough'))
    # 401 on login is a bad credential, not an expired session
    assert not client.session.is_authenticated

    client = make_client(lambda r: httpx.Response(400, json={}))
    with pytest.raises(FormValidationError, match='Invalid email or password'):
        asyncio.run(accounts.login(client, 'a@b.co', 'longenough'))

    client = make_client(lambda r: httpx.Response(200, json={'ok': True}))
    with pytest.raises(FormValidationError, match='Token not returned from API'):
        asyncio.run(accounts.login(client, 'a@b.co', 'longenough'))


def test_signup_payload_and_validation():
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={'token': 'new'})

    client = make_client(handler)
    asyncio.run(accounts.sign_up(client, SIGNUP_FORM))
    assert seen[0] == {
        'name': 'Ana', 'email': 'ana@example.com', 'createPassword': 'longenough',
        'confirmPassword': 'longenough', 'age': 30, 'gender': 'female',
    }
    assert client.session.token == 'new'

    client = make_client(never_called)
    with pytest.raises(FormValidationError, match='Passwords do not match'):
        asyncio.run(accounts.sign_up(client, {**SIGNUP_FORM, 'confirmPassword': 'different1'}))
    # the signup screen reports the length rule before the mismatch
    with pytest.raises(FormValidationError, match='at least 8 characters'):
        asyncio.run(accounts.sign_up(client, {**SIGNUP_FORM, 'password': 'short', 'confirmPassword': 'other'}))
    with pytest.raises(FormValidationError, match='at least 13'):
        asyncio.run(accounts.sign_up(client, {**SIGNUP_FORM, 'age': '9'}))


def test_case_directory_refresh_and_open():
    def handler(request):
        name = request.url.path.rsplit('/', 1)[-1]
        assert request.headers['authorization'] == 'Bearer tok'
        if name == 'user-details':
            return httpx.Response(200, json={
                'id': 1, 'name': 'Ana', 'age': 30, 'gender': 'female', 'email': 'ana@example.com',
                'cases': [{'caseId': 4, 'name': 'Deposit', 'type': 'Property dispute',
                           'createdOn': '2024-01-01', 'lastModifiedOn': '2024-01-02'}],
            })
        if name == 'load-case-conversation':
            assert json.loads(request.content) == {'caseId': 4}
            return httpx.Response(200, json={'chat': [
                {'role': 'assistant', 'content': 'Hello again', 'time': '2024-01-02T10:00:00Z',
                 'contentType': 'text'},
                {'role': 'user', 'content': 'Hi', 'time': '2024-01-02T10:01:00Z', 'contentType': 'text'},
            ]})
        raise AssertionError(name)

    directory = CaseDirectory(make_client(handler, token='tok'))
    cases = asyncio.run(directory.refresh())
    assert [c.name for c in cases] == ['Deposit']
    assert directory.user.name == 'Ana'

    session = asyncio.run(directory.open_case(4))
    asyncio.run(session.bootstrap())
    assert session.case_type == 'Property dispute'
    assert [m.content for m in session.messages] == ['Hello again', 'Hi']


def test_create_case_validates_and_appends():
    requests = []

    def handler(request):
        requests.append(json.loads(request.content))
        return httpx.Response(200, json={'caseId': 9, 'name': 'Broken phone', 'type': 'Consumer complaint'})

    directory = CaseDirectory(make_client(handler, token='tok'))
    with pytest.raises(FormValidationError, match='Case name is required'):
        asyncio.run(directory.create_case('  ', 'Consumer complaint'))
    with pytest.raises(FormValidationError, match='Case type is required'):
        asyncio.run(directory.create_case('Broken phone', ''))
    assert requests == []

    session = asyncio.run(directory.create_case('Broken phone', 'Consumer complaint'))
    assert requests == [{'name': 'Broken phone', 'type': 'Consumer complaint'}]
    assert [c.case_id for c in directory.cases] == [9]
    assert session.conversation_id == 'case-9'
    assert session.title == 'Broken phone'


def test_expired_token_on_refresh():
    client = make_client(lambda r: httpx.Response(401, json={'message': 'expired'}), token='old')
    directory = CaseDirectory(client)
    with pytest.raises(SessionExpiredError):
        asyncio.run(directory.refresh())
    assert client.session.token is None
