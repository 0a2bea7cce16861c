"""
Tests for the Auth0 login, callback, and logout flow.

Uses unittest.mock to simulate Auth0's token and userinfo endpoints without
network calls.
"""

from urllib.parse import parse_qs, urlparse
import pytest
import requests
from unittest.mock import patch, MagicMock


def _start_login(client):
    """Hit /login and return the state it stored."""
    resp = client.get('/login')
    assert resp.status_code == 302
    query = parse_qs(urlparse(resp.headers['Location']).query)
    return query['state'][0]


def _mock_response(payload, status_code=200):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f'{status_code} error')
    return resp


class TestLogin:

    def test_login_redirects_to_auth0(self, client):
        resp = client.get('/login')
        assert resp.status_code == 302

        location = urlparse(resp.headers['Location'])
        assert location.netloc == 'tenant.example.auth0.com'
        assert location.path == '/authorize'

        query = parse_qs(location.query)
        assert query['response_type'] == ['code']
        assert query['client_id'] == ['test-client-id']
        assert query['scope'] == ['openid profile email']
        assert query['redirect_uri'][0].endswith('/callback')

        with client.session_transaction() as sess:
            assert sess['oauth_state'] == query['state'][0]

    def test_login_without_auth0_config(self, app, client):
        app.config['AUTH0_DOMAIN'] = ''
        try:
            resp = client.get('/login')
        finally:
            app.config['AUTH0_DOMAIN'] = 'tenant.example.auth0.com'
        assert resp.status_code == 302
        assert resp.headers['Location'].endswith('/')


class TestCallback:

    @patch('medical_records.auth.requests.get')
    @patch('medical_records.auth.requests.post')
    def test_callback_stores_claims(self, mock_post, mock_get, client):
        claims = {'sub': 'auth0|new-user', 'name': 'New User', 'email': 'new@example.com'}
        mock_post.return_value = _mock_response({'access_token': 'at-123', 'token_type': 'Bearer'})
        mock_get.return_value = _mock_response(claims)

        state = _start_login(client)
        resp = client.get(f'/callback?code=auth-code&state={state}')

        assert resp.status_code == 302
        assert resp.headers['Location'].endswith('/records')
        with client.session_transaction() as sess:
            assert sess['user'] == claims
            assert 'oauth_state' not in sess

        token_call = mock_post.call_args
        assert token_call.args[0] == 'https://tenant.example.auth0.com/oauth/token'
        assert token_call.kwargs['data']['code'] == 'auth-code'
        assert token_call.kwargs['data']['client_secret'] == 'test-client-secret'
        assert mock_get.call_args.kwargs['headers']['Authorization'] == 'Bearer at-123'

    @patch('medical_records.auth.requests.post')
    def test_callback_rejects_state_mismatch(self, mock_post, client):
        _start_login(client)
        resp = client.get('/callback?code=auth-code&state=forged')

        assert resp.status_code == 302
        assert resp.headers['Location'].endswith('/')
        mock_post.assert_not_called()
        with client.session_transaction() as sess:
            assert 'user' not in sess

    @patch('medical_records.auth.requests.post')
    def test_callback_without_pending_login(self, mock_post, client):
        resp = client.get('/callback?code=auth-code&state=anything')
        assert resp.status_code == 302
        mock_post.assert_not_called()

    @patch('medical_records.auth.requests.post')
    def test_callback_provider_error(self, mock_post, client):
        state = _start_login(client)
        resp = client.get(f'/callback?error=access_denied&state={state}')
        assert resp.status_code == 302
        mock_post.assert_not_called()

    @patch('medical_records.auth.requests.post')
    def test_callback_token_exchange_failure(self, mock_post, client):
        mock_post.return_value = _mock_response({'error': 'invalid_grant'}, status_code=403)

        state = _start_login(client)
        resp = client.get(f'/callback?code=bad-code&state={state}')

        assert resp.status_code == 302
        assert resp.headers['Location'].endswith('/')
        with client.session_transaction() as sess:
            assert 'user' not in sess


class TestLogout:

    def test_logout_clears_session_and_redirects_to_auth0(self, client_a):
        resp = client_a.get('/logout')
        assert resp.status_code == 302

        location = urlparse(resp.headers['Location'])
        assert location.netloc == 'tenant.example.auth0.com'
        assert location.path == '/v2/logout'
        query = parse_qs(location.query)
        assert query['client_id'] == ['test-client-id']
        assert query['returnTo'][0].endswith('/?auth0logout=true')

        with client_a.session_transaction() as sess:
            assert 'user' not in sess


class TestSimulatedLogin:

    def test_test_login_sets_session(self, client):
        resp = client.get('/test/login?username=tester&sub=auth0|tester')
        assert resp.status_code == 200
        assert 'Simulated login successful for tester' in resp.get_data(as_text=True)

        with client.session_transaction() as sess:
            assert sess['user']['sub'] == 'auth0|tester'
            assert sess['user']['name'] == 'tester'

    def test_test_login_defaults(self, client):
        client.get('/test/login')
        with client.session_transaction() as sess:
            assert sess['user'] == {
                'sub': 'auth0|e2e-test-sub',
                'name': 'e2eTestUser',
                'email': 'e2e@example.com',
            }

    def test_test_login_disabled(self, app, client):
        app.config['ENABLE_TEST_LOGIN'] = False
        try:
            resp = client.get('/test/login')
        finally:
            app.config['ENABLE_TEST_LOGIN'] = True
        assert resp.status_code == 404

    def test_test_login_then_api_access(self, client):
        client.get('/test/login?sub=auth0|e2e')
        resp = client.post('/api/v1/records',
                           json={'name': 'E2E Patient', 'age': 40, 'notes': 'Created end to end.'})
        assert resp.status_code == 201
        assert resp.get_json()['ownerId'] == 'auth0|e2e'
