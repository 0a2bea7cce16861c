"""
Auth0 login for the medical register.

Implements:
- Authorization code login against Auth0 with an anti-forgery ``state``
- Callback that exchanges the code and stores the user's claims in the session
- RP-initiated logout through Auth0's ``/v2/logout`` endpoint
- A simulated login for end-to-end tests (``ENABLE_TEST_LOGIN`` only)

Only the claims returned by ``/userinfo`` are kept; tokens are discarded
once the claims are fetched.
"""

import logging
import secrets
from functools import wraps
from urllib.parse import urlencode
import requests
from flask import (
    Blueprint, abort, current_app, flash, redirect, request, session, url_for
)
from medical_records.identity import SESSION_USER_KEY, current_user_claims

logger = logging.getLogger(__name__)

auth_blueprint = Blueprint('auth', __name__)

OAUTH_SCOPE = 'openid profile email'
OAUTH_TIMEOUT_SECONDS = 10

# Session key for the pending authorization request's state
_STATE_KEY = 'oauth_state'


def _auth0_base_url():
    domain = current_app.config.get('AUTH0_DOMAIN', '').strip().rstrip('/')
    if not domain:
        return None
    if not domain.startswith(('http://', 'https://')):
        domain = 'https://' + domain
    return domain


def is_auth0_configured():
    """Check that the Auth0 domain and client credentials are set."""
    return bool(
        _auth0_base_url()
        and current_app.config.get('AUTH0_CLIENT_ID')
        and current_app.config.get('AUTH0_CLIENT_SECRET')
    )


def login_required(f):
    """Redirect to the login page when no user is logged into the session."""
    @wraps(f)
    def decorated(*args, **kwargs):
        if not current_user_claims():
            logger.debug(f'Unauthenticated request to {request.path}; redirecting to login')
            return redirect(url_for('auth.login'))
        return f(*args, **kwargs)
    return decorated


@auth_blueprint.route('/login', methods=['GET'])
def login():
    """Start the authorization code flow at Auth0."""
    if not is_auth0_configured():
        logger.warning('Login requested but Auth0 is not configured')
        flash('Login is not available: the identity provider is not configured.', 'danger')
        return redirect(url_for('home.index'))

    state = secrets.token_urlsafe(32)
    session[_STATE_KEY] = state

    params = {
        'response_type': 'code',
        'client_id': current_app.config['AUTH0_CLIENT_ID'],
        'redirect_uri': url_for('auth.callback', _external=True),
        'scope': OAUTH_SCOPE,
        'state': state,
    }
    return redirect(f'{_auth0_base_url()}/authorize?{urlencode(params)}')


@auth_blueprint.route('/callback', methods=['GET'])
def callback():
    """Complete the login: verify state, exchange the code, fetch the user's claims."""
    expected_state = session.pop(_STATE_KEY, None)

    error = request.args.get('error')
    if error:
        logger.warning(f"Auth0 returned an error: {error} ({request.args.get('error_description', '')})")
        flash('Login failed. Please try again.', 'danger')
        return redirect(url_for('home.index'))

    state = request.args.get('state')
    if not expected_state or not state or not secrets.compare_digest(state, expected_state):
        logger.warning('OAuth state mismatch on callback')
        flash('Login failed: invalid login state. Please try again.', 'danger')
        return redirect(url_for('home.index'))

    code = request.args.get('code')
    if not code:
        flash('Login failed: no authorization code received.', 'danger')
        return redirect(url_for('home.index'))

    try:
        claims = _fetch_user_claims(code)
    except requests.RequestException as e:
        logger.error(f'Auth0 code exchange failed: {e}')
        flash('Login failed: could not contact the identity provider.', 'danger')
        return redirect(url_for('home.index'))

    session.clear()
    session[SESSION_USER_KEY] = claims
    logger.info(f"User {claims.get('sub')} logged in")
    return redirect(url_for('records.list_records'))


def _fetch_user_claims(code):
    """Exchange an authorization code for tokens and return the /userinfo claims."""
    base = _auth0_base_url()
    token_resp = requests.post(
        f'{base}/oauth/token',
        data={
            'grant_type': 'authorization_code',
            'client_id': current_app.config['AUTH0_CLIENT_ID'],
            'client_secret': current_app.config['AUTH0_CLIENT_SECRET'],
            'code': code,
            'redirect_uri': url_for('auth.callback', _external=True),
        },
        timeout=OAUTH_TIMEOUT_SECONDS
    )
    token_resp.raise_for_status()
    access_token = token_resp.json().get('access_token')
    if not access_token:
        raise requests.RequestException('Token response did not include an access_token')

    userinfo_resp = requests.get(
        f'{base}/userinfo',
        headers={'Authorization': f'Bearer {access_token}'},
        timeout=OAUTH_TIMEOUT_SECONDS
    )
    userinfo_resp.raise_for_status()
    return userinfo_resp.json()


@auth_blueprint.route('/logout', methods=['GET', 'POST'])
def logout():
    """Clear the local session and end the Auth0 session."""
    claims = current_user_claims() or {}
    session.clear()
    logger.info(f"User {claims.get('sub', 'anonymous')} logged out")

    if not is_auth0_configured():
        return redirect(url_for('home.index'))

    return_to = url_for('home.index', auth0logout='true', _external=True)
    params = {
        'client_id': current_app.config['AUTH0_CLIENT_ID'],
        'returnTo': return_to,
    }
    logout_url = f'{_auth0_base_url()}/v2/logout?{urlencode(params)}'
    logger.debug(f'Redirecting user to Auth0 logout URL: {logout_url}')
    return redirect(logout_url)


@auth_blueprint.route('/test/login', methods=['GET'])
def test_login():
    """
    Simulate a login for end-to-end tests.
    Only reachable when ENABLE_TEST_LOGIN is set. Never enable in production.
    """
    if not current_app.config.get('ENABLE_TEST_LOGIN'):
        abort(404)

    username = request.args.get('username', 'e2eTestUser')
    sub = request.args.get('sub', 'auth0|e2e-test-sub')
    email = request.args.get('email', 'e2e@example.com')

    logger.info(f'Simulating login for user: {username}, sub: {sub}')
    session.clear()
    session[SESSION_USER_KEY] = {'sub': sub, 'name': username, 'email': email}
    return f'Simulated login successful for {username}', 200, {'Content-Type': 'text/plain; charset=utf-8'}
