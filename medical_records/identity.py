"""
Caller identity resolution.

The login flow stores the identity provider's claims in the Flask session.
``resolve_subject`` turns those claims into the owner key used for every
record query; ``resolve_display_name`` is for greetings only and must never
be used to compute an owner.
"""

import logging
from collections.abc import Mapping
from flask import session

logger = logging.getLogger(__name__)

# Session key holding the authenticated user's claims
SESSION_USER_KEY = 'user'

DEFAULT_DISPLAY_NAME = 'User'
ANONYMOUS_DISPLAY_NAME = 'Unknown User'


def resolve_subject(claims):
    """
    Return the subject claim for an authenticated user.

    Args:
        claims: Claims mapping from the session, or None

    Returns:
        str or None: The ``sub`` claim, or None when there is no
        authenticated user or the claims carry no subject
    """
    if not claims or not isinstance(claims, Mapping):
        return None

    sub = claims.get('sub')
    if not sub:
        logger.warning(f"'sub' claim missing for authenticated user. Available claims: {sorted(claims.keys())}")
        return None
    return str(sub)


def resolve_display_name(claims):
    """Human-readable name for greetings. Falls back to a generic label."""
    if not claims or not isinstance(claims, Mapping):
        return ANONYMOUS_DISPLAY_NAME
    for key in ('name', 'nickname', 'email'):
        if claims.get(key):
            return claims[key]
    return DEFAULT_DISPLAY_NAME


def current_user_claims():
    """Claims of the user logged into the current session, if any."""
    return session.get(SESSION_USER_KEY)


def current_subject():
    return resolve_subject(current_user_claims())


def current_display_name():
    return resolve_display_name(current_user_claims())


def is_authenticated():
    return bool(current_user_claims())
