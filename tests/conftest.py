"""
Test fixtures for the Medical Register.
"""

import os
import pytest

# Set test environment before importing app so no file-based DB is created
os.environ['TESTING'] = '1'
os.environ['SQLALCHEMY_DATABASE_URI'] = 'sqlite:///:memory:'
os.environ['ENABLE_TEST_LOGIN'] = '1'
os.environ['RECORDS_SOFT_DELETE'] = 'true'
os.environ['AUTH0_DOMAIN'] = 'tenant.example.auth0.com'
os.environ['AUTH0_CLIENT_ID'] = 'test-client-id'
os.environ['AUTH0_CLIENT_SECRET'] = 'test-client-secret'

# Standard identities for all tests
USER_A = {'sub': 'auth0|user-a', 'name': 'Alice Example', 'email': 'alice@example.com'}
USER_B = {'sub': 'auth0|user-b', 'name': 'Bob Example', 'email': 'bob@example.com'}


@pytest.fixture
def app():
    """Create a test Flask application."""
    from main import app as flask_app
    flask_app.config['TESTING'] = True
    flask_app.config['RECORDS_SOFT_DELETE'] = True

    from models import db
    with flask_app.app_context():
        db.create_all()
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create a test client."""
    return app.test_client()


def login_as(client, claims):
    """Store identity provider claims in the client's session."""
    with client.session_transaction() as sess:
        sess['user'] = dict(claims)


@pytest.fixture
def user_a():
    return dict(USER_A)


@pytest.fixture
def user_b():
    return dict(USER_B)


@pytest.fixture
def client_a(app, user_a):
    """Client logged in as user A."""
    c = app.test_client()
    login_as(c, user_a)
    return c


@pytest.fixture
def client_b(app, user_b):
    """Client logged in as user B."""
    c = app.test_client()
    login_as(c, user_b)
    return c


@pytest.fixture
def service(app):
    from medical_records.service import RecordService
    from medical_records.repository import RecordRepository
    return RecordService(RecordRepository())


@pytest.fixture
def sample_record():
    """Sample record payload as submitted by a caller."""
    return {
        'name': 'Patient Zero',
        'age': 30,
        'notes': 'Seasonal allergies; no known drug allergies.',
    }
