import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

# Ensure the backend root (containing the `tondrop` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from tondrop import create_app, db, socketio


class FrozenClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)

    def set(self, now):
        self.now = now


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {}
    COMPETITION_ANCHOR = '2024-01-01T00:00:00Z'
    COMPETITION_PERIOD_DAYS = 14
    BOOSTER_MULTIPLIER = 10
    BOOSTER_DURATION_SEC = 3600
    REFERRAL_REFEREE_REWARD = 500
    REFERRAL_REFERRER_REWARD = 1000
    LEADERBOARD_DEFAULT_LIMIT = 10
    LEADERBOARD_MAX_LIMIT = 100
    AUTO_CREATE_PLAYERS = True
    LEDGER_CONFLICT_RETRIES = 3
    NOTIFICATIONS_ENABLED = True
    ADMIN_SECRET = 'admin-secret'
    LOG_LEVEL = 'DEBUG'
    CORS_ORIGINS = '*'


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    application.config['CLOCK'] = FrozenClock(datetime(2024, 1, 20, tzinfo=timezone.utc))
    with application.app_context():
        # Ensure models are imported so tables are created
        import tondrop.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def clock(flask_app):
    return flask_app.config['CLOCK']


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass
