import os
import sys
import random
from datetime import datetime, timedelta, timezone
import pytest

# Ensure the backend root (containing the `cipherquiz` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from cipherquiz import create_app, db, socketio
from cipherquiz.services.questions import QuestionGenerator
from cipherquiz.services.session import Notifier, QuizEngine
from cipherquiz.services.store import MemoryRoomStore

ADMIN_PASSWORD = 'letmein'


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    ADMIN_PASSWORD = ADMIN_PASSWORD
    BCRYPT_LOG_ROUNDS = 4
    ROOM_STORE = 'sql'
    TIME_CHECK_INTERVAL_SEC = 0
    DEFAULT_LANGUAGE = 'en'
    CORS_ORIGINS = []


class RecordingNotifier(Notifier):
    """Keeps every push as (scope, target, event, payload)."""

    def __init__(self):
        self.sent = []

    def to_room(self, code, event, payload):
        self.sent.append(('room', code, event, payload))

    def to_admins(self, code, event, payload):
        self.sent.append(('admins', code, event, payload))

    def to_connection(self, connection_id, event, payload):
        self.sent.append(('connection', connection_id, event, payload))

    def named(self, event):
        return [entry for entry in self.sent if entry[2] == event]


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class StaticCustomQuestions:
    def __init__(self, questions=()):
        self.questions = list(questions)

    def get_questions(self):
        return list(self.questions)


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import cipherquiz.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def admin_client(client):
    res = client.post('/admin/login', json={'password': ADMIN_PASSWORD})
    assert res.status_code == 200
    return client


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def custom_questions():
    return StaticCustomQuestions()


@pytest.fixture()
def engine(notifier, clock, custom_questions):
    return QuizEngine(
        MemoryRoomStore(),
        QuestionGenerator(custom_questions),
        notifier=notifier,
        clock=clock,
        rng=random.Random(1234),
    )
