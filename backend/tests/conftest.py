import os
import sys
import pytest

# Ensure the backend root (containing the `trivia` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from trivia import create_app, socketio
from trivia.models import Player
from trivia.services.games import lifecycle
from trivia.questions import SAMPLE_QUESTIONS


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ORIGINS = ['http://localhost:3000']
    QUESTION_TIME_LIMIT_SEC = 15
    SESSION_CODE_LENGTH = 4
    GENERATION_TIMEOUT_SEC = 0.2
    DEFAULT_QUESTION_COUNT = 5
    MAX_QUESTION_COUNT = 20
    DOCUMENT_MAX_CHARS = 10000
    # No credentials in tests: generation always takes the fallback path
    ANTHROPIC_API_KEY = None
    ANTHROPIC_MODEL = 'test-model'
    GENERATION_MAX_TOKENS = 1000


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application
    application.extensions['trivia'].generator.shutdown()


@pytest.fixture()
def hub(flask_app):
    return flask_app.extensions['trivia']


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


def _connect(flask_app):
    return socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )


@pytest.fixture()
def sio_client(flask_app):
    test_client = _connect(flask_app)
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture()
def make_sio_client(flask_app):
    """Factory for extra connected clients (moderator, players, observers)."""
    clients = []

    def factory():
        c = _connect(flask_app)
        c.get_received('/ws')
        clients.append(c)
        return c

    yield factory
    for c in clients:
        try:
            c.disconnect(namespace='/ws')
        except Exception:
            pass


@pytest.fixture()
def two_question_session():
    session = lifecycle.create_session('ABCD', questions=SAMPLE_QUESTIONS[:2])
    lifecycle.join(session, Player(id='alice', display_name='Alice'))
    lifecycle.join(session, Player(id='bob', display_name='Bob'))
    return session
