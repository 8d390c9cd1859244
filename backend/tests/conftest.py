import os
import sys
import pytest

# Ensure the backend root (containing the `mimir` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from mimir import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    ALLOWED_ORIGINS = []
    ADDRESSED_TIMER_SEC = 30
    BONUS_TIMER_SEC = 5
    OVERRULE_WINDOW_SEC = 5
    POST_CORRECT_PAUSE_SEC = 3
    SCORING_POLICY = 'tiered'
    PASS_POLICY = 'consume'
    MATCH_THRESHOLD = 0.6
    ROOM_MAX_PLAYERS = 4
    ROOM_CODE_LENGTH = 6
    ROOM_CODE_RETRIES = 10


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import mimir.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def make_sio(flask_app):
    """Factory for extra Socket.IO test clients; all are disconnected at teardown."""
    clients = []

    def _make():
        test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        clients.append(test_client)
        return test_client

    yield _make
    for c in clients:
        try:
            if c.is_connected():
                c.disconnect()
        except Exception:
            pass


@pytest.fixture()
def sio_client(make_sio):
    return make_sio()


@pytest.fixture()
def seeded_quiz(flask_app):
    from mimir.models import QuizFile, QuizQuestion
    quiz = QuizFile(file_name='capitals.xlsx', author='Ada', topic='Capitals', league='Pub',
                    total_questions=3, total_rounds=1)
    rows = [
        (2, 'Capital of Germany?', 'Berlin'),
        (1, 'Capital of France?', 'Paris'),
        (9, 'Capital of Italy?', 'Rome'),
    ]
    # Inserted out of order on purpose; order_index decides
    for order, (player, question, answer) in zip((1, 0, 2), rows):
        quiz.questions.append(QuizQuestion(round_number=1, player_number=player, question=question,
                                           answer=answer, order_index=order))
    db.session.add(quiz)
    db.session.commit()
    return quiz.id
