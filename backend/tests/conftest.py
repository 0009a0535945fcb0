import os
import sys
import pytest

# Ensure the backend root (containing the `nhie` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from nhie import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = ['http://localhost:3000']
    LOG_LEVEL = 'DEBUG'
    MIN_PLAYERS = 2
    MINORITY_BONUS = 10
    DEFAULT_QUESTION_COUNT = 10
    LEADERBOARD_SIZE = 10


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import nhie.models  # noqa: F401
        from nhie.services.questions import seed_questions
        db.create_all()
        seed_questions()
        db.session.commit()
        yield application
        # Room ids restart with every database, so forget old subscriptions
        from nhie.services.rooms.fanout import fanout
        for room_id in fanout.rooms():
            fanout.prune(room_id)
        db.session.remove()
        db.drop_all()


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


@pytest.fixture()
def make_user(flask_app):
    from nhie.models import User

    def _make(name):
        user = User(name=name)
        db.session.add(user)
        db.session.commit()
        return user.id
    return _make


@pytest.fixture()
def make_room(make_user):
    """Create a waiting room hosted by the first name, seating the rest."""
    from nhie.services.rooms import controller

    def _make(names=('Alice', 'Bob', 'Cara'), max_rounds=2, max_players=10):
        ids = [make_user(n) for n in names]
        room = controller.create_room(ids[0], 'Test room', max_players=max_players, max_rounds=max_rounds)
        room_id = room.id
        for uid in ids[1:]:
            controller.join_room(room_id, uid)
        return room_id, ids
    return _make
