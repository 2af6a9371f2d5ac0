import random

import pytest

from wordparty.config import Config
from wordparty.game import lobby
from wordparty.game.lobby import GameContext
from wordparty.game.ratelimit import RateLimiter
from wordparty.game.sessions import SessionRegistry
from wordparty.game.store import RoomStore
from wordparty.server import create_app


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SOCKETIO_ASYNC_MODE = "threading"
    TRUST_PROXY_HEADERS = False
    ROOM_SWEEP_INTERVAL_SEC = 0
    ENABLE_TIMERS_IN_TESTS = False
    RATE_LIMIT_MAX_EVENTS = 1000


@pytest.fixture()
def app_and_socketio():
    return create_app(TestConfig)


@pytest.fixture()
def flask_app(app_and_socketio):
    return app_and_socketio[0]


@pytest.fixture()
def socketio(app_and_socketio):
    return app_and_socketio[1]


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_clients(flask_app, socketio):
    """Factory for connected Socket.IO test clients; all are disconnected on teardown."""
    created = []

    def _make():
        test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        created.append(test_client)
        return test_client

    yield _make

    for test_client in created:
        if test_client.is_connected():
            test_client.disconnect()


@pytest.fixture()
def ctx():
    return GameContext(
        store=RoomStore(rng=random.Random(7)),
        sessions=SessionRegistry(),
        limiter=RateLimiter(),
        timers_enabled=False,
        sweep_interval_sec=0,
    )


@pytest.fixture()
def store(ctx):
    return ctx.store


def sid(name):
    return f"sid-{name}"


@pytest.fixture()
def seat(ctx):
    """Create a room hosted by the first name and join the rest, in order."""

    def _seat(game_type, *names):
        fx = lobby.create_room(ctx, game_type, sid(names[0]), names[0])
        code = fx.messages[0].payload["roomCode"]
        for name in names[1:]:
            lobby.join_room(ctx, game_type, code, sid(name), name)
        return ctx.store.get_room(code, game_type)

    return _seat


@pytest.fixture()
def force_roles():
    """Pin the spies and the secret word of the current spy round."""

    def _force(room, spies, category="animal", word="أسد"):
        room.current_category = category
        room.current_word = word
        room.spy_ids = [p.id for p in room.players if p.name in spies]
        for p in room.players:
            p.is_spy = p.id in room.spy_ids
        return room

    return _force
