import time

import pytest

from wordparty.game import spy
from wordparty.realtime.handlers import broadcast_shutdown, flush
from wordparty.server import create_app

from conftest import TestConfig


def received(test_client):
    by_name = {}
    for pkt in test_client.get_received():
        by_name.setdefault(pkt["name"], []).append(pkt["args"][0] if pkt["args"] else None)
    return by_name


def open_room(sio_clients, *names, game="categories"):
    prefix = "spy-" if game == "spy" else ""
    host = sio_clients()
    host.emit(f"{prefix}create-room", {"playerName": names[0]})
    code = received(host)[f"{prefix}room-created"][0]["roomCode"]
    clients = [host]
    for name in names[1:]:
        c = sio_clients()
        c.emit(f"{prefix}join-room", {"roomCode": code, "playerName": name})
        clients.append(c)
    for c in clients:
        c.get_received()
    return code, clients


def test_create_and_join_broadcasts(sio_clients):
    host = sio_clients()
    ack = host.emit("create-room", "Host", callback=True)
    assert ack == {"ok": True}
    created = received(host)["room-created"][0]
    assert created["isHost"]
    code = created["roomCode"]

    guest = sio_clients()
    guest.emit("join-room", {"roomCode": code.lower(), "playerName": "Sara"})
    joined = received(guest)["room-joined"][0]
    assert [p["name"] for p in joined["players"]] == ["Host", "Sara"]
    assert received(host)["player-joined"][0]["playerName"] == "Sara"


def test_errors_go_only_to_the_sender(sio_clients):
    code, (host, guest) = open_room(sio_clients, "Host", "Sara")

    ack = guest.emit("start-game", {"roomCode": code}, callback=True)
    assert ack == {"ok": False, "error": "only_host"}
    assert received(guest)["error"][0]["error"] == "only_host"
    assert received(host) == {}

    guest2 = sio_clients()
    guest2.emit("join-room", {"roomCode": "nope", "playerName": "X"})
    assert received(guest2)["error"][0]["error"] == "invalid_room_code"
    guest2.emit("join-room", {"roomCode": code, "playerName": "Sara"})
    assert received(guest2)["error"][0]["error"] == "name_taken"


def test_categories_round_over_sockets(sio_clients):
    code, (host, guest) = open_room(sio_clients, "Host", "Sara")

    host.emit("select-letter", {"roomCode": code, "letter": "ب"})
    host.emit("start-game", {"roomCode": code, "totalRounds": "1", "categories": ["boy", "animal", "country"]})
    started = received(guest)["round-started"][0]
    assert started["letter"] == "ب"
    assert started["totalRounds"] == 1
    host.get_received()

    guest.emit("finish-round", {"roomCode": code, "answers": {"boy": "بسام"}})
    assert received(host)["round-ended"][0]["finisher"] == "Sara"
    host.emit("submit-answers", {"roomCode": code, "answers": {"boy": "بدر"}})
    scoring = received(guest)["scoring-phase"][0]
    assert {p["name"]: p["roundScore"] for p in scoring["players"]} == {"Host": 10, "Sara": 10}

    host.emit("update-single-score", {"roomCode": code, "playerId": scoring["players"][1]["id"], "category": "boy", "score": 5})
    assert received(guest)["score-updated"][0]["roundScore"] == 5

    host.emit("update-scores-and-next", {"roomCode": code})
    over = received(guest)["game-over"][0]["players"]
    assert [p["name"] for p in over] == ["Host", "Sara"]

    host.emit("play-again", code)
    assert received(guest)["reset-game"][0]["usedLetters"] == []


def test_host_disconnect_notifies_everyone_left(sio_clients):
    code, (host, first, second) = open_room(sio_clients, "Host", "A", "B")

    host.disconnect()
    for c in (first, second):
        events = received(c)
        assert events["host-changed"][0]["hostName"] == "A"
        assert events["player-left"][0]["playerName"] == "Host"


def test_reconnect_over_sockets(sio_clients):
    code, (host, guest) = open_room(sio_clients, "Host", "Sara")
    guest.disconnect()
    host.get_received()

    back = sio_clients()
    back.emit("attempt-reconnect", {"name": "Sara", "roomCode": code, "gameType": "categories", "clientTime": 0})
    snap = received(back)["reconnect-success"][0]
    assert snap["roomCode"] == code
    assert not snap["isHost"]
    assert received(host)["player-reconnected"][0]["playerName"] == "Sara"

    # The rebound connection receives room broadcasts again.
    host.emit("select-letter", {"roomCode": code, "letter": "ت"})
    assert received(back)["letter-selected"][0] == {"letter": "ت"}

    stranger = sio_clients()
    stranger.emit("attempt-reconnect", {"name": "Ghost", "roomCode": code, "gameType": "categories"})
    assert received(stranger)["reconnect-failed"][0] == {"reason": "player_not_found"}


def test_spy_roles_are_private(flask_app, sio_clients):
    code, clients = open_room(sio_clients, "Host", "A", "B", game="spy")
    host = clients[0]
    host.emit("spy-start-game", {"roomCode": code, "spyCount": 1, "categories": ["animal"]})

    ctx = flask_app.extensions["wordparty"]
    room = ctx.store.get_room(code, "spy")
    roles = []
    for c in clients:
        events = received(c)
        assert len(events["spy-round-started"]) == 1
        roles.append(events["spy-round-started"][0])
    assert sum(1 for r in roles if r["isSpy"]) == 1
    assert {r["word"] for r in roles if not r["isSpy"]} == {room.current_word}


def test_shutdown_broadcast_reaches_rooms(flask_app, socketio, sio_clients):
    code, (host, guest) = open_room(sio_clients, "Host", "Sara")
    assert broadcast_shutdown(socketio, flask_app.extensions["wordparty"]) == 1
    assert "message" in received(guest)["server-shutdown"][0]


class LimitedConfig(TestConfig):
    RATE_LIMIT_MAX_EVENTS = 2


def test_rate_limited_events_are_dropped_silently():
    app, socketio = create_app(LimitedConfig)
    c = socketio.test_client(app)
    try:
        acks = [c.emit("join-room", {"roomCode": "ZZZZZZ", "playerName": "X"}, callback=True) for _ in range(3)]
        assert acks[:2] == [{"ok": False, "error": "room_not_found"}] * 2
        assert not acks[2]
        assert len(received(c)["error"]) == 2
    finally:
        c.disconnect()


class TimerConfig(TestConfig):
    ENABLE_TIMERS_IN_TESTS = True
    SPY_GUESS_TIMEOUT_SEC = 0


@pytest.fixture()
def timer_app():
    return create_app(TimerConfig)


def test_guess_timer_resolves_round(timer_app):
    app, socketio = timer_app
    ctx = app.extensions["wordparty"]
    clients = [socketio.test_client(app) for _ in range(3)]
    try:
        host, a, b = clients
        host.emit("spy-create-room", {"playerName": "Host"})
        code = received(host)["spy-room-created"][0]["roomCode"]
        a.emit("spy-join-room", {"roomCode": code, "playerName": "A"})
        b.emit("spy-join-room", {"roomCode": code, "playerName": "B"})
        host.emit("spy-start-game", {"roomCode": code})

        room = ctx.store.get_room(code, "spy")
        spy_id = room.players[2].id
        room.spy_ids = [spy_id]
        for p in room.players:
            p.is_spy = p.id == spy_id
        for c in clients:
            c.emit("spy-confirm-role", {"roomCode": code})
        assert room.round_state == "discussion"

        # Skip the real discussion countdown.
        flush(socketio, spy.fire_timer(ctx.store, code, "discussion", room.pending_timer.token))
        assert room.round_state == "voting"

        host.emit("spy-submit-vote", {"roomCode": code, "votedFor": spy_id})
        a.emit("spy-submit-vote", {"roomCode": code, "votedFor": spy_id})
        b.emit("spy-submit-vote", {"roomCode": code, "votedFor": room.players[0].id})

        deadline = time.time() + 3.0
        result = None
        while time.time() < deadline and result is None:
            events = received(a)
            if "spy-round-result" in events:
                result = events["spy-round-result"][0]
            else:
                time.sleep(0.05)
        assert result is not None
        assert result["spyCaught"]
        assert not result["spyGuessedCorrectly"]
    finally:
        for c in clients:
            if c.is_connected():
                c.disconnect()
