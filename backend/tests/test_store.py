import pytest

from wordparty.errors import NotFoundError, PreconditionError, ValidationError
from wordparty.game.store import RoomStore


def test_create_room_makes_host(store):
    room = store.create_room("categories", "sid-host", "  Host ")
    assert len(room.code) == 6
    assert room.host_id == "sid-host"
    assert room.players[0].name == "Host"
    assert room.players[0].is_host
    assert room.categories == ["boy", "girl", "animal", "plant", "object", "country"]


def test_codes_are_unique_across_game_types(store):
    codes = {store.create_room(gt, f"s{i}", "Host").code for i, gt in enumerate(["categories", "spy"] * 20)}
    assert len(codes) == 40


def test_lookup_is_scoped_by_game_type(store):
    room = store.create_room("spy", "s1", "Host")
    assert store.get_room(room.code, "spy") is room
    assert store.get_room(room.code, "categories") is None
    assert store.get_room(room.code) is room


def test_join_room_errors(store):
    room = store.create_room("categories", "s1", "Host")

    with pytest.raises(NotFoundError):
        store.join_room("categories", "ZZZZZZ", "s2", "Sara")
    with pytest.raises(ValidationError) as exc:
        store.join_room("categories", room.code, "s2", "Host")
    assert exc.value.code == "name_taken"
    with pytest.raises(PreconditionError) as exc:
        store.join_room("categories", room.code, "s1", "Other")
    assert exc.value.code == "already_joined"


def test_room_capacity_counts_disconnected_slots():
    store = RoomStore(max_players=2)
    room = store.create_room("categories", "s1", "Host")
    store.join_room("categories", room.code, "s2", "Sara")
    store.remove_connection("s2")
    with pytest.raises(PreconditionError) as exc:
        store.join_room("categories", room.code, "s3", "Omar")
    assert exc.value.code == "room_full"


def test_spy_join_rejected_while_game_active(store):
    room = store.create_room("spy", "s1", "Host")
    room.game_active = True
    with pytest.raises(PreconditionError) as exc:
        store.join_room("spy", room.code, "s2", "Sara")
    assert exc.value.code == "game_in_progress"


def test_remove_connection_migrates_host_in_join_order(store):
    room = store.create_room("categories", "s1", "Host")
    store.join_room("categories", room.code, "s2", "Sara")
    store.join_room("categories", room.code, "s3", "Omar")

    result = store.remove_connection("s1")
    assert not result.deleted
    assert result.active_players == 2
    assert result.new_host.name == "Sara"
    assert room.host_id == "s2"
    assert [p.is_host for p in room.players] == [False, True, False]
    assert room.players[0].disconnected


def test_remove_last_player_deletes_room(store):
    room = store.create_room("spy", "s1", "Host")
    result = store.remove_connection("s1")
    assert result.deleted
    assert store.get_room(room.code) is None
    assert store.remove_connection("s1") is None


def test_rebind_moves_every_reference(store):
    room = store.create_room("spy", "s1", "Host")
    store.join_room("spy", room.code, "s2", "Sara")
    store.join_room("spy", room.code, "s3", "Omar")
    room.spy_ids = ["s1"]
    room.players[1].voted_for = "s1"
    store.remove_connection("s1")

    player = store.rebind_player(room, "Host", "s9")
    assert player.id == "s9"
    assert not player.disconnected
    assert room.spy_ids == ["s9"]
    assert room.players[1].voted_for == "s9"
    # Host already moved to Sara while Host was away.
    assert room.host_id == "s2"


def test_rebind_refuses_connected_player(store):
    room = store.create_room("categories", "s1", "Host")
    assert store.rebind_player(room, "Host", "s9") is None


def test_sweep_removes_idle_and_empty_rooms(store):
    idle = store.create_room("categories", "s1", "Idle")
    busy = store.create_room("spy", "s2", "Busy")
    idle.last_activity = 0
    busy.last_activity = 10_000_000

    removed = store.sweep(now=10_000_000 + 1000)
    assert removed == [idle.code]
    assert store.get_room(busy.code) is busy


def test_stats_summaries(store):
    store.create_room("categories", "s1", "Host")
    store.create_room("spy", "s2", "Host")
    stats = store.stats()
    assert stats["totalCategoryRooms"] == 1
    assert stats["totalSpyRooms"] == 1
    assert stats["spyRooms"][0]["activePlayers"] == 1
    assert stats["categoryRooms"][0]["roundState"] == "idle"
