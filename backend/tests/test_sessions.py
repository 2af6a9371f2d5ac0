from wordparty.game.sessions import SessionRegistry


def test_bind_and_drop_records_grace_entry():
    registry = SessionRegistry(grace_sec=120)
    registry.bind("s1", "Sara", "ABC123", "categories")
    assert registry.live_count == 1

    session = registry.drop("s1", now=1000)
    assert session.name == "Sara"
    assert registry.live_count == 0
    record = registry.recent_disconnect("Sara", "ABC123", "categories", now=1060)
    assert record is not None
    assert record.disconnect_time == 1000


def test_grace_record_expires_lazily():
    registry = SessionRegistry(grace_sec=120)
    registry.bind("s1", "Sara", "ABC123", "spy")
    registry.drop("s1", now=1000)
    assert registry.recent_disconnect("Sara", "ABC123", "spy", now=1121) is None
    assert registry.dropped_count == 0


def test_rebinding_clears_grace_record():
    registry = SessionRegistry()
    registry.bind("s1", "Sara", "ABC123", "spy")
    registry.drop("s1", now=0)
    registry.bind("s2", "Sara", "ABC123", "spy")
    assert registry.dropped_count == 0
    assert registry.get("s2").room_code == "ABC123"


def test_forget_room_and_sweep():
    registry = SessionRegistry(grace_sec=10)
    for i, name in enumerate(["a", "b"]):
        registry.bind(f"s{i}", name, "ROOM01", "categories")
        registry.drop(f"s{i}", now=0)
    registry.bind("s9", "c", "ROOM02", "categories")
    registry.drop("s9", now=100)

    registry.forget_room("ROOM01")
    assert registry.dropped_count == 1
    assert [r.name for r in registry.sweep(now=111)] == ["c"]
    assert registry.dropped_count == 0


def test_drop_unknown_connection_is_noop():
    assert SessionRegistry().drop("nobody") is None
