import pytest

from conftest import FakeConnection
from rps_arena.server.registry import PlayerNotFound, Registry
from rps_arena.server.session import Session


def test_register_and_lookup(registry):
    conn = FakeConnection("alice")
    player = registry.register("alice", conn)
    assert registry.lookup("alice") is player
    assert player.connection is conn
    assert "alice" in registry


def test_lookup_missing_raises(registry):
    with pytest.raises(PlayerNotFound):
        registry.lookup("ghost")


def test_reregister_supersedes_previous_connection(registry):
    old_conn, new_conn = FakeConnection("old"), FakeConnection("new")
    registry.register("alice", old_conn)
    registry.register("alice", new_conn)
    assert registry.lookup("alice").connection is new_conn
    assert len(registry) == 1
    # the superseded connection is not told anything
    assert old_conn.sent == []


def test_unregister_is_idempotent(registry):
    registry.register("alice", FakeConnection())
    registry.unregister("alice")
    registry.unregister("alice")
    assert "alice" not in registry


def test_stale_player_does_not_unregister_newer_entry(registry):
    old = registry.register("alice", FakeConnection("old"))
    new = registry.register("alice", FakeConnection("new"))
    registry.unregister("alice", old)
    assert registry.lookup("alice") is new


def test_begin_and_end_session(registry, make_player):
    alice, bob = make_player("alice"), make_player("bob")
    session = Session(alice, bob, registry, move_timeout=1.0)

    assert registry.begin_session(session)
    assert alice.session is session and bob.session is session

    # already bound: a second session for the same players is refused
    assert not registry.begin_session(Session(alice, bob, registry, move_timeout=1.0))

    registry.end_session(session)
    assert alice.session is None and bob.session is None
    assert registry.nicknames() == []


def test_begin_session_refuses_departed_player(registry, make_player):
    alice, bob = make_player("alice"), make_player("bob")
    registry.unregister("bob")
    assert not registry.begin_session(Session(alice, bob, registry, move_timeout=1.0))
    assert alice.session is None
