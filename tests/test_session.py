import threading
import time

import pytest

from rps_arena.common.constants import (
    TYPE_GAME_START, TYPE_GAME_RESULT, TYPE_TIMEOUT, TYPE_OPPONENT_DISCONNECTED,
)
from rps_arena.server.session import EndReason, Session, SessionState


class SessionRunner:
    """Drives Session.run() on a background thread, the way the invite waiter does."""

    def __init__(self, session):
        self.session = session
        self.result = None
        self.thread = threading.Thread(target=self._run, daemon=True)
        self.thread.start()

    def _run(self):
        self.result = self.session.run()

    def join(self, timeout=5.0):
        self.thread.join(timeout)
        assert not self.thread.is_alive(), "session did not finish"
        return self.result


@pytest.fixture()
def game(registry, make_player):
    def _game(p1="alice", p2="bob", move_timeout=3.0):
        player1, player2 = make_player(p1), make_player(p2)
        session = Session(player1, player2, registry, move_timeout=move_timeout)
        assert registry.begin_session(session)
        return session, player1, player2
    return _game


def _collector_threads(*nicknames):
    names = {f"moves-{n}" for n in nicknames}
    return [t for t in threading.enumerate() if t.name in names and t.is_alive()]


def test_decisive_round_terminates_and_closes(game, registry):
    session, alice, bob = game()
    runner = SessionRunner(session)

    start = alice.connection.wait_for(TYPE_GAME_START)
    assert start.data["round"] == 1 and start.data["opponent"] == "bob"
    bob.connection.wait_for(TYPE_GAME_START)
    assert session.state is SessionState.AWAITING_MOVES

    assert session.submit_move(alice, "rock")
    assert session.submit_move(bob, "scissors")

    assert runner.join() is EndReason.DECISIVE
    for p in (alice, bob):
        result = p.connection.wait_for(TYPE_GAME_RESULT)
        assert result.data["winner"] == "player1"
        assert result.data["player1_move"] == "rock"
        assert result.data["player2_move"] == "scissors"
        assert p.connection.closed
        assert p.session is None
    assert session.state is SessionState.TERMINATED
    assert registry.nicknames() == []


def test_tie_replays_with_same_players(game):
    session, alice, bob = game()
    runner = SessionRunner(session)

    alice.connection.wait_for(TYPE_GAME_START)
    bob.connection.wait_for(TYPE_GAME_START)
    session.submit_move(alice, "rock")
    session.submit_move(bob, "rock")

    tie = alice.connection.wait_for(TYPE_GAME_RESULT)
    assert tie.data["winner"] == "tie"
    assert bob.connection.wait_for(TYPE_GAME_RESULT).data["winner"] == "tie"

    again = alice.connection.wait_for(TYPE_GAME_START, count=2)
    bob.connection.wait_for(TYPE_GAME_START, count=2)
    assert again.data["round"] == 2
    assert session.round == 2
    assert session.state is SessionState.AWAITING_MOVES
    assert not alice.connection.closed and not bob.connection.closed
    assert alice.current_move is None

    session.submit_move(alice, "rock")
    session.submit_move(bob, "paper")
    assert runner.join() is EndReason.DECISIVE
    final = alice.connection.wait_for(TYPE_GAME_RESULT, count=2)
    assert final.data["winner"] == "player2"
    assert final.data["round"] == 2


def test_second_move_in_round_is_ignored(game):
    session, alice, bob = game()
    runner = SessionRunner(session)
    alice.connection.wait_for(TYPE_GAME_START)

    assert session.submit_move(alice, "paper")
    assert not session.submit_move(alice, "scissors")
    assert alice.current_move == "paper"

    session.submit_move(bob, "rock")
    runner.join()
    assert alice.connection.wait_for(TYPE_GAME_RESULT).data["player1_move"] == "paper"


def test_no_moves_means_timeout_for_both(game):
    session, alice, bob = game(move_timeout=0.2)
    runner = SessionRunner(session)

    assert runner.join() is EndReason.TIMEOUT
    for p in (alice, bob):
        assert p.connection.wait_for(TYPE_TIMEOUT)
        assert p.connection.of_type(TYPE_GAME_RESULT) == []
        assert p.connection.closed


def test_one_silent_player_times_out_the_session(game):
    session, carol, dave = game("carol", "dave", move_timeout=0.3)
    runner = SessionRunner(session)
    carol.connection.wait_for(TYPE_GAME_START)
    session.submit_move(carol, "rock")

    assert runner.join() is EndReason.TIMEOUT
    assert carol.connection.wait_for(TYPE_TIMEOUT)
    assert dave.connection.wait_for(TYPE_TIMEOUT)
    assert _collector_threads("carol", "dave") == []


def test_disconnect_is_reported_distinctly(game, registry):
    session, alice, bob = game()
    runner = SessionRunner(session)
    alice.connection.wait_for(TYPE_GAME_START)

    session.player_disconnected(bob)

    assert runner.join() is EndReason.DISCONNECT
    env = alice.connection.wait_for(TYPE_OPPONENT_DISCONNECTED)
    assert "bob" in env.data["message"]
    assert alice.connection.of_type(TYPE_TIMEOUT) == []
    assert alice.connection.closed
    assert registry.nicknames() == []


def test_finished_round_cancels_collectors(game):
    session, erin, frank = game("erin", "frank", move_timeout=30.0)
    runner = SessionRunner(session)
    erin.connection.wait_for(TYPE_GAME_START)
    frank.connection.wait_for(TYPE_GAME_START)
    deadline = time.time() + 3.0
    while len(_collector_threads("erin", "frank")) < 2 and time.time() < deadline:
        time.sleep(0.01)
    assert len(_collector_threads("erin", "frank")) == 2

    session.player_disconnected(erin)
    runner.join()
    # the long move timeout has not elapsed, yet no collector is left behind
    assert _collector_threads("erin", "frank") == []


def test_disconnect_after_termination_is_noop(game):
    session, alice, bob = game()
    runner = SessionRunner(session)
    alice.connection.wait_for(TYPE_GAME_START)
    bob.connection.wait_for(TYPE_GAME_START)
    session.submit_move(alice, "scissors")
    session.submit_move(bob, "paper")
    runner.join()

    session.player_disconnected(alice)
    assert session.end_reason is EndReason.DECISIVE
    assert bob.connection.of_type(TYPE_OPPONENT_DISCONNECTED) == []
