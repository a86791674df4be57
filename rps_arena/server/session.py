# rps_arena/server/session.py

import queue
import threading
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from rps_arena.common.constants import MSG_GAME_START, MSG_NEXT_ROUND, MSG_TIE, MSG_TIMEOUT
from rps_arena.common.protocol import (
    build_game_start,
    build_game_result,
    build_timeout,
    build_opponent_disconnected,
)
from rps_arena.common.rules import Outcome, evaluate
from rps_arena.common.logging_utils import get_logger
from rps_arena.server.channel import ChannelClosed, OneShot
from rps_arena.server.registry import Player, Registry

log = get_logger("server.session")

SEAT_1 = 1
SEAT_2 = 2


class SessionState(Enum):
    AWAITING_MOVES = "awaiting_moves"
    EVALUATING = "evaluating"
    TERMINATED = "terminated"


class EndReason(Enum):
    DECISIVE = "decisive"
    TIMEOUT = "timeout"
    DISCONNECT = "disconnect"


class RoundSignal(Enum):
    TIMEOUT = "timeout"
    DISCONNECT = "disconnect"


RoundEvent = Tuple[int, Any]   # (seat, move string or RoundSignal)


class MoveCollector(threading.Thread):
    """Waits for one player's move in one round and reports it to the session."""

    def __init__(
        self,
        seat: int,
        player: Player,
        slot: OneShot,
        events: "queue.Queue[RoundEvent]",
        timeout: float,
    ) -> None:
        super().__init__(name=f"moves-{player.nickname}", daemon=True)
        self.seat = seat
        self.player = player
        self.slot = slot
        self.events = events
        self.timeout = timeout

    def run(self) -> None:
        try:
            move = self.slot.get(self.timeout)
        except TimeoutError:
            log.info(f"No move from {self.player.nickname} within {self.timeout}s")
            self.events.put((self.seat, RoundSignal.TIMEOUT))
        except ChannelClosed:
            log.debug(f"Move collector for {self.player.nickname} cancelled")
        else:
            self.events.put((self.seat, move))


class Session:
    """
    One game between two players, spanning as many rounds as ties require.

    AWAITING_MOVES -> EVALUATING -> AWAITING_MOVES (tie) or TERMINATED
    (decisive, timeout, disconnect). run() drives it on the calling thread;
    the dispatcher threads feed it through submit_move() and
    player_disconnected().
    """

    def __init__(self, player1: Player, player2: Player, registry: Registry, move_timeout: float) -> None:
        self.player1 = player1
        self.player2 = player2
        self.registry = registry
        self.move_timeout = move_timeout
        self.round = 0
        self.state = SessionState.AWAITING_MOVES
        self.end_reason: Optional[EndReason] = None

        self._lock = threading.Lock()
        self._slots: Dict[int, OneShot] = {}
        self._events: "queue.Queue[RoundEvent]" = queue.Queue()
        self._collectors: List[MoveCollector] = []
        self._departed: Optional[int] = None

    def __repr__(self) -> str:
        return f"Session({self.player1.nickname} vs {self.player2.nickname}, round={self.round}, state={self.state.value})"

    # -------------------------
    # Seats
    # -------------------------
    def seat_of(self, player: Player) -> int:
        if player is self.player1:
            return SEAT_1
        if player is self.player2:
            return SEAT_2
        raise ValueError(f"{player.nickname} is not part of {self!r}")

    def player_at(self, seat: int) -> Player:
        return self.player1 if seat == SEAT_1 else self.player2

    def opponent_of(self, player: Player) -> Player:
        return self.player2 if self.seat_of(player) == SEAT_1 else self.player1

    # -------------------------
    # Inputs from dispatcher threads
    # -------------------------
    def submit_move(self, player: Player, move: str) -> bool:
        """First move per player per round wins; anything else is ignored (False)."""
        seat = self.seat_of(player)
        with self._lock:
            if self.state is not SessionState.AWAITING_MOVES:
                return False
            slot = self._slots.get(seat)
            if slot is None or not slot.put(move):
                return False
            player.current_move = move
        log.info(f"Round {self.round}: move received from {player.nickname}")
        return True

    def player_disconnected(self, player: Player) -> None:
        seat = self.seat_of(player)
        with self._lock:
            if self.state is SessionState.TERMINATED or self._departed is not None:
                return
            self._departed = seat
            events = self._events
        log.info(f"{player.nickname} disconnected during {self!r}")
        events.put((seat, RoundSignal.DISCONNECT))

    # -------------------------
    # Game loop
    # -------------------------
    def run(self) -> EndReason:
        log.info(f"Session started: {self.player1.nickname} vs {self.player2.nickname}")
        # Ties replay without bound; an explicit loop keeps the stack flat.
        while True:
            events = self._open_round()
            reason = self._play_round(events)
            if reason is not None:
                log.info(f"Session {self.player1.nickname} vs {self.player2.nickname} "
                         f"ended in round {self.round}: {reason.value}")
                return reason

    def _open_round(self) -> "queue.Queue[RoundEvent]":
        with self._lock:
            self.round += 1
            self.state = SessionState.AWAITING_MOVES
            self._slots = {SEAT_1: OneShot(), SEAT_2: OneShot()}
            self._events = queue.Queue()
            self.player1.current_move = None
            self.player2.current_move = None
            if self._departed is not None:
                self._events.put((self._departed, RoundSignal.DISCONNECT))
            events = self._events
            slots = dict(self._slots)

        message = MSG_GAME_START if self.round == 1 else MSG_NEXT_ROUND.format(round=self.round)
        for p in (self.player1, self.player2):
            p.connection.send(
                build_game_start(message, self.round, self.opponent_of(p).nickname),
                note=f"game_start round={self.round}",
            )

        collectors = [
            MoveCollector(seat, self.player_at(seat), slots[seat], events, self.move_timeout)
            for seat in (SEAT_1, SEAT_2)
        ]
        with self._lock:
            self._collectors = collectors
        for c in collectors:
            c.start()
        return events

    def _play_round(self, events: "queue.Queue[RoundEvent]") -> Optional[EndReason]:
        moves: Dict[int, str] = {}
        while len(moves) < 2:
            seat, result = events.get()
            if result is RoundSignal.TIMEOUT:
                return self._finish(EndReason.TIMEOUT, seat)
            if result is RoundSignal.DISCONNECT:
                return self._finish(EndReason.DISCONNECT, seat)
            moves[seat] = result

        with self._lock:
            self.state = SessionState.EVALUATING
        self._close_round()

        move1, move2 = moves[SEAT_1], moves[SEAT_2]
        outcome = evaluate(move1, move2)
        if outcome is Outcome.TIE:
            message = MSG_TIE
        else:
            winner = self.player1 if outcome is Outcome.PLAYER1_WINS else self.player2
            message = f"Player {winner.nickname} wins!"
        log.info(f"Round {self.round}: {self.player1.nickname}={move1} {self.player2.nickname}={move2} -> {outcome.value}")

        self._broadcast(
            build_game_result(
                self.player1.nickname, self.player2.nickname,
                move1, move2,
                outcome.value, self.round, message,
            ),
            note=f"game_result round={self.round}",
        )

        if outcome is Outcome.TIE:
            return None
        return self._finish(EndReason.DECISIVE)

    def _close_round(self) -> None:
        """Cancel every collector of the current round and wait for them to exit."""
        with self._lock:
            slots = list(self._slots.values())
            collectors = self._collectors
            self._collectors = []
        for slot in slots:
            slot.close()
        for c in collectors:
            c.join()

    def _finish(self, reason: EndReason, seat: Optional[int] = None) -> EndReason:
        with self._lock:
            self.state = SessionState.TERMINATED
            self.end_reason = reason
        self._close_round()

        if reason is EndReason.TIMEOUT:
            self._broadcast(build_timeout(MSG_TIMEOUT), note="timeout")
        elif reason is EndReason.DISCONNECT:
            gone = self.player_at(seat)
            remaining = self.opponent_of(gone)
            remaining.connection.send(
                build_opponent_disconnected(f"Player {gone.nickname} disconnected. The game has ended."),
                note="opponent_disconnected",
            )

        self.registry.end_session(self)
        for p in (self.player1, self.player2):
            p.connection.close()
        return reason

    def _broadcast(self, raw: bytes, note: str = "") -> None:
        for p in (self.player1, self.player2):
            p.connection.send(raw, note=note)
