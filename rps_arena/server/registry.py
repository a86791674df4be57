# rps_arena/server/registry.py

import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from rps_arena.common.logging_utils import get_logger

if TYPE_CHECKING:
    from rps_arena.server.session import Session

log = get_logger("server.registry")


class PlayerNotFound(LookupError):
    """Raised when a nickname is not currently registered."""
    pass


@dataclass(eq=False)
class Player:
    nickname: str
    connection: Any
    current_move: Optional[str] = None
    session: Optional["Session"] = field(default=None, repr=False)


class Registry:
    """
    nickname -> Player for everyone currently online.
    Every method holds the lock only for the map access itself.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._players: Dict[str, Player] = {}

    def register(self, nickname: str, connection: Any) -> Player:
        player = Player(nickname=nickname, connection=connection)
        with self._lock:
            previous = self._players.get(nickname)
            self._players[nickname] = player
        if previous is not None:
            log.info(f"Nickname '{nickname}' re-registered; previous connection superseded")
        else:
            log.info(f"Registered '{nickname}'")
        return player

    def lookup(self, nickname: str) -> Player:
        with self._lock:
            player = self._players.get(nickname)
        if player is None:
            raise PlayerNotFound(f"Player {nickname} not found.")
        return player

    def unregister(self, nickname: str, player: Optional[Player] = None) -> None:
        """
        Idempotent. With `player` given, the entry is only removed while it
        still belongs to that player (a newer registration is left alone).
        """
        with self._lock:
            current = self._players.get(nickname)
            if current is None or (player is not None and current is not player):
                return
            del self._players[nickname]
        log.info(f"Unregistered '{nickname}'")

    def begin_session(self, session: "Session") -> bool:
        players = (session.player1, session.player2)
        with self._lock:
            for p in players:
                if self._players.get(p.nickname) is not p or p.session is not None:
                    return False
            for p in players:
                p.session = session
        return True

    def end_session(self, session: "Session") -> None:
        with self._lock:
            for p in (session.player1, session.player2):
                if p.session is session:
                    p.session = None
                if self._players.get(p.nickname) is p:
                    del self._players[p.nickname]
        log.info(f"Session {session.player1.nickname} vs {session.player2.nickname} removed from registry")

    def nicknames(self) -> List[str]:
        with self._lock:
            return sorted(self._players)

    def __contains__(self, nickname: str) -> bool:
        with self._lock:
            return nickname in self._players

    def __len__(self) -> int:
        with self._lock:
            return len(self._players)
