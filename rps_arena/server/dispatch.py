# rps_arena/server/dispatch.py

import socket
from typing import Callable, Dict, Optional, Tuple

from rps_arena.common.constants import TYPE_CONNECT_REQUEST, TYPE_OPPONENT_REQUEST
from rps_arena.common.protocol import (
    ProtocolError,
    ClientMessage,
    ConnectRequest,
    OpponentRequest,
    InviteResponse,
    MoveRequest,
    DisconnectRequest,
    decode_envelope,
    parse_client_envelope,
    build_connect_response,
    build_opponent_response,
    build_invite_rejected,
    build_error,
)
from rps_arena.common.logging_utils import get_logger
from rps_arena.server.config import ServerConfig
from rps_arena.server.connection import Connection
from rps_arena.server.invites import InviteBroker, InviteError, InviteNotFound
from rps_arena.server.registry import Player, PlayerNotFound, Registry
from rps_arena.server.session import Session

log = get_logger("server.dispatch")

# Requests whose failures are answered with their own *_response{status:"error"}
_ERROR_REPLIES: Dict[str, Callable[[bool, str], bytes]] = {
    TYPE_CONNECT_REQUEST: build_connect_response,
    TYPE_OPPONENT_REQUEST: build_opponent_response,
}


class Dispatcher:
    """Owns the shared services and runs one read loop per client connection."""

    def __init__(self, config: ServerConfig) -> None:
        self.config = config
        self.registry = Registry()
        self.broker = InviteBroker(self.registry, config.invite_timeout, on_accept=self.start_session)

    def handle_client(self, sock: socket.socket, addr: Tuple[str, int]) -> None:
        log.info(f"Client connected: {addr[0]}:{addr[1]}")
        conn = Connection(sock, addr)
        player: Optional[Player] = None
        try:
            while True:
                raw = conn.recv_line()
                msg_type = None
                try:
                    env = decode_envelope(raw)
                    msg_type = env.type
                    msg = parse_client_envelope(env)
                except ProtocolError as e:
                    self._reply_error(conn, msg_type, str(e))
                    continue

                if isinstance(msg, DisconnectRequest):
                    log.info(f"Client {addr[0]}:{addr[1]} asked to disconnect")
                    break
                if player is None:
                    player = self._handle_unregistered(conn, msg)
                else:
                    self._dispatch(player, msg)

        except ProtocolError as e:
            log.warning(f"Unreadable stream from {addr[0]}:{addr[1]}: {e}")
        except (ConnectionError, OSError) as e:
            log.info(f"Connection with {addr[0]}:{addr[1]} ended: {e}")
        finally:
            if player is not None:
                self._drop(player)
            conn.close()
            log.info(f"Client disconnected: {addr[0]}:{addr[1]}")

    # -------------------------
    # Routing
    # -------------------------
    def _handle_unregistered(self, conn: Connection, msg: ClientMessage) -> Optional[Player]:
        if not isinstance(msg, ConnectRequest):
            conn.send(build_error("Please register with connect_request first."), note="error")
            return None
        player = self.registry.register(msg.nickname, conn)
        conn.send(build_connect_response(True, f"Connected as {msg.nickname}."), note="connect_response")
        return player

    def _dispatch(self, player: Player, msg: ClientMessage) -> None:
        conn = player.connection

        if isinstance(msg, ConnectRequest):
            conn.send(build_connect_response(False, f"Already registered as {player.nickname}."),
                      note="connect_response")
            return

        session = player.session
        if session is not None and not isinstance(msg, InviteResponse):
            if isinstance(msg, MoveRequest):
                if not session.submit_move(player, msg.move):
                    log.debug(f"Ignoring move from {player.nickname}: round not accepting it")
            else:
                conn.send(build_error("A game is in progress; only moves are accepted."), note="error")
            return

        if isinstance(msg, OpponentRequest):
            try:
                self.broker.request_opponent(player, msg.opponent_nickname)
            except (PlayerNotFound, InviteError) as e:
                conn.send(build_opponent_response(False, str(e)), note="opponent_response")
        elif isinstance(msg, InviteResponse):
            try:
                self.broker.respond(player, msg.request_id, msg.accepted)
            except InviteNotFound as e:
                conn.send(build_error(str(e)), note="error")
        elif isinstance(msg, MoveRequest):
            conn.send(build_error("No game in progress."), note="error")

    def _reply_error(self, conn: Connection, msg_type: Optional[str], message: str) -> None:
        builder = _ERROR_REPLIES.get(msg_type)
        if builder is not None:
            conn.send(builder(False, message), note=f"{msg_type} rejected")
        else:
            conn.send(build_error(message), note="error")

    def _drop(self, player: Player) -> None:
        # Unregister first: begin_session checks registry identity under the
        # registry lock, so after this either it fails or player.session is set.
        self.registry.unregister(player.nickname, player)
        self.broker.withdraw_invites(player)
        session = player.session
        if session is not None:
            session.player_disconnected(player)

    # -------------------------
    # Invite accepted
    # -------------------------
    def start_session(self, requester: Player, opponent: Player) -> None:
        """Runs on the invite's waiter thread, which then drives the whole game."""
        session = Session(requester, opponent, self.registry, self.config.move_timeout)
        if not self.registry.begin_session(session):
            log.info(f"Cannot start {requester.nickname} vs {opponent.nickname}: a player is no longer available")
            requester.connection.send(
                build_invite_rejected(f"The game with {opponent.nickname} could not start: a player is no longer available."),
                note="invite_rejected",
            )
            opponent.connection.send(
                build_error(f"The game with {requester.nickname} could not start: a player is no longer available."),
                note="error",
            )
            return
        session.run()
