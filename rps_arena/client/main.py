# rps_arena/client/main.py

import argparse
import os
import queue
import socket
import threading
from collections import OrderedDict
from typing import Callable, List, Optional

from rps_arena.common.constants import (
    DEFAULT_PORT, DEFAULT_SERVER_HOST,
    TYPE_CONNECT_RESPONSE, TYPE_OPPONENT_RESPONSE, TYPE_INVITE_REQUEST, TYPE_INVITE_REJECTED,
    TYPE_GAME_START, TYPE_GAME_RESULT, TYPE_TIMEOUT, TYPE_OPPONENT_DISCONNECTED, TYPE_ERROR,
    STATUS_ERROR, WINNER_TIE,
)
from rps_arena.common.protocol import (
    Envelope,
    build_connect_request,
    build_opponent_request,
    build_invite_response,
    build_move,
    build_disconnect,
)
from rps_arena.common.logging_utils import setup_logging, get_logger
from rps_arena.client.gameplay import (
    EVENT_INPUT, EVENT_SERVER, EVENT_CLOSED,
    send_envelope, listen_to_server, read_console,
)
from rps_arena.client.ui import (
    welcome_script, ask_nickname, show_menu, prompt, parse_move, parse_yes_no, format_result,
)


log = get_logger("client.main")

MODE_MENU = "menu"
MODE_OPPONENT = "opponent"     # typing an opponent nickname
MODE_ANSWER = "answer"         # answering y/n to an invite
MODE_MOVE = "move"             # typing a move
MODE_WAITING = "waiting"       # waiting on the server


class ClientApp:
    """Console state machine fed with server envelopes and stdin lines."""

    def __init__(self, nickname: str, send: Callable[[bytes, str], None]) -> None:
        self.nickname = nickname
        self._send = send
        self.mode = MODE_WAITING
        self.invites: "OrderedDict[str, str]" = OrderedDict()   # request_id -> from_nickname
        self.answering: Optional[str] = None
        self.finished = False

    def send(self, raw: bytes, note: str = "") -> None:
        try:
            self._send(raw, note)
        except OSError as e:
            log.error(f"Lost connection to server: {e}")
            print("Connection to the server was lost.")
            self.finished = True

    def _to_menu(self) -> None:
        self.mode = MODE_MENU
        show_menu()

    # -------------------------
    # Server envelopes
    # -------------------------
    def on_server(self, env: Envelope) -> None:
        data = env.data
        message = data.get("message", "")

        if env.type == TYPE_CONNECT_RESPONSE:
            if data.get("status") == STATUS_ERROR:
                print(f"Error: {message}")
                self.finished = True
            else:
                print("Connection established!")
                self._to_menu()

        elif env.type == TYPE_OPPONENT_RESPONSE:
            if data.get("status") == STATUS_ERROR:
                print(f"\nError: {message}")
                self._to_menu()
            else:
                print(f"\n{message}")

        elif env.type == TYPE_INVITE_REQUEST:
            self.invites[data.get("request_id", "")] = data.get("from_nickname", "?")
            print(f"\nInvite received from {data.get('from_nickname')}. Choose 2 to answer.")
            if self.mode == MODE_MENU:
                show_menu()

        elif env.type == TYPE_INVITE_REJECTED:
            print(f"\n{message}")
            self._to_menu()

        elif env.type == TYPE_GAME_START:
            self.invites.clear()
            print(f"\n====== Round {data.get('round')} against {data.get('opponent')} ======")
            print(message)
            self.mode = MODE_MOVE
            prompt("Your move: ")

        elif env.type == TYPE_GAME_RESULT:
            print(f"\n{format_result(data, self.nickname)}")
            if data.get("winner") == WINNER_TIE:
                self.mode = MODE_WAITING
            else:
                self.finished = True

        elif env.type in (TYPE_TIMEOUT, TYPE_OPPONENT_DISCONNECTED):
            print(f"\n{message}")
            self.finished = True

        elif env.type == TYPE_ERROR:
            print(f"\nError: {message}")
            if self.mode in (MODE_MENU, MODE_WAITING):
                self._to_menu()
            elif self.mode == MODE_MOVE:
                prompt("Your move: ")

    # -------------------------
    # Console input
    # -------------------------
    def on_input(self, line: Optional[str]) -> None:
        if line is None:
            self.send(build_disconnect(self.nickname), "disconnect (stdin closed)")
            self.finished = True
            return

        if self.mode == MODE_MENU:
            self._on_menu_choice(line)

        elif self.mode == MODE_OPPONENT:
            if line:
                self.send(build_opponent_request(self.nickname, line), f"opponent_request {line}")
                self.mode = MODE_WAITING
            else:
                self._to_menu()

        elif self.mode == MODE_ANSWER:
            accepted = parse_yes_no(line)
            if accepted is None:
                prompt("Please answer y or n: ")
                return
            request_id = self.answering
            self.invites.pop(request_id, None)
            self.answering = None
            self.send(build_invite_response(request_id, accepted), f"invite_response {request_id}")
            if accepted:
                print("Waiting for the game to start...")
                self.mode = MODE_WAITING
            else:
                self._to_menu()

        elif self.mode == MODE_MOVE:
            move = parse_move(line)
            if move is None:
                prompt("Invalid move. Choose rock, paper, or scissors: ")
                return
            self.send(build_move(move, self.nickname), f"move {move}")
            print(f"You chose {move}. Waiting for your opponent...")
            self.mode = MODE_WAITING

    def _on_menu_choice(self, choice: str) -> None:
        if choice == "1":
            self.mode = MODE_OPPONENT
            prompt("Opponent nickname: ")
        elif choice == "2":
            if not self.invites:
                print("No pending invites right now.")
                show_menu()
                return
            request_id, from_nickname = next(iter(self.invites.items()))
            self.answering = request_id
            self.mode = MODE_ANSWER
            prompt(f"Player {from_nickname} wants to play with you. Accept? (y/n): ")
        elif choice == "3":
            self.send(build_disconnect(self.nickname), "disconnect")
            print("Leaving...")
            self.finished = True
        else:
            print("Invalid option, try again.")
            show_menu()

    def on_closed(self) -> None:
        if not self.finished:
            print("\nConnection closed by the server.")
            self.finished = True


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Rock-paper-scissors console client")
    parser.add_argument("--host", default=os.getenv("RPS_SERVER_HOST", DEFAULT_SERVER_HOST))
    parser.add_argument("--port", type=int, default=int(os.getenv("RPS_PORT", str(DEFAULT_PORT))))
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    setup_logging()
    args = _parse_args(argv)
    server_addr = (args.host, args.port)

    print(welcome_script())
    nickname = ask_nickname()

    events: "queue.Queue" = queue.Queue()
    try:
        s = socket.create_connection(server_addr, timeout=10.0)
    except OSError as e:
        log.error(f"Could not connect to {args.host}:{args.port}: {e}")
        return

    with s:
        s.settimeout(None)
        log.info("Connected to server via TCP")
        reader = s.makefile("rb")
        app = ClientApp(nickname, lambda raw, note: send_envelope(s, server_addr, raw, note))

        threading.Thread(target=listen_to_server, args=(reader, server_addr, events), daemon=True).start()
        app.send(build_connect_request(nickname), "connect_request")
        threading.Thread(target=read_console, args=(events,), daemon=True).start()

        while not app.finished:
            kind, payload = events.get()
            if kind == EVENT_SERVER:
                app.on_server(payload)
            elif kind == EVENT_INPUT:
                app.on_input(payload)
            elif kind == EVENT_CLOSED:
                app.on_closed()

    log.info("===== CLIENT EXIT =====")


if __name__ == "__main__":
    main()
