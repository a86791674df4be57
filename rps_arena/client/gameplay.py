# rps_arena/client/gameplay.py

import queue
import socket
from typing import BinaryIO, Tuple

from rps_arena.common.constants import MAX_LINE_LEN
from rps_arena.common.protocol import ProtocolError, parse_server_message
from rps_arena.common.logging_utils import get_logger, log_packet

log = get_logger("client.gameplay")

# Items placed on the client's event queue
EVENT_INPUT = "input"
EVENT_SERVER = "server"
EVENT_CLOSED = "closed"


def send_envelope(sock: socket.socket, server_addr: Tuple[str, int], raw: bytes, note: str = "") -> None:
    sock.sendall(raw)
    log_packet(log, "OUT", "TCP", server_addr, raw, note=note)


def listen_to_server(reader: BinaryIO, server_addr: Tuple[str, int], events: "queue.Queue") -> None:
    """Background thread: push every server envelope onto `events` until EOF."""
    try:
        while True:
            raw = reader.readline(MAX_LINE_LEN + 1)
            if not raw:
                break
            log_packet(log, "IN", "TCP", server_addr, raw, note="server envelope received")
            try:
                env = parse_server_message(raw)
            except ProtocolError as e:
                log.warning(f"Bad server envelope: {e}")
                continue
            events.put((EVENT_SERVER, env))
    except OSError as e:
        log.info(f"Server connection ended: {e}")
    finally:
        events.put((EVENT_CLOSED, None))


def read_console(events: "queue.Queue") -> None:
    """Background thread: push stdin lines onto `events`."""
    while True:
        try:
            line = input()
        except EOFError:
            events.put((EVENT_INPUT, None))
            return
        events.put((EVENT_INPUT, line.strip()))
