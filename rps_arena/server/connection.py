# rps_arena/server/connection.py

import socket
import threading
from contextlib import suppress
from typing import Any, Optional, Tuple

from rps_arena.common.constants import MAX_LINE_LEN, LINE_TERMINATOR
from rps_arena.common.protocol import ProtocolError
from rps_arena.common.logging_utils import get_logger, log_packet

log = get_logger("server.connection")


class Connection:
    """
    One client's TCP stream, framed as newline-terminated JSON lines.
    Only the dispatcher thread reads; any thread may send or close.
    """

    def __init__(self, sock: socket.socket, addr: Tuple[str, int]) -> None:
        self.sock = sock
        self.addr = addr
        self._reader = sock.makefile("rb")
        self._send_lock = threading.Lock()
        self._close_lock = threading.Lock()
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def recv_line(self) -> bytes:
        line = self._reader.readline(MAX_LINE_LEN + 1)
        if not line:
            raise ConnectionError("Client disconnected while receiving data")
        if len(line) > MAX_LINE_LEN and not line.endswith(LINE_TERMINATOR):
            raise ProtocolError(f"Line exceeds {MAX_LINE_LEN} bytes")
        log_packet(log, "IN", "TCP", self.addr, line)
        return line

    def send(self, raw: bytes, note: str = "", parsed: Optional[Any] = None) -> bool:
        """Write one envelope. Returns False (and logs) if the peer is gone."""
        if self.closed:
            log.debug(f"Dropping send to closed connection {self.addr[0]}:{self.addr[1]} ({note})")
            return False
        try:
            with self._send_lock:
                self.sock.sendall(raw)
        except OSError as e:
            log.warning(f"Send failed to {self.addr[0]}:{self.addr[1]} ({note}): {e}")
            return False
        log_packet(log, "OUT", "TCP", self.addr, raw, parsed=parsed, note=note)
        return True

    def close(self) -> None:
        """Idempotent. Shutting down first unblocks a reader stuck in recv_line()."""
        with self._close_lock:
            if self._closed.is_set():
                return
            self._closed.set()
        with suppress(OSError):
            self.sock.shutdown(socket.SHUT_RDWR)
        with suppress(OSError):
            self._reader.close()
        self.sock.close()
