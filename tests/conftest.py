import threading
from typing import List

import pytest

from rps_arena.common.protocol import Envelope, decode_envelope
from rps_arena.server.registry import Registry


class FakeConnection:
    """In-memory stand-in for server.connection.Connection."""

    def __init__(self, name: str = "fake") -> None:
        self.addr = (name, 0)
        self.sent: List[Envelope] = []
        self.closed = False
        self._cond = threading.Condition()

    def send(self, raw: bytes, note: str = "", parsed=None) -> bool:
        with self._cond:
            if self.closed:
                return False
            self.sent.append(decode_envelope(raw))
            self._cond.notify_all()
            return True

    def close(self) -> None:
        with self._cond:
            self.closed = True
            self._cond.notify_all()

    def types(self) -> List[str]:
        with self._cond:
            return [e.type for e in self.sent]

    def of_type(self, msg_type: str) -> List[Envelope]:
        with self._cond:
            return [e for e in self.sent if e.type == msg_type]

    def wait_for(self, msg_type: str, count: int = 1, timeout: float = 3.0) -> Envelope:
        with self._cond:
            ok = self._cond.wait_for(
                lambda: len([e for e in self.sent if e.type == msg_type]) >= count,
                timeout,
            )
        assert ok, f"{self.addr[0]} never got {count}x {msg_type}; got {self.types()}"
        return self.of_type(msg_type)[count - 1]

    def wait_closed(self, timeout: float = 3.0) -> None:
        with self._cond:
            ok = self._cond.wait_for(lambda: self.closed, timeout)
        assert ok, f"{self.addr[0]} was never closed"


@pytest.fixture()
def registry():
    return Registry()


@pytest.fixture()
def make_player(registry):
    def _make(nickname: str):
        return registry.register(nickname, FakeConnection(nickname))
    return _make
