# rps_arena/server/channel.py

import threading
from typing import Any, Optional


class ChannelClosed(Exception):
    """Raised by OneShot.get() when the channel was closed before a value arrived."""
    pass


class OneShot:
    """
    Single-use, single-value rendezvous between two threads.
    The first put() wins; later puts and puts after close() are refused.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._ready = threading.Event()
        self._value: Any = None
        self._has_value = False
        self._closed = False

    def put(self, value: Any) -> bool:
        with self._lock:
            if self._has_value or self._closed:
                return False
            self._value = value
            self._has_value = True
        self._ready.set()
        return True

    def close(self) -> None:
        with self._lock:
            if self._has_value or self._closed:
                return
            self._closed = True
        self._ready.set()

    def get(self, timeout: Optional[float] = None) -> Any:
        if not self._ready.wait(timeout):
            raise TimeoutError(f"No value within {timeout} seconds")
        with self._lock:
            if self._has_value:
                return self._value
        raise ChannelClosed()

    @property
    def done(self) -> bool:
        return self._ready.is_set()
