# rps_arena/server/config.py

import os
from dataclasses import dataclass

from rps_arena.common.constants import DEFAULT_HOST, DEFAULT_PORT, INVITE_TIMEOUT_SEC, MOVE_TIMEOUT_SEC


@dataclass(frozen=True)
class ServerConfig:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    invite_timeout: float = INVITE_TIMEOUT_SEC
    move_timeout: float = MOVE_TIMEOUT_SEC

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Environment switches:
          RPS_HOST, RPS_PORT, RPS_INVITE_TIMEOUT, RPS_MOVE_TIMEOUT (seconds)
        """
        return cls(
            host=os.getenv("RPS_HOST", DEFAULT_HOST),
            port=int(os.getenv("RPS_PORT", str(DEFAULT_PORT))),
            invite_timeout=float(os.getenv("RPS_INVITE_TIMEOUT", str(INVITE_TIMEOUT_SEC))),
            move_timeout=float(os.getenv("RPS_MOVE_TIMEOUT", str(MOVE_TIMEOUT_SEC))),
        )
