# rps_arena/common/logging_utils.py

import logging
import os
from typing import Any, Optional, Tuple

# Environment switches:
#   LOG_LEVEL=DEBUG / INFO / WARNING / ERROR
#   LOG_RAW=1 to include the raw JSON line in packet logs
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_RAW = os.getenv("LOG_RAW", "0") == "1"


def setup_logging(level: str = LOG_LEVEL) -> None:
    """Call once at program start (client/main.py and server/main.py)."""
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def preview(data: bytes, max_len: int = 200) -> str:
    """Printable head of a raw line, trailing newline stripped."""
    text = data[:max_len].decode("utf-8", errors="replace").rstrip("\r\n")
    if len(data) > max_len:
        text += f" ... (+{len(data) - max_len} bytes)"
    return text


def log_packet(
    logger: logging.Logger,
    direction: str,               # "IN" / "OUT"
    transport: str,               # "TCP"
    addr: Optional[Tuple[str, int]],
    raw: bytes,
    parsed: Optional[Any] = None,
    note: str = "",
    level: int = logging.DEBUG,
) -> None:
    """
    Unified packet log.
    addr: (ip, port) if known, else None.
    parsed: any parsed object (dataclass or dict) to print summary.
    """
    if not logger.isEnabledFor(level):
        return

    where = f"{addr[0]}:{addr[1]}" if addr else "-"
    base = f"[{transport}][{direction}] {where} len={len(raw)}"
    if note:
        base += f" | {note}"

    if parsed is not None:
        base += f" | parsed={parsed}"

    if LOG_RAW:
        base += f" | raw={preview(raw)}"

    logger.log(level, base)
