# rps_arena/common/protocol.py

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from .logging_utils import get_logger
from .constants import (
    ENCODING, LINE_TERMINATOR, NAME_LEN,
    CLIENT_TYPES, SERVER_TYPES,
    TYPE_CONNECT_REQUEST, TYPE_OPPONENT_REQUEST, TYPE_INVITE_RESPONSE, TYPE_MOVE, TYPE_DISCONNECT,
    TYPE_CONNECT_RESPONSE, TYPE_OPPONENT_RESPONSE, TYPE_INVITE_REQUEST, TYPE_INVITE_REJECTED,
    TYPE_GAME_START, TYPE_GAME_RESULT, TYPE_TIMEOUT, TYPE_OPPONENT_DISCONNECTED, TYPE_ERROR,
    STATUS_SUCCESS, STATUS_ERROR,
    VALID_MOVES,
)

_log = get_logger("protocol")

# -------------------------
# Errors
# -------------------------
class ProtocolError(ValueError):
    """Raised when an envelope is malformed or invalid."""
    pass


def _require(condition: bool, msg: str) -> None:
    if not condition:
        _log.warning(f"ProtocolError: {msg}")
        raise ProtocolError(msg)


def _field_str(data: Dict[str, Any], name: str, optional: bool = False) -> Optional[str]:
    value = data.get(name)
    if value is None and optional:
        return None
    _require(isinstance(value, str), f"Field '{name}' must be a string")
    return value


def _field_bool(data: Dict[str, Any], name: str) -> bool:
    value = data.get(name)
    _require(isinstance(value, bool), f"Field '{name}' must be a boolean")
    return value


def _validate_nickname(nickname: str) -> str:
    nickname = nickname.strip()
    _require(len(nickname) > 0, "Nickname must not be empty")
    _require(len(nickname) <= NAME_LEN, f"Nickname must be at most {NAME_LEN} characters")
    return nickname


# -------------------------
# Envelope: {"type": str, "data": object} + "\n"
# -------------------------
@dataclass(frozen=True)
class Envelope:
    type: str
    data: Dict[str, Any]


def encode_envelope(msg_type: str, data: Dict[str, Any]) -> bytes:
    _require(msg_type in CLIENT_TYPES or msg_type in SERVER_TYPES, f"Unknown message type: {msg_type}")
    line = json.dumps({"type": msg_type, "data": data}, separators=(",", ":"))
    return line.encode(ENCODING) + LINE_TERMINATOR


def decode_envelope(raw: bytes) -> Envelope:
    try:
        obj = json.loads(raw.decode(ENCODING))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        _log.warning(f"ProtocolError: malformed envelope: {e}")
        raise ProtocolError(f"Malformed envelope: {e}") from e
    _require(isinstance(obj, dict), "Envelope must be a JSON object")
    msg_type = obj.get("type")
    _require(isinstance(msg_type, str), "Envelope 'type' must be a string")
    data = obj.get("data")
    if data is None:
        data = {}
    _require(isinstance(data, dict), "Envelope 'data' must be an object")
    return Envelope(type=msg_type, data=data)


# -------------------------
# Client -> Server messages (tagged union, decoded per type)
# -------------------------
@dataclass(frozen=True)
class ConnectRequest:
    nickname: str


@dataclass(frozen=True)
class OpponentRequest:
    opponent_nickname: str
    nickname: Optional[str] = None


@dataclass(frozen=True)
class InviteResponse:
    request_id: str
    accepted: bool


@dataclass(frozen=True)
class MoveRequest:
    move: str
    nickname: Optional[str] = None


@dataclass(frozen=True)
class DisconnectRequest:
    nickname: Optional[str] = None


ClientMessage = Union[ConnectRequest, OpponentRequest, InviteResponse, MoveRequest, DisconnectRequest]


def _parse_connect_request(data: Dict[str, Any]) -> ConnectRequest:
    return ConnectRequest(nickname=_validate_nickname(_field_str(data, "nickname")))


def _parse_opponent_request(data: Dict[str, Any]) -> OpponentRequest:
    return OpponentRequest(
        opponent_nickname=_validate_nickname(_field_str(data, "opponent_nickname")),
        nickname=_field_str(data, "nickname", optional=True),
    )


def _parse_invite_response(data: Dict[str, Any]) -> InviteResponse:
    request_id = _field_str(data, "request_id")
    _require(len(request_id) > 0, "Field 'request_id' must not be empty")
    return InviteResponse(request_id=request_id, accepted=_field_bool(data, "accepted"))


def _parse_move(data: Dict[str, Any]) -> MoveRequest:
    move = _field_str(data, "move").strip().lower()
    _require(move in VALID_MOVES, f"Invalid move: {move!r} (expected rock, paper, or scissors)")
    return MoveRequest(move=move, nickname=_field_str(data, "nickname", optional=True))


def _parse_disconnect(data: Dict[str, Any]) -> DisconnectRequest:
    return DisconnectRequest(nickname=_field_str(data, "nickname", optional=True))


_CLIENT_PARSERS = {
    TYPE_CONNECT_REQUEST: _parse_connect_request,
    TYPE_OPPONENT_REQUEST: _parse_opponent_request,
    TYPE_INVITE_RESPONSE: _parse_invite_response,
    TYPE_MOVE: _parse_move,
    TYPE_DISCONNECT: _parse_disconnect,
}


def parse_client_envelope(env: Envelope) -> ClientMessage:
    parser = _CLIENT_PARSERS.get(env.type)
    _require(parser is not None, f"Unknown message type: {env.type!r}")
    return parser(env.data)


def parse_client_message(raw: bytes) -> ClientMessage:
    return parse_client_envelope(decode_envelope(raw))


def build_connect_request(nickname: str) -> bytes:
    return encode_envelope(TYPE_CONNECT_REQUEST, {"nickname": nickname})


def build_opponent_request(nickname: str, opponent_nickname: str) -> bytes:
    return encode_envelope(TYPE_OPPONENT_REQUEST, {
        "nickname": nickname,
        "opponent_nickname": opponent_nickname,
    })


def build_invite_response(request_id: str, accepted: bool) -> bytes:
    return encode_envelope(TYPE_INVITE_RESPONSE, {"request_id": request_id, "accepted": accepted})


def build_move(move: str, nickname: Optional[str] = None) -> bytes:
    data = {"move": move}
    if nickname is not None:
        data["nickname"] = nickname
    return encode_envelope(TYPE_MOVE, data)


def build_disconnect(nickname: Optional[str] = None) -> bytes:
    return encode_envelope(TYPE_DISCONNECT, {} if nickname is None else {"nickname": nickname})


# -------------------------
# Server -> Client messages
# -------------------------
def _status_message(msg_type: str, ok: bool, message: str) -> bytes:
    return encode_envelope(msg_type, {
        "status": STATUS_SUCCESS if ok else STATUS_ERROR,
        "message": message,
    })


def build_connect_response(ok: bool, message: str) -> bytes:
    return _status_message(TYPE_CONNECT_RESPONSE, ok, message)


def build_opponent_response(ok: bool, message: str) -> bytes:
    return _status_message(TYPE_OPPONENT_RESPONSE, ok, message)


def build_invite_request(from_nickname: str, request_id: str) -> bytes:
    return encode_envelope(TYPE_INVITE_REQUEST, {"from_nickname": from_nickname, "request_id": request_id})


def build_invite_rejected(message: str) -> bytes:
    return encode_envelope(TYPE_INVITE_REJECTED, {"message": message})


def build_game_start(message: str, round_no: int, opponent: str) -> bytes:
    return encode_envelope(TYPE_GAME_START, {"message": message, "round": round_no, "opponent": opponent})


def build_game_result(
    player1: str,
    player2: str,
    player1_move: str,
    player2_move: str,
    winner: str,
    round_no: int,
    message: str,
) -> bytes:
    return encode_envelope(TYPE_GAME_RESULT, {
        "player1": player1,
        "player2": player2,
        "player1_move": player1_move,
        "player2_move": player2_move,
        "winner": winner,
        "round": round_no,
        "message": message,
    })


def build_timeout(message: str) -> bytes:
    return encode_envelope(TYPE_TIMEOUT, {"message": message})


def build_opponent_disconnected(message: str) -> bytes:
    return encode_envelope(TYPE_OPPONENT_DISCONNECTED, {"message": message})


def build_error(message: str) -> bytes:
    return encode_envelope(TYPE_ERROR, {"message": message})


def parse_server_message(raw: bytes) -> Envelope:
    env = decode_envelope(raw)
    _require(env.type in SERVER_TYPES, f"Unknown server message type: {env.type!r}")
    return env
