import json

import pytest

from rps_arena.common.protocol import *
from rps_arena.common.constants import *


def test_envelope_is_one_json_line():
    raw = build_invite_request("alice", "req-1")
    assert raw.endswith(b"\n")
    assert raw.count(b"\n") == 1
    assert json.loads(raw) == {"type": "invite_request", "data": {"from_nickname": "alice", "request_id": "req-1"}}


def test_connect_request_roundtrip():
    msg = parse_client_message(build_connect_request("alice"))
    assert msg == ConnectRequest(nickname="alice")


def test_opponent_request_keeps_both_nicknames():
    msg = parse_client_message(build_opponent_request("alice", "bob"))
    assert msg == OpponentRequest(opponent_nickname="bob", nickname="alice")


def test_invite_response_roundtrip():
    msg = parse_client_message(build_invite_response("req-7", False))
    assert msg == InviteResponse(request_id="req-7", accepted=False)


def test_move_is_normalized():
    msg = parse_client_message(b'{"type":"move","data":{"move":" Rock "}}\n')
    assert msg == MoveRequest(move="rock")


def test_disconnect_without_data():
    assert parse_client_message(b'{"type":"disconnect"}\n') == DisconnectRequest()


@pytest.mark.parametrize("raw", [
    b"not json\n",
    b"[1, 2]\n",
    b'{"data": {}}\n',
    b'{"type": "connect_request", "data": "alice"}\n',
    b'{"type": "connect_request", "data": {}}\n',
    b'{"type": "connect_request", "data": {"nickname": "   "}}\n',
    b'{"type": "invite_response", "data": {"request_id": "req-1", "accepted": "yes"}}\n',
    b'{"type": "move", "data": {"move": "lizard"}}\n',
    b'{"type": "move", "data": {"move": 3}}\n',
    b'{"type": "teleport", "data": {}}\n',
    b"\xff\xfe\n",
])
def test_bad_client_messages_raise_protocol_error(raw):
    with pytest.raises(ProtocolError):
        parse_client_message(raw)


def test_nickname_length_limit():
    with pytest.raises(ProtocolError):
        parse_client_message(build_connect_request("x" * (NAME_LEN + 1)))


def test_game_result_fields():
    env = parse_server_message(build_game_result("alice", "bob", "rock", "scissors", "player1", 1, "Player alice wins!"))
    assert env.type == TYPE_GAME_RESULT
    assert env.data["winner"] == "player1"
    assert env.data["player1_move"] == "rock"
    assert env.data["player2_move"] == "scissors"


def test_status_responses():
    env = parse_server_message(build_opponent_response(False, "Player bob not found."))
    assert env.data == {"status": STATUS_ERROR, "message": "Player bob not found."}
    env = parse_server_message(build_connect_response(True, "ok"))
    assert env.data["status"] == STATUS_SUCCESS


def test_server_parser_rejects_client_types():
    with pytest.raises(ProtocolError):
        parse_server_message(build_move("rock"))
