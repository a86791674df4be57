# rps_arena/common/constants.py

# Network
DEFAULT_HOST = ""
DEFAULT_PORT = 8080
DEFAULT_SERVER_HOST = "localhost"   # where the client connects by default

# Framing
LINE_TERMINATOR = b"\n"
MAX_LINE_LEN = 64 * 1024
ENCODING = "utf-8"

# Fixed sizes
NAME_LEN = 32

# Timeouts (seconds)
INVITE_TIMEOUT_SEC = 120.0
MOVE_TIMEOUT_SEC = 90.0

# Message types: client -> server
TYPE_CONNECT_REQUEST = "connect_request"
TYPE_OPPONENT_REQUEST = "opponent_request"
TYPE_INVITE_RESPONSE = "invite_response"
TYPE_MOVE = "move"
TYPE_DISCONNECT = "disconnect"

# Message types: server -> client
TYPE_CONNECT_RESPONSE = "connect_response"
TYPE_OPPONENT_RESPONSE = "opponent_response"
TYPE_INVITE_REQUEST = "invite_request"
TYPE_INVITE_REJECTED = "invite_rejected"
TYPE_GAME_START = "game_start"
TYPE_GAME_RESULT = "game_result"
TYPE_TIMEOUT = "timeout"
TYPE_OPPONENT_DISCONNECTED = "opponent_disconnected"
TYPE_ERROR = "error"

CLIENT_TYPES = {
    TYPE_CONNECT_REQUEST,
    TYPE_OPPONENT_REQUEST,
    TYPE_INVITE_RESPONSE,
    TYPE_MOVE,
    TYPE_DISCONNECT,
}

SERVER_TYPES = {
    TYPE_CONNECT_RESPONSE,
    TYPE_OPPONENT_RESPONSE,
    TYPE_INVITE_REQUEST,
    TYPE_INVITE_REJECTED,
    TYPE_GAME_START,
    TYPE_GAME_RESULT,
    TYPE_TIMEOUT,
    TYPE_OPPONENT_DISCONNECTED,
    TYPE_ERROR,
}

# Response status values
STATUS_SUCCESS = "success"
STATUS_ERROR = "error"

# Moves
ROCK = "rock"
PAPER = "paper"
SCISSORS = "scissors"
VALID_MOVES = (ROCK, PAPER, SCISSORS)

# winner field of game_result
WINNER_PLAYER1 = "player1"
WINNER_PLAYER2 = "player2"
WINNER_TIE = "tie"

INVITE_ID_PREFIX = "req-"

# Player-facing texts
MSG_GAME_START = "The game has started. Please enter your move: rock, paper, or scissors."
MSG_NEXT_ROUND = "Round {round}: it was a tie, play again. Please enter your move: rock, paper, or scissors."
MSG_TIE = "It's a tie! Play again."
MSG_TIMEOUT = "The game has ended due to inactivity."
MSG_INVITE_TIMEOUT = "Invite timed out."
