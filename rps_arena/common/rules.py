# rps_arena/common/rules.py

from enum import Enum
from typing import Dict

from .constants import ROCK, PAPER, SCISSORS, VALID_MOVES, WINNER_PLAYER1, WINNER_PLAYER2, WINNER_TIE


class Outcome(Enum):
    PLAYER1_WINS = WINNER_PLAYER1
    PLAYER2_WINS = WINNER_PLAYER2
    TIE = WINNER_TIE


# move -> the move it beats
BEATS: Dict[str, str] = {
    ROCK: SCISSORS,
    SCISSORS: PAPER,
    PAPER: ROCK,
}


def is_valid_move(move: str) -> bool:
    return move in VALID_MOVES


def evaluate(move1: str, move2: str) -> Outcome:
    if not is_valid_move(move1) or not is_valid_move(move2):
        raise ValueError(f"Invalid move pair: {move1!r} vs {move2!r}")
    if move1 == move2:
        return Outcome.TIE
    if BEATS[move1] == move2:
        return Outcome.PLAYER1_WINS
    return Outcome.PLAYER2_WINS
