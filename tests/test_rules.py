import pytest

from rps_arena.common.rules import Outcome, evaluate, is_valid_move


@pytest.mark.parametrize("move1, move2, expected", [
    ("rock", "rock", Outcome.TIE),
    ("paper", "paper", Outcome.TIE),
    ("scissors", "scissors", Outcome.TIE),
    ("rock", "scissors", Outcome.PLAYER1_WINS),
    ("scissors", "paper", Outcome.PLAYER1_WINS),
    ("paper", "rock", Outcome.PLAYER1_WINS),
    ("scissors", "rock", Outcome.PLAYER2_WINS),
    ("paper", "scissors", Outcome.PLAYER2_WINS),
    ("rock", "paper", Outcome.PLAYER2_WINS),
])
def test_evaluate(move1, move2, expected):
    assert evaluate(move1, move2) is expected


def test_outcome_values_match_wire_winner_field():
    assert Outcome.PLAYER1_WINS.value == "player1"
    assert Outcome.PLAYER2_WINS.value == "player2"
    assert Outcome.TIE.value == "tie"


def test_evaluate_rejects_invalid_move():
    assert not is_valid_move("lizard")
    with pytest.raises(ValueError):
        evaluate("rock", "lizard")
