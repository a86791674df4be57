# rps_arena/client/ui.py

from typing import Optional

from rps_arena.common.constants import ROCK, PAPER, SCISSORS

MOVE_ALIASES = {
    "rock": ROCK, "r": ROCK,
    "paper": PAPER, "p": PAPER,
    "scissors": SCISSORS, "s": SCISSORS,
}


def welcome_script() -> str:
    return "welcome to ROCK PAPER SCISSORS!"


def ask_nickname() -> str:
    nickname = ""
    while not nickname:
        nickname = input("Enter your nickname: ").strip()
    return nickname


def show_menu() -> None:
    print("\nMenu:")
    print("1. Invite an opponent")
    print("2. Answer an invite")
    print("3. Quit")
    print("Choose an option: ", end="", flush=True)


def prompt(text: str) -> None:
    print(text, end="", flush=True)


def parse_move(raw: str) -> Optional[str]:
    """
    Returns "rock", "paper" or "scissors" (exactly as protocol expects),
    or None if the input is not a move.
    """
    return MOVE_ALIASES.get(raw.strip().lower())


def parse_yes_no(raw: str) -> Optional[bool]:
    raw = raw.strip().lower()
    if raw in ("y", "yes"):
        return True
    if raw in ("n", "no"):
        return False
    return None


def format_result(data: dict, nickname: str) -> str:
    p1, p2 = data.get("player1", "player1"), data.get("player2", "player2")
    line = f"{p1} chose {data.get('player1_move')}, {p2} chose {data.get('player2_move')}. "
    winner = data.get("winner")
    if winner == "tie":
        return line + "It's a tie!"
    winner_name = p1 if winner == "player1" else p2
    verdict = "You win!" if winner_name == nickname else "You lose."
    return line + f"Winner: {winner_name}. {verdict}"
