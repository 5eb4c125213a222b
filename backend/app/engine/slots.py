"""
Slot addressing for elimination brackets.

Round R, match M feeds round R+1, match ceil(M/2). Odd match numbers feed the
first slot of the destination, even ones the second. Every caller (builder,
propagator, pairing) goes through these helpers instead of doing the index
arithmetic inline.
"""

from typing import Optional, Tuple

from backend.app.models.enums import AccountType
from backend.app.schemas.bracket_schema import BracketPlayer


def destination_slot(match_number: int) -> int:
    return 1 - (match_number % 2)


def destination_match_number(match_number: int) -> int:
    return (match_number + 1) // 2


def destination(round_number: int, match_number: int) -> Tuple[int, int, int]:
    """Returns (round, match_number, slot) that a winner of this match moves into."""
    return round_number + 1, destination_match_number(match_number), destination_slot(match_number)


def source_match_numbers(match_number: int) -> Tuple[int, int]:
    """The two previous-round match numbers that feed this match (slot 0, slot 1)."""
    return match_number * 2 - 1, match_number * 2


def bracket_size(player_count: int) -> int:
    """Next power of two that fits every player (minimum 2)."""
    size = 2
    while size < player_count:
        size *= 2
    return size


def elimination_rounds(first_round_matches: int, max_rounds: Optional[int] = None) -> int:
    """Number of rounds in a bracket with the given round-1 size, capped by max_rounds."""
    rounds = 1
    matches = max(first_round_matches, 1)
    while matches > 1:
        matches = (matches + 1) // 2
        rounds += 1
    if max_rounds:
        return min(rounds, max_rounds)
    return rounds


def placeholder_player(name: str = "") -> BracketPlayer:
    return BracketPlayer(uuid="", name=name, account_type=AccountType.PLACEHOLDER, score=0)


def slot_uuid(players: list, slot: int) -> str:
    """uuid held by a stored slot dict (empty string for placeholders)."""
    if slot >= len(players) or players[slot] is None:
        return ""
    return players[slot].get("uuid", "") or ""
