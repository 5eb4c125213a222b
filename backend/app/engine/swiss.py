"""
Swiss Pairing Engine.

Pairs round R+1 from the full history of rounds 1..R:

1. Records (wins, losses, ties) from decided matchups; a bye counts as a win.
2. Ranking by wins desc, losses asc, ties desc. Python's sort is stable, so
   players with equal records keep the order they first appeared in.
3. Greedy from the top: each player takes the first unpaired player below
   them they have not met yet. Only when every candidate is a rematch do they
   take the next one anyway.
4. An odd player out gets a bye against a placeholder, already won.
"""

from typing import Dict, List, Optional, Sequence, Set, Tuple

from pydantic import BaseModel

from backend.app.exceptions import NoEligiblePlayersError
from backend.app.schemas.bracket_schema import BracketPlayer, PlannedMatchup
from backend.app.engine.slots import placeholder_player
from backend.app.engine.state_machine import is_decided


class PlayerRecord(BaseModel):
    player: BracketPlayer
    wins: int = 0
    losses: int = 0
    ties: int = 0
    byes: int = 0
    opponents: List[str] = []

    @property
    def points(self) -> float:
        return self.wins + 0.5 * self.ties


def _slots(match) -> List[BracketPlayer]:
    return [p if isinstance(p, BracketPlayer) else BracketPlayer(**p) for p in match.players]


def _ordered(matches) -> list:
    return sorted(matches, key=lambda m: (m.round, m.match_number))


def calculate_records(matches, bye_counts_as_win: bool = True) -> Dict[str, PlayerRecord]:
    """Records for every real player seen in the history, in first-appearance order."""
    records: Dict[str, PlayerRecord] = {}

    for match in _ordered(matches):
        slots = _slots(match)
        for player in slots:
            if not player.is_placeholder and player.uuid not in records:
                records[player.uuid] = PlayerRecord(player=player.model_copy(update={"score": 0}))

        if not is_decided(match):
            continue

        real = [p for p in slots if not p.is_placeholder]
        if len(real) == 2:
            records[real[0].uuid].opponents.append(real[1].uuid)
            records[real[1].uuid].opponents.append(real[0].uuid)

        if match.is_tie:
            for player in real:
                records[player.uuid].ties += 1
            continue

        winner = match.winner
        if winner not in records:
            continue
        if len(real) < 2:
            records[winner].byes += 1
            if bye_counts_as_win:
                records[winner].wins += 1
            continue

        records[winner].wins += 1
        for player in real:
            if player.uuid != winner:
                records[player.uuid].losses += 1

    return records


def rank_players(records: Dict[str, PlayerRecord]) -> List[str]:
    return [
        uuid for uuid, _ in sorted(
            records.items(),
            key=lambda item: (-item[1].wins, item[1].losses, -item[1].ties)
        )
    ]


def played_pairs(matches) -> Set[Tuple[str, str]]:
    """Every unordered pair of real players that already shares a matchup."""
    pairs: Set[Tuple[str, str]] = set()
    for match in matches:
        uuids = [p.uuid for p in _slots(match) if not p.is_placeholder]
        if len(uuids) == 2:
            pairs.add(tuple(sorted(uuids)))
    return pairs


def have_played(pairs: Set[Tuple[str, str]], player_1: str, player_2: str) -> bool:
    return tuple(sorted((player_1, player_2))) in pairs


def generate_pairings(
    matches: Sequence,
    next_round: Optional[int] = None,
    placeholder_name: str = "BYE",
    exclude: Sequence[str] = (),
) -> List[PlannedMatchup]:
    records = calculate_records(matches)
    for uuid in exclude:
        records.pop(uuid, None)

    available = rank_players(records)
    if len(available) < 2:
        raise NoEligiblePlayersError(
            "Fewer than two players are eligible for pairing",
            player_count=len(available)
        )

    if next_round is None:
        next_round = max(m.round for m in matches) + 1

    pairs = played_pairs(matches)
    pairings: List[PlannedMatchup] = []

    while len(available) > 1:
        player_1 = available.pop(0)

        opponent_index = next(
            (i for i, candidate in enumerate(available) if not have_played(pairs, player_1, candidate)),
            0  # last resort: rematch with the next player down
        )
        opponent = available.pop(opponent_index)

        pairings.append(PlannedMatchup(
            round=next_round,
            match_number=len(pairings) + 1,
            players=[records[player_1].player, records[opponent].player],
        ))

    if available:
        bye_player = records[available[0]].player
        pairings.append(PlannedMatchup(
            round=next_round,
            match_number=len(pairings) + 1,
            players=[bye_player, placeholder_player(placeholder_name)],
            winner=bye_player.uuid,
        ))

    return pairings
