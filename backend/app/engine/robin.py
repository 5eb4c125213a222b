"""
Round Robin Scheduler.

Circle method: the first player stays fixed and the rest rotate one place per
round. With an odd field a placeholder joins, so whoever faces it that round
has the bye. The whole schedule is produced once, up front.
"""

from collections import defaultdict
from typing import Dict, List, Sequence

from backend.app.schemas.bracket_schema import BracketPlayer, PlannedMatchup, SeedPlayer
from backend.app.engine.slots import placeholder_player


def generate_schedule(
    players: Sequence[SeedPlayer],
    double: bool = False,
    placeholder_name: str = "BYE",
) -> List[PlannedMatchup]:
    working: List[BracketPlayer] = [p.to_slot() for p in players]
    if len(working) % 2 != 0:
        working.append(placeholder_player(placeholder_name))

    num_players = len(working)
    num_rounds = num_players - 1
    half = num_players // 2

    fixed = working[0]
    rotating = working[1:]

    matchups: List[PlannedMatchup] = []
    for round_number in range(1, num_rounds + 1):
        round_players = [fixed] + rotating
        for i in range(half):
            player_1 = round_players[i]
            player_2 = round_players[num_players - 1 - i]
            matchups.append(_planned(round_number, i + 1, player_1, player_2))

        rotating = [rotating[-1]] + rotating[:-1]

    if double:
        # Second cycle: same pairings, slots swapped
        second_cycle = [
            _planned(m.round + num_rounds, m.match_number, m.players[1], m.players[0])
            for m in matchups
        ]
        matchups.extend(second_cycle)

    return matchups


def _planned(round_number: int, match_number: int, player_1: BracketPlayer, player_2: BracketPlayer) -> PlannedMatchup:
    planned = PlannedMatchup(round=round_number, match_number=match_number, players=[player_1, player_2])
    if planned.is_bye:
        # Byes are settled at creation so they never count as pending
        planned.winner = player_1.uuid or player_2.uuid
    return planned


def group_rounds(matches) -> Dict[int, list]:
    """Round view: matchups keyed by round number, ordered by match number."""
    rounds: Dict[int, list] = defaultdict(list)
    for match in sorted(matches, key=lambda m: (m.round, m.match_number)):
        rounds[match.round].append(match)
    return dict(rounds)
