"""
Bracket Builder - round-1 matchups for every format.

Pure functions: they take an already-loaded player list and return planned
matchups. Persisting them is the bracket service's job.
"""

import random
from typing import List, Optional, Sequence

from backend.app.exceptions import InsufficientPlayersError
from backend.app.models.enums import PairingMode, TournamentFormat
from backend.app.schemas.bracket_schema import PlannedMatchup, SeedPlayer
from backend.app.engine import robin
from backend.app.engine.slots import bracket_size, placeholder_player


def _skill_vector(player: SeedPlayer, skill_fields: Sequence[str]) -> List[float]:
    if not skill_fields:
        return [s.value for s in player.skills]
    values = {s.name: s.value for s in player.skills}
    return [values.get(name, 0) for name in skill_fields]


def seed_players(players: Sequence[SeedPlayer], skill_fields: Sequence[str] = ()) -> List[SeedPlayer]:
    """Best first, comparing skills in order. Equal players keep registration order."""
    return sorted(players, key=lambda p: [-v for v in _skill_vector(p, skill_fields)])


def order_players(
    players: Sequence[SeedPlayer],
    mode: PairingMode,
    group_size: int = 2,
    skill_fields: Sequence[str] = (),
    rng: Optional[random.Random] = None,
) -> List[SeedPlayer]:
    rng = rng or random.Random()

    if mode == PairingMode.RANDOM:
        shuffled = list(players)
        rng.shuffle(shuffled)
        return shuffled

    ranked = seed_players(players, skill_fields)
    if mode == PairingMode.RANKED:
        return ranked

    # SEEDED: keep the seed bands, shuffle inside each band
    group_size = max(group_size, 1)
    grouped: List[SeedPlayer] = []
    for i in range(0, len(ranked), group_size):
        group = ranked[i:i + group_size]
        rng.shuffle(group)
        grouped.extend(group)
    return grouped


def build_elimination_round(players: Sequence[SeedPlayer], placeholder_name: str = "BYE") -> List[PlannedMatchup]:
    """
    Round 1 of a single-elimination bracket.

    The bracket is padded to the next power of two. Each missing player is a
    bye: the first players in order face a placeholder and win immediately,
    so no matchup ever holds two placeholders.
    """
    slots = bracket_size(len(players))
    match_count = slots // 2
    byes = slots - len(players)

    matchups: List[PlannedMatchup] = []
    for i in range(byes):
        player = players[i].to_slot()
        matchups.append(PlannedMatchup(
            round=1,
            match_number=i + 1,
            players=[player, placeholder_player(placeholder_name)],
            winner=player.uuid,
        ))

    remaining = list(players[byes:])
    for i in range(0, len(remaining), 2):
        matchups.append(PlannedMatchup(
            round=1,
            match_number=len(matchups) + 1,
            players=[remaining[i].to_slot(), remaining[i + 1].to_slot()],
        ))

    assert len(matchups) == match_count
    return matchups


def build_swiss_round(players: Sequence[SeedPlayer], placeholder_name: str = "BYE") -> List[PlannedMatchup]:
    """Round 1 of a Swiss event: consecutive pairs, odd player out gets a bye win."""
    matchups: List[PlannedMatchup] = []
    for i in range(0, len(players), 2):
        player_1 = players[i].to_slot()
        if i + 1 < len(players):
            matchups.append(PlannedMatchup(
                round=1,
                match_number=i // 2 + 1,
                players=[player_1, players[i + 1].to_slot()],
            ))
        else:
            matchups.append(PlannedMatchup(
                round=1,
                match_number=i // 2 + 1,
                players=[player_1, placeholder_player(placeholder_name)],
                winner=player_1.uuid,
            ))
    return matchups


def build_initial_matchups(
    players: Sequence[SeedPlayer],
    tournament_format: TournamentFormat,
    mode: PairingMode = PairingMode.RANDOM,
    group_size: int = 2,
    skill_fields: Sequence[str] = (),
    double_round_robin: bool = False,
    placeholder_name: str = "BYE",
    rng: Optional[random.Random] = None,
) -> List[PlannedMatchup]:
    if len(players) < 2:
        raise InsufficientPlayersError(
            f"At least 2 active players are required, found {len(players)}",
            player_count=len(players)
        )

    ordered = order_players(players, mode, group_size, skill_fields, rng)

    if tournament_format == TournamentFormat.ROBIN:
        return robin.generate_schedule(ordered, double=double_round_robin, placeholder_name=placeholder_name)
    if tournament_format == TournamentFormat.SWISS:
        return build_swiss_round(ordered, placeholder_name)
    return build_elimination_round(ordered, placeholder_name)
