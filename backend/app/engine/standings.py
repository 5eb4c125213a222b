from typing import List

from backend.app.schemas.tournament_schema import StandingEntry
from backend.app.engine.swiss import calculate_records, rank_players


def calculate_standings(matches, bye_counts_as_win: bool = True) -> List[StandingEntry]:
    """Standings table in ranking order, with match-win and opponent-win percentages."""
    records = calculate_records(matches, bye_counts_as_win=bye_counts_as_win)

    match_win = {}
    for uuid, record in records.items():
        played = record.wins + record.losses + record.ties
        match_win[uuid] = record.wins / played if played else 0.0

    standings = []
    for uuid in rank_players(records):
        record = records[uuid]
        opponents = record.opponents
        owp = sum(match_win[o] for o in opponents) / len(opponents) if opponents else 0.0
        standings.append(StandingEntry(
            uuid=uuid,
            name=record.player.name,
            wins=record.wins,
            losses=record.losses,
            ties=record.ties,
            byes=record.byes,
            points=record.points,
            opponents=list(opponents),
            match_win_percentage=round(match_win[uuid] * 100, 2),
            opponent_win_percentage=round(owp * 100, 2),
        ))
    return standings
