import logging
import random
from typing import List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings as engine_settings
from backend.app.core.events import ChangeNotifier, change_notifier
from backend.app.exceptions import RoundAlreadyGeneratedError, TournamentEngineError
from backend.app.models.enums import PairingMode, TournamentFormat
from backend.app.models.match_model import TournamentMatch
from backend.app.schemas.bracket_schema import MatchupResponse, MatchupView, RoundView, SeedPlayer
from backend.app.schemas.tournament_schema import StandingEntry
from backend.app.engine.bracket import build_initial_matchups
from backend.app.engine.robin import group_rounds
from backend.app.engine.slots import destination
from backend.app.engine.standings import calculate_standings
from backend.app.engine.state_machine import match_state
from backend.app.services.match_store import MatchStore, match_store
from backend.app.services.propagation_service import PropagationService, propagation_service
from backend.app.services.roster_store import RosterStore, roster_store
from backend.app.services.tournament_service import tournament_service, tournament_settings

logger = logging.getLogger(__name__)


class BracketService:
    def __init__(
        self,
        store: MatchStore = match_store,
        roster: RosterStore = roster_store,
        propagator: PropagationService = propagation_service,
        notifier: ChangeNotifier = change_notifier,
    ):
        self.store = store
        self.roster = roster
        self.propagator = propagator
        self.notifier = notifier

    async def build_initial_bracket(
        self,
        db: AsyncSession,
        tournament_id: int,
        players: Optional[Sequence[SeedPlayer]] = None,
        pairing_mode: Optional[PairingMode] = None,
        rng: Optional[random.Random] = None,
    ) -> List[TournamentMatch]:
        """
        Generates and stores round 1 (the whole schedule for round robin).

        Elimination byes are won on creation and their winners pushed into
        round 2 in the same transaction.
        """
        try:
            tournament = await tournament_service.get(db, tournament_id)
            tournament_service.ensure_editable(tournament, "the bracket")
            config = tournament_settings(tournament)

            if await self.store.count_round(db, tournament_id, 1):
                raise RoundAlreadyGeneratedError(
                    f"Tournament {tournament_id} already has a round 1",
                    tournament_id=tournament_id
                )

            if players is None:
                players = await self.roster.active_players(db, tournament_id)

            mode = PairingMode(pairing_mode or config.pairing_mode or engine_settings.default_pairing_mode)
            planned = build_initial_matchups(
                players,
                TournamentFormat(tournament.format),
                mode=mode,
                group_size=config.seeded_group_size or engine_settings.default_seeded_group_size,
                skill_fields=config.skill_fields,
                double_round_robin=config.double_round_robin,
                placeholder_name=engine_settings.placeholder_name,
                rng=rng,
            )

            created = await self.store.insert_many(db, tournament_id, planned)

            if tournament.format == TournamentFormat.SINGLE:
                advanced = []
                for match in created:
                    if match.winner:
                        dest = await self.propagator.propagate(db, tournament, match)
                        if dest is not None and dest not in advanced:
                            advanced.append(dest)
                created.extend(advanced)

            await self.store.commit(db)
        except TournamentEngineError:
            await db.rollback()
            raise

        logger.info(
            "Tournament %s bracket built: %s matchups from %s players (%s)",
            tournament_id, len(created), len(players), mode
        )
        for round_number in sorted({m.round for m in created}):
            await self.notifier.notify_round_changed(tournament_id, round_number)
        return created

    async def rounds_view(self, db: AsyncSession, tournament_id: int) -> List[RoundView]:
        """Matchups grouped by round, each with its derived state."""
        tournament = await tournament_service.get(db, tournament_id)
        matches = await self.store.list_for_tournament(db, tournament_id)
        by_slot = {(m.round, m.match_number): m for m in matches}

        def view(match) -> MatchupView:
            downstream = None
            if tournament.format == TournamentFormat.SINGLE:
                next_round, next_number, _ = destination(match.round, match.match_number)
                downstream = by_slot.get((next_round, next_number))
            return MatchupView(
                **MatchupResponse.model_validate(match).model_dump(),
                state=match_state(match, downstream),
            )

        return [
            RoundView(round=round_number, matches=[view(m) for m in round_matches])
            for round_number, round_matches in group_rounds(matches).items()
        ]

    async def standings(self, db: AsyncSession, tournament_id: int) -> List[StandingEntry]:
        tournament = await tournament_service.get(db, tournament_id)
        matches = await self.store.list_for_tournament(db, tournament_id)
        # A round robin bye is a rest round, not a win
        return calculate_standings(matches, bye_counts_as_win=tournament.format != TournamentFormat.ROBIN)


bracket_service = BracketService()
