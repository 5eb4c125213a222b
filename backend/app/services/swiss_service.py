import logging
from typing import List, Optional

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings as engine_settings
from backend.app.core.events import ChangeNotifier, change_notifier
from backend.app.exceptions import (
    NoEligiblePlayersError, PendingMatchesError, RoundAlreadyGeneratedError,
    StateError, TournamentEngineError, TournamentFinishedError
)
from backend.app.models.enums import RosterStatus, TournamentFormat, WinCondition
from backend.app.models.match_model import TournamentMatch
from backend.app.models.tournament_model import Tournament
from backend.app.engine.standings import calculate_standings
from backend.app.engine.state_machine import is_decided
from backend.app.engine.swiss import generate_pairings
from backend.app.services.match_store import MatchStore, match_store
from backend.app.services.roster_store import RosterStore, roster_store
from backend.app.services.tournament_service import tournament_service, tournament_settings

logger = logging.getLogger(__name__)


class NextRoundOutcome(BaseModel):
    round: int
    match_ids: List[int]
    force_settled: List[int] = []


class SwissService:
    def __init__(
        self,
        store: MatchStore = match_store,
        roster: RosterStore = roster_store,
        notifier: ChangeNotifier = change_notifier,
    ):
        self.store = store
        self.roster = roster
        self.notifier = notifier

    def check_win_condition(self, tournament: Tournament, current_round: int, history: List[TournamentMatch]):
        config = tournament_settings(tournament)
        if config.win_condition == WinCondition.ROUNDS:
            if tournament.max_rounds and current_round >= tournament.max_rounds:
                raise TournamentFinishedError(
                    f"All {tournament.max_rounds} rounds have been played",
                    max_rounds=tournament.max_rounds
                )
        elif config.points_to_win is not None:
            standings = calculate_standings(history)
            if standings and standings[0].points >= config.points_to_win:
                raise TournamentFinishedError(
                    f"{standings[0].name} reached {config.points_to_win} points",
                    leader=standings[0].uuid
                )

    async def start_next_round(
        self,
        db: AsyncSession,
        tournament_id: int,
        force_settle: bool = False,
        expected_round: Optional[int] = None,
    ) -> tuple:
        """
        Pairs and stores the next Swiss round.

        Unresolved matches in the current round block pairing unless
        ``force_settle`` is set, in which case they are recorded as ties in
        the same transaction. Returns (new matchups, outcome).
        """
        try:
            tournament = await tournament_service.get(db, tournament_id)
            if tournament.format != TournamentFormat.SWISS:
                raise StateError("Only Swiss tournaments pair rounds on demand")
            tournament_service.ensure_editable(tournament, "rounds")

            current_round = await self.store.max_round(db, tournament_id)
            if current_round == 0:
                raise NoEligiblePlayersError("Build the initial bracket before starting a new round")
            if expected_round is not None and expected_round != current_round:
                raise RoundAlreadyGeneratedError(
                    f"Round {expected_round + 1} has already been generated (current round is {current_round})",
                    current_round=current_round
                )

            history = await self.store.list_for_tournament(db, tournament_id)
            self.check_win_condition(tournament, current_round, history)

            pending = [m for m in history if m.round == current_round and not is_decided(m)]
            if pending and not force_settle:
                raise PendingMatchesError(
                    f"{len(pending)} matches in round {current_round} are unresolved",
                    match_ids=[m.id for m in pending]
                )
            for match in pending:
                self.store.set_result(match, None, True)
            if pending:
                await self.store.flush(db)
                logger.warning(
                    "Tournament %s: force-settled %s round %s matches as ties",
                    tournament_id, len(pending), current_round
                )

            withdrawn = [
                p.member_uuid
                for p in await self.roster.list_players(db, tournament_id, RosterStatus.INACTIVE)
            ]
            planned = generate_pairings(
                history,
                next_round=current_round + 1,
                placeholder_name=engine_settings.placeholder_name,
                exclude=withdrawn,
            )
            created = await self.store.insert_many(db, tournament_id, planned)
            await self.store.commit(db)
        except TournamentEngineError:
            await db.rollback()
            raise

        outcome = NextRoundOutcome(
            round=current_round + 1,
            match_ids=[m.id for m in created],
            force_settled=[m.id for m in pending],
        )
        logger.info("Tournament %s round %s paired: %s matchups", tournament_id, outcome.round, len(created))

        if pending:
            await self.notifier.notify_round_changed(tournament_id, current_round)
        await self.notifier.notify_round_changed(tournament_id, outcome.round)
        return created, outcome


swiss_service = SwissService()
