"""
Result Service - the single entry point for Match Result Events.

A result event (winner, tie, or clear) is validated, run through the matchup
state machine, written with a version check and committed. Only then does
format-specific advancement run (propagation for single elimination) in its
own transaction, followed by the change notification. A propagation failure
after the primary commit does not undo the result; it is reported back as a
partial success so the bracket can be repaired by replaying propagation.
"""

import logging
from typing import List, Optional

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.events import ChangeNotifier, change_notifier
from backend.app.exceptions import StateError, TournamentEngineError, ValidationError, VersionConflictError
from backend.app.models.enums import MatchState, TournamentFormat
from backend.app.models.match_model import TournamentMatch
from backend.app.models.tournament_model import Tournament
from backend.app.schemas.bracket_schema import ScoreEntry
from backend.app.engine.reports import winner_by_threshold
from backend.app.engine.slots import slot_uuid, source_match_numbers
from backend.app.engine.state_machine import event_for_result, match_state, transition
from backend.app.services.match_store import MatchStore, match_store
from backend.app.services.propagation_service import PropagationService, propagation_service
from backend.app.services.tournament_service import tournament_service, tournament_settings

logger = logging.getLogger(__name__)


class ResultOutcome(BaseModel):
    match_id: int
    state: MatchState
    version: int
    propagated_to: Optional[int] = None
    partial_failure: Optional[str] = None


class ResultService:
    def __init__(
        self,
        store: MatchStore = match_store,
        propagator: PropagationService = propagation_service,
        notifier: ChangeNotifier = change_notifier,
    ):
        self.store = store
        self.propagator = propagator
        self.notifier = notifier

    async def current_state(self, db: AsyncSession, tournament: Tournament, match: TournamentMatch) -> MatchState:
        if tournament.format != TournamentFormat.SINGLE:
            return match_state(match)
        return match_state(match, await self.propagator.downstream(db, match))

    def validate_result(self, match: TournamentMatch, winner: Optional[str], is_tie: bool, scores: List[ScoreEntry]):
        seated = {p.get("uuid") for p in match.players if p.get("uuid")}

        if winner and is_tie:
            raise ValidationError("A matchup cannot have both a winner and a tie")
        if winner and winner not in seated:
            raise ValidationError(f"{winner} is not a player in match {match.id}", winner=winner)
        if is_tie and len(seated) < 2:
            raise ValidationError("A bye cannot end in a tie")
        for entry in scores:
            if entry.player_uuid not in seated:
                raise ValidationError(f"{entry.player_uuid} is not a player in match {match.id}")

    async def ensure_seated(self, db: AsyncSession, tournament: Tournament, match: TournamentMatch):
        """
        An elimination slot still waiting on its feeder match cannot be decided
        against. A tied feeder has no winner to send on, so it still blocks.
        """
        if tournament.format != TournamentFormat.SINGLE or match.round == 1:
            return
        for slot, feeder_number in enumerate(source_match_numbers(match.match_number)):
            if slot_uuid(match.players, slot):
                continue
            feeder = await self.store.find(db, match.tournament_id, match.round - 1, feeder_number)
            if feeder is not None and not feeder.winner:
                raise StateError(
                    f"Match {match.id} is waiting for the winner of round {feeder.round} match {feeder.match_number}",
                    match_id=match.id
                )

    async def apply_result(
        self,
        db: AsyncSession,
        tournament: Tournament,
        match: TournamentMatch,
        winner: Optional[str],
        is_tie: bool,
        scores: List[ScoreEntry],
        expected_version: Optional[int] = None,
    ) -> Optional[str]:
        """
        Validate and stage a result on ``match`` without committing.

        Returns the winner that was previously recorded, so the caller can
        retract its propagation after commit.
        """
        tournament_service.ensure_editable(tournament)

        if not winner and not is_tie:
            winner = winner_by_threshold(scores, tournament_settings(tournament).auto_win_score)

        self.validate_result(match, winner, is_tie, scores)
        if winner or is_tie:
            await self.ensure_seated(db, tournament, match)

        state = await self.current_state(db, tournament, match)
        transition(state, event_for_result(winner, is_tie))

        if expected_version is not None and expected_version != match.version:
            raise VersionConflictError(
                f"Match {match.id} is at version {match.version}, expected {expected_version}",
                match_id=match.id, version=match.version
            )

        previous_winner = match.winner
        score_map = {s.player_uuid: s.score for s in scores}
        players = [
            dict(p, score=score_map[p.get("uuid")]) if p.get("uuid") in score_map else dict(p)
            for p in match.players
        ]
        self.store.set_players(match, players)
        self.store.set_result(match, winner, is_tie)
        return previous_winner

    async def advance(self, db: AsyncSession, tournament: Tournament, match: TournamentMatch, previous_winner: Optional[str]) -> ResultOutcome:
        """Post-commit side effects: propagation, then notification."""
        tournament_id, match_id = tournament.id, match.id
        outcome = ResultOutcome(
            match_id=match_id,
            state=match_state(match),
            version=match.version,
        )

        if tournament.format == TournamentFormat.SINGLE:
            try:
                if previous_winner and previous_winner != match.winner:
                    await self.propagator.retract(db, match, previous_winner)
                dest = await self.propagator.propagate(db, tournament, match)
                await self.store.commit(db)
                if dest is not None:
                    outcome.propagated_to = dest.id
            except TournamentEngineError as e:
                await db.rollback()
                logger.warning("Propagation after match %s failed: %s", match_id, e.message)
                outcome.partial_failure = e.message
            except Exception as e:
                await db.rollback()
                logger.exception("Propagation after match %s failed", match_id)
                outcome.partial_failure = str(e)

        await self.notifier.notify_match_changed(tournament_id, match_id)
        if outcome.propagated_to:
            await self.notifier.notify_match_changed(tournament_id, outcome.propagated_to)
        return outcome

    async def declare_result(
        self,
        db: AsyncSession,
        match_id: int,
        winner: Optional[str] = None,
        is_tie: bool = False,
        scores: Optional[List[ScoreEntry]] = None,
        expected_version: Optional[int] = None,
    ) -> ResultOutcome:
        """Organizer edit of a matchup: decide it, change it, or clear it."""
        try:
            match = await self.store.get_for_update(db, match_id)
            tournament = await tournament_service.get(db, match.tournament_id)
            previous_winner = await self.apply_result(
                db, tournament, match, winner, is_tie, scores or [], expected_version
            )
            await self.store.commit(db)
        except TournamentEngineError:
            await db.rollback()
            raise

        logger.info("Match %s result: winner=%s tie=%s", match.id, match.winner, match.is_tie)
        return await self.advance(db, tournament, match, previous_winner)

    async def reopen_match(self, db: AsyncSession, match_id: int) -> ResultOutcome:
        """
        Administrative reopen of a single-elimination matchup.

        Clears its result even when it is locked, rolling the downstream
        result back one level. Refused when that downstream result has
        itself already been propagated into a decided matchup.
        """
        try:
            match = await self.store.get_for_update(db, match_id)
            tournament = await tournament_service.get(db, match.tournament_id)
            tournament_service.ensure_editable(tournament)
            if tournament.format != TournamentFormat.SINGLE:
                raise StateError("Reopen with rollback only applies to single elimination")

            previous_winner = match.winner
            if previous_winner:
                await self.propagator.retract(db, match, previous_winner, cascade=True)
            self.store.set_result(match, None, False)
            await self.store.commit(db)
        except TournamentEngineError:
            await db.rollback()
            raise

        logger.info("Match %s reopened", match.id)
        await self.notifier.notify_match_changed(tournament.id, match.id)
        return ResultOutcome(match_id=match.id, state=match_state(match), version=match.version)


result_service = ResultService()
