"""
Elimination Propagator.

Moves a single-elimination winner from (round R, match M) into round R+1,
match ceil(M/2), at the slot given by ``slots.destination_slot``. Propagation
is idempotent: replaying it for the same winner leaves the destination as is.

Rollback is bounded to one hop. Clearing a matchup empties its slot in the
destination; if the destination had already been decided by the removed
player, that result and its own slot further down are cleared as well, but
never deeper than that.

Nothing here commits; every destination write is a versioned UPDATE of the
destination row, flushed through the match store.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.exceptions import MatchLockedError
from backend.app.models.match_model import TournamentMatch
from backend.app.models.tournament_model import Tournament
from backend.app.engine.slots import destination, elimination_rounds, placeholder_player, slot_uuid
from backend.app.engine.state_machine import is_decided
from backend.app.services.match_store import MatchStore, match_store

logger = logging.getLogger(__name__)


class PropagationService:
    def __init__(self, store: MatchStore = match_store):
        self.store = store

    async def final_round(self, db: AsyncSession, tournament: Tournament) -> int:
        first_round = await self.store.count_round(db, tournament.id, 1)
        return elimination_rounds(first_round, tournament.max_rounds)

    async def downstream(self, db: AsyncSession, match: TournamentMatch) -> Optional[TournamentMatch]:
        """The matchup this one feeds, if it exists yet."""
        next_round, next_number, _ = destination(match.round, match.match_number)
        return await self.store.find(db, match.tournament_id, next_round, next_number)

    async def propagate(self, db: AsyncSession, tournament: Tournament, match: TournamentMatch) -> Optional[TournamentMatch]:
        """Place the match winner in the next round. Returns the destination, or None when terminal."""
        if not match.winner or match.is_tie:
            return None

        next_round, next_number, slot = destination(match.round, match.match_number)
        if next_round > await self.final_round(db, tournament):
            logger.info("Match %s is terminal; %s wins round %s", match.id, match.winner, match.round)
            return None

        winner = next((p for p in match.players if p.get("uuid") == match.winner), None)
        if winner is None:
            logger.warning("Winner %s is not seated in match %s; nothing to propagate", match.winner, match.id)
            return None
        entry = dict(winner, score=0)

        dest = await self.store.find(db, match.tournament_id, next_round, next_number)
        if dest is None:
            players = [placeholder_player().model_dump(mode="json") for _ in range(2)]
            players[slot] = entry
            dest = TournamentMatch(
                tournament_id=match.tournament_id,
                round=next_round,
                match_number=next_number,
                players=players,
                is_tie=False,
            )
            db.add(dest)
            await self.store.flush(db)
            logger.info("Created round %s match %s for %s", next_round, next_number, match.winner)
            return dest

        if slot_uuid(dest.players, slot) == match.winner:
            return dest

        if is_decided(dest):
            # Source would be locked; never overwrite a decided destination
            raise MatchLockedError(
                f"Round {next_round} match {next_number} is already decided",
                match_id=dest.id
            )

        players = list(dest.players)
        players[slot] = entry
        self.store.set_players(dest, players)
        await self.store.flush(db)
        logger.info("Advanced %s into round %s match %s slot %s", match.winner, next_round, next_number, slot)
        return dest

    async def retract(self, db: AsyncSession, match: TournamentMatch, previous_winner: str, cascade: bool = False) -> Optional[TournamentMatch]:
        """
        Undo a previous propagation of ``previous_winner`` out of ``match``.

        With ``cascade`` the destination's own result is cleared too when that
        player had already won it, rolling its propagation back one level.
        Refused when that would reach two levels deep.
        """
        next_round, next_number, slot = destination(match.round, match.match_number)
        dest = await self.store.find(db, match.tournament_id, next_round, next_number)
        if dest is None or slot_uuid(dest.players, slot) != previous_winner:
            return dest

        if is_decided(dest):
            if not cascade:
                raise MatchLockedError(
                    f"Round {next_round} match {next_number} already has a result",
                    match_id=dest.id
                )
            beyond = await self.downstream(db, dest)
            if beyond is not None and is_decided(beyond):
                raise MatchLockedError(
                    "Rollback would reach two rounds deep; clear later rounds first",
                    match_id=beyond.id
                )
            if dest.winner:
                await self.retract(db, dest, dest.winner, cascade=False)
            self.store.set_result(dest, None, False)
            logger.info("Rolled back result of round %s match %s", next_round, next_number)

        players = list(dest.players)
        players[slot] = placeholder_player().model_dump(mode="json")
        self.store.set_players(dest, players)
        await self.store.flush(db)
        logger.info("Cleared %s from round %s match %s slot %s", previous_winner, next_round, next_number, slot)
        return dest


propagation_service = PropagationService()
