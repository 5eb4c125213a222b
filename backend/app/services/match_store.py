"""
Matchup Store Adapter - typed CRUD over ``tournament_matches``.

Nothing here commits: the calling service owns the transaction so that a
command's writes land all-or-nothing. Stale writes (another session bumped
the row's version first) surface as VersionConflictError, and duplicate
(tournament, round, match_number) inserts as RoundAlreadyGeneratedError.
"""

import logging
from typing import List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.orm.exc import StaleDataError

from backend.app.exceptions import NotFoundError, RoundAlreadyGeneratedError, VersionConflictError
from backend.app.models.match_model import TournamentMatch
from backend.app.schemas.bracket_schema import PlannedMatchup

logger = logging.getLogger(__name__)


class MatchStore:

    async def get(self, db: AsyncSession, match_id: int) -> TournamentMatch:
        result = await db.execute(select(TournamentMatch).where(TournamentMatch.id == match_id))
        match = result.scalar_one_or_none()
        if not match:
            raise NotFoundError(f"Match {match_id} not found", match_id=match_id)
        return match

    async def get_for_update(self, db: AsyncSession, match_id: int) -> TournamentMatch:
        """Load with a row lock where the backend supports it (FOR UPDATE)."""
        result = await db.execute(
            select(TournamentMatch).where(TournamentMatch.id == match_id).with_for_update()
        )
        match = result.scalar_one_or_none()
        if not match:
            raise NotFoundError(f"Match {match_id} not found", match_id=match_id)
        return match

    async def find(self, db: AsyncSession, tournament_id: int, round_number: int, match_number: int) -> Optional[TournamentMatch]:
        result = await db.execute(
            select(TournamentMatch).where(
                TournamentMatch.tournament_id == tournament_id,
                TournamentMatch.round == round_number,
                TournamentMatch.match_number == match_number
            )
        )
        return result.scalar_one_or_none()

    async def list_for_tournament(self, db: AsyncSession, tournament_id: int) -> List[TournamentMatch]:
        result = await db.execute(
            select(TournamentMatch)
            .where(TournamentMatch.tournament_id == tournament_id)
            .order_by(TournamentMatch.round.asc(), TournamentMatch.match_number.asc())
        )
        return list(result.scalars().all())

    async def list_round(self, db: AsyncSession, tournament_id: int, round_number: int) -> List[TournamentMatch]:
        result = await db.execute(
            select(TournamentMatch)
            .where(
                TournamentMatch.tournament_id == tournament_id,
                TournamentMatch.round == round_number
            )
            .order_by(TournamentMatch.match_number.asc())
        )
        return list(result.scalars().all())

    async def max_round(self, db: AsyncSession, tournament_id: int) -> int:
        result = await db.execute(
            select(func.max(TournamentMatch.round)).where(TournamentMatch.tournament_id == tournament_id)
        )
        return result.scalar() or 0

    async def count_round(self, db: AsyncSession, tournament_id: int, round_number: int) -> int:
        result = await db.execute(
            select(func.count(TournamentMatch.id)).where(
                TournamentMatch.tournament_id == tournament_id,
                TournamentMatch.round == round_number
            )
        )
        return result.scalar() or 0

    async def insert_many(self, db: AsyncSession, tournament_id: int, planned: Sequence[PlannedMatchup]) -> List[TournamentMatch]:
        rows = [
            TournamentMatch(
                tournament_id=tournament_id,
                round=p.round,
                match_number=p.match_number,
                players=p.slot_dicts(),
                winner=p.winner,
                is_tie=p.is_tie,
            )
            for p in planned
        ]
        db.add_all(rows)
        await self.flush(db)
        return rows

    def set_players(self, match: TournamentMatch, players: list):
        # New list object + flag_modified so the JSON change is always detected
        match.players = [dict(p) for p in players]
        flag_modified(match, "players")

    def set_result(self, match: TournamentMatch, winner: Optional[str], is_tie: bool):
        match.winner = winner or None
        match.is_tie = bool(is_tie) and not winner

    async def flush(self, db: AsyncSession):
        try:
            await db.flush()
        except StaleDataError as e:
            await db.rollback()
            raise VersionConflictError(f"Matchup changed concurrently: {e}") from e
        except IntegrityError as e:
            await db.rollback()
            raise RoundAlreadyGeneratedError(f"Matchup slot already exists: {e.orig}") from e

    async def commit(self, db: AsyncSession):
        try:
            await db.commit()
        except StaleDataError as e:
            await db.rollback()
            raise VersionConflictError(f"Matchup changed concurrently: {e}") from e
        except IntegrityError as e:
            await db.rollback()
            raise RoundAlreadyGeneratedError(f"Matchup slot already exists: {e.orig}") from e


# Singleton instance
match_store = MatchStore()
