from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import func
from sqlalchemy.future import select

from backend.app.exceptions import NotFoundError, ValidationError
from backend.app.models.enums import AccountType, RosterStatus
from backend.app.models.player_model import TournamentPlayer
from backend.app.schemas.bracket_schema import PlayerSkill, SeedPlayer
from backend.app.schemas.roster_schema import RosterEntryCreate


def to_seed_player(player: TournamentPlayer) -> SeedPlayer:
    if player.is_generated:
        account_type = AccountType.GENERATED
    elif player.is_anonymous:
        account_type = AccountType.ANONYMOUS
    else:
        account_type = AccountType.LOGGED_IN

    return SeedPlayer(
        uuid=player.member_uuid,
        name=player.player_name or "Unknown",
        account_type=account_type,
        score=0,
        skills=[PlayerSkill(**s) for s in (player.skills or []) if isinstance(s, dict) and "name" in s],
    )


class RosterStore:
    """Read/write access to a tournament's registered players."""

    async def add_player(
        self,
        db: AsyncSession,
        tournament_id: int,
        member_uuid: str,
        player_name: str,
        status: RosterStatus = RosterStatus.ACTIVE,
        is_anonymous: bool = False,
        is_generated: bool = False,
        skills: Optional[list] = None,
        email: str = "",
    ) -> TournamentPlayer:
        player = TournamentPlayer(
            tournament_id=tournament_id,
            member_uuid=member_uuid,
            player_name=player_name,
            email=email,
            type=status,
            is_anonymous=is_anonymous,
            is_generated=is_generated,
            skills=skills or [],
        )
        db.add(player)
        await db.flush()
        return player

    async def count_players(self, db: AsyncSession, tournament_id: int, status: RosterStatus) -> int:
        result = await db.execute(
            select(func.count(TournamentPlayer.id)).where(
                TournamentPlayer.tournament_id == tournament_id,
                TournamentPlayer.type == status
            )
        )
        return result.scalar() or 0

    async def register(self, db: AsyncSession, tournament_id: int, max_players: Optional[int], entry: RosterEntryCreate) -> TournamentPlayer:
        """Add a player to the roster; once max_players are active, newcomers go to the waitlist."""
        existing = await db.execute(
            select(TournamentPlayer.id).where(
                TournamentPlayer.tournament_id == tournament_id,
                TournamentPlayer.member_uuid == entry.member_uuid
            )
        )
        if existing.first() is not None:
            raise ValidationError(f"{entry.member_uuid} is already registered", member_uuid=entry.member_uuid)

        status = entry.status
        if status == RosterStatus.ACTIVE and max_players:
            if await self.count_players(db, tournament_id, RosterStatus.ACTIVE) >= max_players:
                status = RosterStatus.WAITLIST

        return await self.add_player(
            db,
            tournament_id,
            entry.member_uuid,
            entry.player_name,
            status=status,
            is_anonymous=entry.is_anonymous,
            is_generated=entry.is_generated,
            skills=[s.model_dump() for s in entry.skills],
            email=entry.email,
        )

    async def list_players(self, db: AsyncSession, tournament_id: int, status: Optional[RosterStatus] = None) -> List[TournamentPlayer]:
        query = select(TournamentPlayer).where(TournamentPlayer.tournament_id == tournament_id)
        if status is not None:
            query = query.where(TournamentPlayer.type == status)
        result = await db.execute(query.order_by(TournamentPlayer.id.asc()))
        return list(result.scalars().all())

    async def active_players(self, db: AsyncSession, tournament_id: int) -> List[SeedPlayer]:
        """Active players in registration order, ready for the bracket builder."""
        players = await self.list_players(db, tournament_id, RosterStatus.ACTIVE)
        return [to_seed_player(p) for p in players]

    async def get_player(self, db: AsyncSession, tournament_id: int, member_uuid: str) -> TournamentPlayer:
        result = await db.execute(
            select(TournamentPlayer).where(
                TournamentPlayer.tournament_id == tournament_id,
                TournamentPlayer.member_uuid == member_uuid
            )
        )
        player = result.scalars().first()
        if not player:
            raise NotFoundError(f"Player {member_uuid} is not registered", member_uuid=member_uuid)
        return player

    async def set_status(self, db: AsyncSession, tournament_id: int, member_uuid: str, status: RosterStatus) -> TournamentPlayer:
        player = await self.get_player(db, tournament_id, member_uuid)
        player.type = status
        return player


# Singleton instance
roster_store = RosterStore()
