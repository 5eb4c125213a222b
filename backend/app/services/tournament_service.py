import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import delete

from backend.app.exceptions import NotFoundError, StateError, ValidationError
from backend.app.models.enums import TournamentFormat, TournamentStatus
from backend.app.models.match_model import TournamentMatch
from backend.app.models.player_model import TournamentPlayer
from backend.app.models.score_report_model import ScoreReport
from backend.app.models.tournament_model import Tournament
from backend.app.schemas.tournament_schema import (
    LOCKED_SETTING_KEYS, TournamentCreate, TournamentSettings, TournamentUpdate
)

logger = logging.getLogger(__name__)


def tournament_settings(tournament: Tournament) -> TournamentSettings:
    return TournamentSettings(**(tournament.settings or {}))


class TournamentService:
    """Tournament Configuration Store: lifecycle and settings of a tournament."""

    async def create_tournament(self, db: AsyncSession, payload: TournamentCreate) -> Tournament:
        if payload.format == TournamentFormat.ROBIN and payload.max_rounds is not None:
            raise ValidationError("max_rounds only applies to elimination and Swiss tournaments")

        tournament = Tournament(
            name=payload.name,
            format=payload.format,
            status=TournamentStatus.INITIALIZATION,
            max_rounds=payload.max_rounds,
            max_players=payload.max_players,
            settings=payload.settings.model_dump(mode="json"),
        )
        db.add(tournament)
        await db.commit()
        await db.refresh(tournament)
        logger.info("Tournament %s created (%s)", tournament.id, tournament.format)
        return tournament

    async def get(self, db: AsyncSession, tournament_id: int) -> Tournament:
        result = await db.execute(select(Tournament).where(Tournament.id == tournament_id))
        t = result.scalar_one_or_none()
        if not t:
            raise NotFoundError(f"Tournament {tournament_id} not found", tournament_id=tournament_id)
        return t

    async def start_tournament(self, db: AsyncSession, tournament_id: int) -> Tournament:
        t = await self.get(db, tournament_id)
        if t.status != TournamentStatus.INITIALIZATION:
            raise StateError(f"Tournament {tournament_id} is already {t.status}")
        t.status = TournamentStatus.STARTED
        await db.commit()
        logger.info("Tournament %s started", tournament_id)
        return t

    async def complete_tournament(self, db: AsyncSession, tournament_id: int) -> Tournament:
        t = await self.get(db, tournament_id)
        if t.status != TournamentStatus.STARTED:
            raise StateError(f"Tournament {tournament_id} is {t.status}, not started")
        t.status = TournamentStatus.COMPLETED
        await db.commit()
        logger.info("Tournament %s completed", tournament_id)
        return t

    async def update_tournament(self, db: AsyncSession, tournament_id: int, payload: TournamentUpdate) -> Tournament:
        """Edit configuration. Format and win-condition settings freeze once started."""
        t = await self.get(db, tournament_id)
        started = t.status != TournamentStatus.INITIALIZATION

        if started:
            if payload.format is not None and payload.format != t.format:
                raise StateError("Format cannot change after the tournament started")
            if payload.max_rounds is not None and payload.max_rounds != t.max_rounds:
                raise StateError("max_rounds cannot change after the tournament started")
            if payload.settings is not None:
                current = tournament_settings(t).model_dump(mode="json")
                requested = payload.settings.model_dump(mode="json")
                changed = [k for k in LOCKED_SETTING_KEYS if current.get(k) != requested.get(k)]
                if changed:
                    raise StateError(
                        f"Win-condition settings cannot change after start: {', '.join(changed)}",
                        fields=changed
                    )

        if payload.name is not None:
            t.name = payload.name
        if payload.format is not None:
            t.format = payload.format
        if payload.max_rounds is not None:
            t.max_rounds = payload.max_rounds
        if payload.max_players is not None:
            t.max_players = payload.max_players
        if payload.settings is not None:
            t.settings = payload.settings.model_dump(mode="json")

        await db.commit()
        await db.refresh(t)
        return t

    async def delete_tournament(self, db: AsyncSession, tournament_id: int) -> bool:
        """The only path that removes matchups and score reports."""
        await self.get(db, tournament_id)
        # Explicit deletes, children first; avoids lazy-loading collections in async
        await db.execute(delete(ScoreReport).where(ScoreReport.tournament_id == tournament_id))
        await db.execute(delete(TournamentMatch).where(TournamentMatch.tournament_id == tournament_id))
        await db.execute(delete(TournamentPlayer).where(TournamentPlayer.tournament_id == tournament_id))
        await db.execute(delete(Tournament).where(Tournament.id == tournament_id))
        await db.commit()
        logger.info("Tournament %s deleted", tournament_id)
        return True

    def ensure_editable(self, t: Tournament, what: str = "results"):
        if t.status == TournamentStatus.COMPLETED:
            raise StateError(f"Tournament {t.id} is completed; {what} can no longer change")


tournament_service = TournamentService()
