import logging
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.events import ChangeNotifier, change_notifier
from backend.app.exceptions import MatchLockedError, StateError, TournamentEngineError, ValidationError
from backend.app.models.enums import MatchState, RosterStatus
from backend.app.models.match_model import TournamentMatch
from backend.app.models.tournament_model import Tournament
from backend.app.engine.slots import slot_uuid
from backend.app.services.match_store import MatchStore, match_store
from backend.app.services.result_service import ResultService, result_service
from backend.app.services.roster_store import roster_store, to_seed_player
from backend.app.services.tournament_service import tournament_service

logger = logging.getLogger(__name__)


class SlotService:
    """Organizer edits to who sits in which slot of an undecided matchup."""

    def __init__(
        self,
        store: MatchStore = match_store,
        results: ResultService = result_service,
        notifier: ChangeNotifier = change_notifier,
    ):
        self.store = store
        self.results = results
        self.notifier = notifier

    async def _ensure_open(self, db: AsyncSession, tournament: Tournament, match: TournamentMatch):
        state = await self.results.current_state(db, tournament, match)
        if state == MatchState.LOCKED:
            raise MatchLockedError(f"Match {match.id} is locked", match_id=match.id)
        if state != MatchState.OPEN:
            raise StateError(f"Match {match.id} is already decided; clear its result first", match_id=match.id)

    def _check_slot(self, match: TournamentMatch, slot: int):
        if slot < 0 or slot >= len(match.players):
            raise ValidationError(f"Match {match.id} has no slot {slot}", match_id=match.id, slot=slot)

    async def move_player(
        self,
        db: AsyncSession,
        from_match_id: int,
        from_slot: int,
        to_match_id: int,
        to_slot: int,
    ) -> List[TournamentMatch]:
        """
        Swap the contents of two slots. Moving into an empty slot leaves a
        placeholder behind, so a plain move is just a swap with a placeholder.
        """
        try:
            source = await self.store.get_for_update(db, from_match_id)
            target = source if to_match_id == from_match_id else await self.store.get_for_update(db, to_match_id)
            if source.tournament_id != target.tournament_id:
                raise ValidationError("Both slots must belong to the same tournament")

            tournament = await tournament_service.get(db, source.tournament_id)
            tournament_service.ensure_editable(tournament, "slots")
            self._check_slot(source, from_slot)
            self._check_slot(target, to_slot)
            await self._ensure_open(db, tournament, source)
            if target is not source:
                await self._ensure_open(db, tournament, target)

            moving = dict(source.players[from_slot])
            displaced = dict(target.players[to_slot])

            if target is source:
                players = [dict(p) for p in source.players]
                players[from_slot], players[to_slot] = displaced, moving
                self.store.set_players(source, players)
            else:
                source_players = [dict(p) for p in source.players]
                target_players = [dict(p) for p in target.players]
                source_players[from_slot] = displaced
                target_players[to_slot] = moving
                self.store.set_players(source, source_players)
                self.store.set_players(target, target_players)

            await self.store.commit(db)
        except TournamentEngineError:
            await db.rollback()
            raise

        logger.info(
            "Moved slot %s of match %s <-> slot %s of match %s",
            from_slot, source.id, to_slot, target.id
        )
        changed = [source] if target is source else [source, target]
        for match in changed:
            await self.notifier.notify_match_changed(tournament.id, match.id)
        return changed

    async def fill_slot(self, db: AsyncSession, match_id: int, slot: int, member_uuid: str) -> TournamentMatch:
        """Seat a waitlisted player in an empty slot; they become active."""
        try:
            match = await self.store.get_for_update(db, match_id)
            tournament = await tournament_service.get(db, match.tournament_id)
            tournament_service.ensure_editable(tournament, "slots")
            self._check_slot(match, slot)
            await self._ensure_open(db, tournament, match)

            if slot_uuid(match.players, slot):
                raise ValidationError(f"Slot {slot} of match {match.id} is not empty", match_id=match.id, slot=slot)

            player = await roster_store.get_player(db, match.tournament_id, member_uuid)
            if player.type != RosterStatus.WAITLIST:
                raise ValidationError(f"{member_uuid} is not on the waitlist", member_uuid=member_uuid)

            players = [dict(p) for p in match.players]
            players[slot] = to_seed_player(player).to_slot().model_dump(mode="json")
            self.store.set_players(match, players)
            player.type = RosterStatus.ACTIVE

            await self.store.commit(db)
        except TournamentEngineError:
            await db.rollback()
            raise

        logger.info("Seated waitlisted player %s in match %s slot %s", member_uuid, match.id, slot)
        await self.notifier.notify_match_changed(tournament.id, match.id)
        return match


slot_service = SlotService()
