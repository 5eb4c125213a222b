"""
Command layer of the tournament engine.

Every command runs in its own session and returns a ``CommandResult``; engine
errors are converted to result codes instead of escaping to the UI. The
ConflictError family is retried after re-reading state (a fresh session), up
to ``settings.conflict_retries`` times.
"""

import logging
from typing import Awaitable, Callable, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.database import AsyncSessionLocal
from backend.app.exceptions import ConflictError, TournamentEngineError
from backend.app.models.enums import PairingMode, ResultCode
from backend.app.schemas.bracket_schema import MatchupResponse, ScoreEntry, SeedPlayer
from backend.app.schemas.command_schema import CommandResult
from backend.app.services.bracket_service import bracket_service
from backend.app.services.match_store import match_store
from backend.app.services.report_service import report_service
from backend.app.services.result_service import ResultOutcome, result_service
from backend.app.services.slot_service import slot_service
from backend.app.services.swiss_service import swiss_service

logger = logging.getLogger(__name__)


def _matchups(matches) -> List[MatchupResponse]:
    return [MatchupResponse.model_validate(m) for m in matches]


def _result_with_outcome(outcome: ResultOutcome, value=None) -> CommandResult:
    if outcome.partial_failure:
        logger.warning("Match %s decided but propagation failed: %s", outcome.match_id, outcome.partial_failure)
        return CommandResult(
            ok=True,
            code=ResultCode.PARTIAL_SUCCESS,
            message=outcome.partial_failure,
            value=value if value is not None else outcome,
        )
    return CommandResult.success(value if value is not None else outcome)


class TournamentEngine:
    def __init__(self, session_factory=AsyncSessionLocal, conflict_retries: Optional[int] = None):
        self.session_factory = session_factory
        self.conflict_retries = settings.conflict_retries if conflict_retries is None else conflict_retries

    async def _run(self, name: str, operation: Callable[[AsyncSession], Awaitable[CommandResult]]) -> CommandResult:
        attempts = 1 + max(self.conflict_retries, 0)
        for attempt in range(1, attempts + 1):
            async with self.session_factory() as db:
                try:
                    return await operation(db)
                except ConflictError as e:
                    logger.warning("%s conflicted (attempt %s/%s): %s", name, attempt, attempts, e.message)
                    if attempt == attempts:
                        return CommandResult.failure(e.code, e.message, **e.details)
                except TournamentEngineError as e:
                    logger.info("%s refused: %s", name, e.message)
                    return CommandResult.failure(e.code, e.message, **e.details)

    async def build_initial_bracket(
        self,
        tournament_id: int,
        players: Optional[Sequence[SeedPlayer]] = None,
        pairing_mode: Optional[PairingMode] = None,
    ) -> CommandResult:
        async def operation(db):
            created = await bracket_service.build_initial_bracket(db, tournament_id, players, pairing_mode)
            return CommandResult.success(_matchups(created))

        return await self._run("build_initial_bracket", operation)

    async def declare_result(
        self,
        match_id: int,
        winner: Optional[str] = None,
        is_tie: bool = False,
        scores: Optional[List[ScoreEntry]] = None,
        expected_version: Optional[int] = None,
    ) -> CommandResult:
        async def operation(db):
            outcome = await result_service.declare_result(db, match_id, winner, is_tie, scores, expected_version)
            return _result_with_outcome(outcome)

        return await self._run("declare_result", operation)

    async def reopen_match(self, match_id: int) -> CommandResult:
        async def operation(db):
            return CommandResult.success(await result_service.reopen_match(db, match_id))

        return await self._run("reopen_match", operation)

    async def submit_score_report(
        self,
        match_id: int,
        reporter_id: str,
        scores: List[ScoreEntry],
        winner: Optional[str] = None,
        is_tie: bool = False,
    ) -> CommandResult:
        async def operation(db):
            outcome = await report_service.submit(db, match_id, reporter_id, scores, winner, is_tie)
            if outcome.result is not None:
                return _result_with_outcome(outcome.result, value=outcome)
            return CommandResult.success(outcome)

        return await self._run("submit_score_report", operation)

    async def accept_score_report(self, report_id: int) -> CommandResult:
        async def operation(db):
            outcome = await report_service.accept(db, report_id)
            return _result_with_outcome(outcome.result, value=outcome)

        return await self._run("accept_score_report", operation)

    async def dispute_score_report(self, report_id: int) -> CommandResult:
        async def operation(db):
            return CommandResult.success(await report_service.dispute(db, report_id))

        return await self._run("dispute_score_report", operation)

    async def start_next_round(
        self,
        tournament_id: int,
        force_settle: bool = False,
        expected_round: Optional[int] = None,
    ) -> CommandResult:
        # Pin the round being closed so a retry cannot pair (or settle) a round
        # that a concurrent caller just created.
        if expected_round is None:
            async with self.session_factory() as db:
                expected_round = await match_store.max_round(db, tournament_id)

        async def operation(db):
            created, outcome = await swiss_service.start_next_round(db, tournament_id, force_settle, expected_round)
            if outcome.force_settled:
                logger.warning(
                    "Tournament %s round %s opened after force-settling %s",
                    tournament_id, outcome.round, outcome.force_settled
                )
                return CommandResult.success(
                    _matchups(created),
                    code=ResultCode.PENDING_MATCHES_FORCE_SETTLED,
                    message=f"{len(outcome.force_settled)} unresolved matches were settled as ties",
                    force_settled=outcome.force_settled,
                )
            return CommandResult.success(_matchups(created))

        return await self._run("start_next_round", operation)

    async def move_player(self, from_match_id: int, from_slot: int, to_match_id: int, to_slot: int) -> CommandResult:
        async def operation(db):
            changed = await slot_service.move_player(db, from_match_id, from_slot, to_match_id, to_slot)
            return CommandResult.success(_matchups(changed))

        return await self._run("move_player", operation)

    async def fill_slot(self, match_id: int, slot: int, member_uuid: str) -> CommandResult:
        async def operation(db):
            match = await slot_service.fill_slot(db, match_id, slot, member_uuid)
            return CommandResult.success(MatchupResponse.model_validate(match))

        return await self._run("fill_slot", operation)


tournament_engine = TournamentEngine()
