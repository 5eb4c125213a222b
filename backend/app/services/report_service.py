"""
Score Report Reconciler.

Players report the outcome of their own matches; an organizer accepts one
report, which writes its scores and winner/tie onto the matchup through the
regular result pipeline. Agreement between the two sides is informative
only, unless the tournament opted into the auto-accept policy.
"""

import logging
from collections import defaultdict
from typing import Dict, List, Optional

from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from backend.app.exceptions import (
    AlreadyAcceptedError, AlreadyPendingError, NotFoundError, StateError,
    TournamentEngineError, ValidationError
)
from backend.app.models.enums import ReportStatus
from backend.app.models.match_model import TournamentMatch
from backend.app.models.score_report_model import ScoreReport
from backend.app.models.tournament_model import Tournament
from backend.app.schemas.bracket_schema import ScoreEntry
from backend.app.schemas.report_schema import MatchReportSummary, ScoreReportResponse
from backend.app.engine.reports import do_reports_match, reports_agree, winner_by_threshold
from backend.app.services.match_store import MatchStore, match_store
from backend.app.services.result_service import ResultOutcome, ResultService, result_service
from backend.app.services.tournament_service import tournament_service, tournament_settings

logger = logging.getLogger(__name__)

ACCEPTED_STATUSES = (ReportStatus.ACCEPTED, ReportStatus.AUTO_ACCEPTED)


class ReportOutcome(BaseModel):
    report_id: int
    status: ReportStatus
    result: Optional[ResultOutcome] = None


class ReportService:
    def __init__(self, store: MatchStore = match_store, results: ResultService = result_service):
        self.store = store
        self.results = results

    async def get(self, db: AsyncSession, report_id: int) -> ScoreReport:
        result = await db.execute(select(ScoreReport).where(ScoreReport.id == report_id))
        report = result.scalar_one_or_none()
        if not report:
            raise NotFoundError(f"Score report {report_id} not found", report_id=report_id)
        return report

    async def list_for_match(self, db: AsyncSession, match_id: int) -> List[ScoreReport]:
        result = await db.execute(
            select(ScoreReport).where(ScoreReport.match_id == match_id).order_by(ScoreReport.id.asc())
        )
        return list(result.scalars().all())

    async def list_for_tournament(self, db: AsyncSession, tournament_id: int, reporter_id: Optional[str] = None) -> List[ScoreReport]:
        query = select(ScoreReport).where(ScoreReport.tournament_id == tournament_id)
        if reporter_id is not None:
            query = query.where(ScoreReport.reporter_id == reporter_id)
        result = await db.execute(query.order_by(ScoreReport.match_id.asc(), ScoreReport.id.asc()))
        return list(result.scalars().all())

    async def summaries(self, db: AsyncSession, tournament_id: int) -> List[MatchReportSummary]:
        """Reports grouped by match, each group flagged with whether the two sides agree."""
        grouped: Dict[int, List[ScoreReport]] = defaultdict(list)
        for report in await self.list_for_tournament(db, tournament_id):
            grouped[report.match_id].append(report)

        return [
            MatchReportSummary(
                match_id=match_id,
                reports=[ScoreReportResponse.model_validate(r) for r in reports],
                reports_match=reports_agree(reports),
            )
            for match_id, reports in grouped.items()
        ]

    def _check_report(self, match: TournamentMatch, reporter_id: str, winner: Optional[str], is_tie: bool, scores: List[ScoreEntry]):
        seated = {p.get("uuid") for p in match.players if p.get("uuid")}
        if reporter_id not in seated:
            raise ValidationError(f"{reporter_id} did not play in match {match.id}", reporter_id=reporter_id)
        if not winner and not is_tie:
            raise ValidationError("A report must declare a winner or a tie")
        self.results.validate_result(match, winner, is_tie, scores)

    async def submit(
        self,
        db: AsyncSession,
        match_id: int,
        reporter_id: str,
        scores: List[ScoreEntry],
        winner: Optional[str] = None,
        is_tie: bool = False,
    ) -> ReportOutcome:
        accepted = False
        previous_winner = None
        try:
            match = await self.store.get_for_update(db, match_id)
            tournament = await tournament_service.get(db, match.tournament_id)
            tournament_service.ensure_editable(tournament, "score reports")
            if not winner and not is_tie:
                winner = winner_by_threshold(scores, tournament_settings(tournament).auto_win_score)
            self._check_report(match, reporter_id, winner, is_tie, scores)

            existing = await self.list_for_match(db, match_id)
            if any(r.status in ACCEPTED_STATUSES for r in existing):
                raise AlreadyAcceptedError(f"Match {match_id} already has an accepted report", match_id=match_id)
            if any(r.reporter_id == reporter_id and r.status == ReportStatus.PENDING for r in existing):
                raise AlreadyPendingError(
                    f"{reporter_id} already has a pending report for match {match_id}",
                    match_id=match_id, reporter_id=reporter_id
                )

            report = ScoreReport(
                match_id=match_id,
                tournament_id=match.tournament_id,
                reporter_id=reporter_id,
                scores=[s.model_dump() for s in scores],
                winner=None if is_tie else winner,
                is_tie=is_tie,
                status=ReportStatus.PENDING,
            )
            db.add(report)
            try:
                await db.flush()
            except IntegrityError as e:
                # A concurrent submission from the same reporter won the race
                raise AlreadyPendingError(
                    f"{reporter_id} already has a pending report for match {match_id}",
                    match_id=match_id, reporter_id=reporter_id
                ) from e

            if self._auto_accept_due(tournament, report, existing):
                previous_winner = await self._stage_acceptance(db, tournament, match, report, ReportStatus.AUTO_ACCEPTED)
                accepted = True

            await self.store.commit(db)
        except TournamentEngineError:
            await db.rollback()
            raise

        logger.info("Report %s submitted for match %s by %s", report.id, match_id, reporter_id)
        outcome = ReportOutcome(report_id=report.id, status=report.status)
        if accepted:
            logger.info("Report %s auto-accepted", report.id)
            outcome.result = await self.results.advance(db, tournament, match, previous_winner)
        return outcome

    def _auto_accept_due(self, tournament: Tournament, report: ScoreReport, existing: List[ScoreReport]) -> bool:
        """Optional self-service policy layered on top of organizer acceptance."""
        config = tournament_settings(tournament)
        if not config.auto_accept:
            return False
        if not config.require_both_reports:
            return True
        return any(
            r.status == ReportStatus.PENDING and r.reporter_id != report.reporter_id and do_reports_match(r, report)
            for r in existing
        )

    async def _stage_acceptance(
        self,
        db: AsyncSession,
        tournament: Tournament,
        match: TournamentMatch,
        report: ScoreReport,
        status: ReportStatus,
    ) -> Optional[str]:
        """Write the report onto the matchup and mark it; the caller commits. Returns the prior winner."""
        scores = [ScoreEntry(**s) for s in report.scores or []]
        previous_winner = await self.results.apply_result(db, tournament, match, report.winner, report.is_tie, scores)
        report.status = status
        return previous_winner

    async def accept(self, db: AsyncSession, report_id: int) -> ReportOutcome:
        """Organizer accepts one side's report. Sibling reports stay as they are."""
        try:
            report = await self.get(db, report_id)
            if report.status in ACCEPTED_STATUSES:
                raise AlreadyAcceptedError(f"Report {report_id} is already accepted", report_id=report_id)

            match = await self.store.get_for_update(db, report.match_id)
            tournament = await tournament_service.get(db, match.tournament_id)

            siblings = await self.list_for_match(db, match.id)
            if any(r.id != report.id and r.status in ACCEPTED_STATUSES for r in siblings):
                raise AlreadyAcceptedError(f"Match {match.id} already has an accepted report", match_id=match.id)

            previous_winner = await self._stage_acceptance(db, tournament, match, report, ReportStatus.ACCEPTED)
            await self.store.commit(db)
        except TournamentEngineError:
            await db.rollback()
            raise

        logger.info("Report %s accepted for match %s", report_id, match.id)
        outcome = ReportOutcome(report_id=report.id, status=report.status)
        outcome.result = await self.results.advance(db, tournament, match, previous_winner)
        return outcome

    async def dispute(self, db: AsyncSession, report_id: int) -> ReportOutcome:
        report = await self.get(db, report_id)
        if report.status != ReportStatus.PENDING:
            raise StateError(f"Only pending reports can be disputed (report is {report.status})")
        report.status = ReportStatus.DISPUTED
        await db.commit()
        return ReportOutcome(report_id=report.id, status=report.status)

    async def _owned_pending(self, db: AsyncSession, report_id: int, reporter_id: str) -> ScoreReport:
        report = await self.get(db, report_id)
        if report.reporter_id != reporter_id:
            raise ValidationError("Only the original reporter can change a report", report_id=report_id)
        if report.status != ReportStatus.PENDING:
            raise StateError(f"Report {report_id} is {report.status} and can no longer change", report_id=report_id)
        return report

    async def edit(
        self,
        db: AsyncSession,
        report_id: int,
        reporter_id: str,
        scores: List[ScoreEntry],
        winner: Optional[str] = None,
        is_tie: bool = False,
    ) -> ScoreReport:
        try:
            report = await self._owned_pending(db, report_id, reporter_id)
            match = await self.store.get(db, report.match_id)
            tournament = await tournament_service.get(db, match.tournament_id)
            tournament_service.ensure_editable(tournament, "score reports")
            if not winner and not is_tie:
                winner = winner_by_threshold(scores, tournament_settings(tournament).auto_win_score)
            self._check_report(match, reporter_id, winner, is_tie, scores)
            report.scores = [s.model_dump() for s in scores]
            report.winner = None if is_tie else winner
            report.is_tie = is_tie
            await db.commit()
        except TournamentEngineError:
            await db.rollback()
            raise
        return report

    async def delete(self, db: AsyncSession, report_id: int, reporter_id: str) -> bool:
        try:
            report = await self._owned_pending(db, report_id, reporter_id)
            await db.delete(report)
            await db.commit()
        except TournamentEngineError:
            await db.rollback()
            raise
        return True


report_service = ReportService()
