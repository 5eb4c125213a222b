from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from backend.app.api.errors import from_engine_error, unwrap
from backend.app.core.database import get_db
from backend.app.exceptions import TournamentEngineError
from backend.app.schemas.bracket_schema import RoundView
from backend.app.schemas.command_schema import (
    BuildBracketRequest, CommandResult, DeclareResultRequest, SlotFillRequest,
    SlotMoveRequest, StartNextRoundRequest
)
from backend.app.schemas.report_schema import (
    MatchReportSummary, ScoreReportCreate, ScoreReportResponse, ScoreReportUpdate
)
from backend.app.schemas.roster_schema import RosterEntryCreate, RosterEntryResponse, RosterStatusUpdate
from backend.app.schemas.tournament_schema import (
    StandingEntry, TournamentCreate, TournamentResponse, TournamentUpdate
)
from backend.app.services.bracket_service import bracket_service
from backend.app.services.commands import TournamentEngine, tournament_engine
from backend.app.services.report_service import report_service
from backend.app.services.roster_store import roster_store
from backend.app.services.tournament_service import tournament_service

router = APIRouter()


def get_engine() -> TournamentEngine:
    return tournament_engine


# --- Tournament lifecycle ---

@router.post("", response_model=TournamentResponse)
async def create_tournament(payload: TournamentCreate, db: AsyncSession = Depends(get_db)):
    try:
        return await tournament_service.create_tournament(db, payload)
    except TournamentEngineError as e:
        raise from_engine_error(e)

@router.get("/{tournament_id}", response_model=TournamentResponse)
async def get_tournament(tournament_id: int, db: AsyncSession = Depends(get_db)):
    try:
        return await tournament_service.get(db, tournament_id)
    except TournamentEngineError as e:
        raise from_engine_error(e)

@router.patch("/{tournament_id}", response_model=TournamentResponse)
async def update_tournament(tournament_id: int, payload: TournamentUpdate, db: AsyncSession = Depends(get_db)):
    """Settings edits; format and win-condition settings are frozen once started."""
    try:
        return await tournament_service.update_tournament(db, tournament_id, payload)
    except TournamentEngineError as e:
        raise from_engine_error(e)

@router.post("/{tournament_id}/start", response_model=TournamentResponse)
async def start_tournament(tournament_id: int, db: AsyncSession = Depends(get_db)):
    try:
        return await tournament_service.start_tournament(db, tournament_id)
    except TournamentEngineError as e:
        raise from_engine_error(e)

@router.post("/{tournament_id}/complete", response_model=TournamentResponse)
async def complete_tournament(tournament_id: int, db: AsyncSession = Depends(get_db)):
    try:
        return await tournament_service.complete_tournament(db, tournament_id)
    except TournamentEngineError as e:
        raise from_engine_error(e)

# --- Roster ---

@router.post("/{tournament_id}/players", response_model=RosterEntryResponse)
async def register_player(tournament_id: int, payload: RosterEntryCreate, db: AsyncSession = Depends(get_db)):
    try:
        t = await tournament_service.get(db, tournament_id)
        tournament_service.ensure_editable(t, "the roster")
        player = await roster_store.register(db, tournament_id, t.max_players, payload)
        await db.commit()
    except TournamentEngineError as e:
        await db.rollback()
        raise from_engine_error(e)
    return player

@router.get("/{tournament_id}/players", response_model=List[RosterEntryResponse])
async def list_players(tournament_id: int, db: AsyncSession = Depends(get_db)):
    return await roster_store.list_players(db, tournament_id)

@router.patch("/{tournament_id}/players/{member_uuid}", response_model=RosterEntryResponse)
async def update_player_status(
    tournament_id: int,
    member_uuid: str,
    payload: RosterStatusUpdate,
    db: AsyncSession = Depends(get_db)
):
    """Move a player between active, waitlist and inactive (withdrawn)."""
    try:
        player = await roster_store.set_status(db, tournament_id, member_uuid, payload.status)
        await db.commit()
    except TournamentEngineError as e:
        await db.rollback()
        raise from_engine_error(e)
    return player

# --- Bracket and rounds ---

@router.post("/{tournament_id}/bracket", response_model=CommandResult)
async def build_bracket(
    tournament_id: int,
    payload: Optional[BuildBracketRequest] = None,
    engine: TournamentEngine = Depends(get_engine)
):
    mode = payload.pairing_mode if payload else None
    return unwrap(await engine.build_initial_bracket(tournament_id, pairing_mode=mode))

@router.get("/{tournament_id}/rounds", response_model=List[RoundView])
async def get_rounds(tournament_id: int, db: AsyncSession = Depends(get_db)):
    try:
        return await bracket_service.rounds_view(db, tournament_id)
    except TournamentEngineError as e:
        raise from_engine_error(e)

@router.post("/{tournament_id}/rounds/next", response_model=CommandResult)
async def start_next_round(
    tournament_id: int,
    payload: Optional[StartNextRoundRequest] = None,
    engine: TournamentEngine = Depends(get_engine)
):
    payload = payload or StartNextRoundRequest()
    return unwrap(await engine.start_next_round(tournament_id, payload.force_settle, payload.expected_round))

@router.get("/{tournament_id}/standings", response_model=List[StandingEntry])
async def get_standings(tournament_id: int, db: AsyncSession = Depends(get_db)):
    try:
        return await bracket_service.standings(db, tournament_id)
    except TournamentEngineError as e:
        raise from_engine_error(e)

# --- Matchup edits ---

@router.post("/matches/{match_id}/result", response_model=CommandResult)
async def declare_result(
    match_id: int,
    payload: DeclareResultRequest,
    engine: TournamentEngine = Depends(get_engine)
):
    return unwrap(await engine.declare_result(
        match_id, payload.winner, payload.is_tie, payload.scores, payload.expected_version
    ))

@router.post("/slots/move", response_model=CommandResult)
async def move_player(payload: SlotMoveRequest, engine: TournamentEngine = Depends(get_engine)):
    return unwrap(await engine.move_player(
        payload.from_match_id, payload.from_slot, payload.to_match_id, payload.to_slot
    ))

@router.post("/slots/fill", response_model=CommandResult)
async def fill_slot(payload: SlotFillRequest, engine: TournamentEngine = Depends(get_engine)):
    return unwrap(await engine.fill_slot(payload.match_id, payload.slot, payload.member_uuid))

# --- Score reports ---

@router.get("/{tournament_id}/reports")
async def list_reports(tournament_id: int, reporter_id: Optional[str] = None, db: AsyncSession = Depends(get_db)):
    """All report groups with their agreement flag, or one reporter's own reports."""
    if reporter_id is not None:
        reports = await report_service.list_for_tournament(db, tournament_id, reporter_id)
        return [ScoreReportResponse.model_validate(r) for r in reports]
    summaries: List[MatchReportSummary] = await report_service.summaries(db, tournament_id)
    return summaries

@router.post("/reports", response_model=CommandResult)
async def submit_report(payload: ScoreReportCreate, engine: TournamentEngine = Depends(get_engine)):
    return unwrap(await engine.submit_score_report(
        payload.match_id, payload.reporter_id, payload.scores, payload.winner, payload.is_tie
    ))

@router.patch("/reports/{report_id}", response_model=ScoreReportResponse)
async def edit_report(report_id: int, payload: ScoreReportUpdate, db: AsyncSession = Depends(get_db)):
    try:
        return await report_service.edit(
            db, report_id, payload.reporter_id, payload.scores, payload.winner, payload.is_tie
        )
    except TournamentEngineError as e:
        raise from_engine_error(e)

@router.delete("/reports/{report_id}")
async def delete_report(report_id: int, reporter_id: str, db: AsyncSession = Depends(get_db)):
    try:
        await report_service.delete(db, report_id, reporter_id)
    except TournamentEngineError as e:
        raise from_engine_error(e)
    return {"message": "Report deleted"}

@router.post("/reports/{report_id}/accept", response_model=CommandResult)
async def accept_report(report_id: int, engine: TournamentEngine = Depends(get_engine)):
    return unwrap(await engine.accept_score_report(report_id))

@router.post("/reports/{report_id}/dispute", response_model=CommandResult)
async def dispute_report(report_id: int, engine: TournamentEngine = Depends(get_engine)):
    return unwrap(await engine.dispute_score_report(report_id))
