from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import delete, func
from sqlalchemy.future import select

from backend.app.api.errors import from_engine_error, unwrap
from backend.app.api.tournament import get_engine
from backend.app.core.database import get_db
from backend.app.exceptions import TournamentEngineError
from backend.app.models.match_model import TournamentMatch
from backend.app.models.player_model import TournamentPlayer
from backend.app.models.score_report_model import ScoreReport
from backend.app.models.tournament_model import Tournament
from backend.app.schemas.command_schema import CommandResult
from backend.app.services.commands import TournamentEngine
from backend.app.services.tournament_service import tournament_service

router = APIRouter()

@router.delete("/tournaments/{tournament_id}", status_code=status.HTTP_200_OK)
async def delete_tournament(tournament_id: int, db: AsyncSession = Depends(get_db)):
    """Deletes a tournament together with its roster, matchups and score reports."""
    try:
        await tournament_service.delete_tournament(db, tournament_id)
    except TournamentEngineError as e:
        await db.rollback()
        raise from_engine_error(e)
    return {"message": f"Tournament {tournament_id} deleted"}

@router.post("/matches/{match_id}/reopen", response_model=CommandResult)
async def reopen_match(match_id: int, engine: TournamentEngine = Depends(get_engine)):
    """
    Clears a single-elimination result even when it is locked, rolling the
    winner back out of the next round. Refused once that next-round result
    has itself been propagated further.
    """
    return unwrap(await engine.reopen_match(match_id))

@router.delete("/reset", status_code=status.HTTP_200_OK)
async def reset_database(confirmation: str, db: AsyncSession = Depends(get_db)):
    """
    Resets the database.
    Query Param 'confirmation' must equal 'I-UNDERSTAND-THIS-DELETES-EVERYTHING'.
    """
    if confirmation != "I-UNDERSTAND-THIS-DELETES-EVERYTHING":
        raise HTTPException(
            status_code=400,
            detail="Invalid confirmation string. Operation aborted."
        )

    # Children first so foreign keys hold on every backend
    for model in (ScoreReport, TournamentMatch, TournamentPlayer, Tournament):
        await db.execute(delete(model))
    await db.commit()
    return {"message": "Database successfully wiped."}

@router.get("/status")
async def get_admin_status(db: AsyncSession = Depends(get_db)):
    """
    Get database statistics for admin dashboard.
    """
    counts = {}
    for name, model in (
        ("tournaments", Tournament),
        ("players", TournamentPlayer),
        ("matches", TournamentMatch),
        ("score_reports", ScoreReport),
    ):
        result = await db.execute(select(func.count(model.id)))
        counts[name] = result.scalar() or 0
    return counts
