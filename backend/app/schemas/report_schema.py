from pydantic import BaseModel, ConfigDict
from typing import List, Optional
from datetime import datetime

from backend.app.models.enums import ReportStatus
from backend.app.schemas.bracket_schema import ScoreEntry

class ScoreReportCreate(BaseModel):
    match_id: int
    reporter_id: str
    scores: List[ScoreEntry]
    winner: Optional[str] = None
    is_tie: bool = False

class ScoreReportUpdate(BaseModel):
    reporter_id: str
    scores: List[ScoreEntry]
    winner: Optional[str] = None
    is_tie: bool = False

class ScoreReportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    match_id: int
    tournament_id: int
    reporter_id: str
    scores: List[ScoreEntry]
    winner: Optional[str] = None
    is_tie: bool = False
    status: ReportStatus
    created_at: Optional[datetime] = None

class MatchReportSummary(BaseModel):
    match_id: int
    reports: List[ScoreReportResponse]
    reports_match: bool
