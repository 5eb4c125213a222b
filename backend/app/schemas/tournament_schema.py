from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime

from backend.app.models.enums import PairingMode, TournamentFormat, WinCondition

# Settings that freeze once the tournament has started
LOCKED_SETTING_KEYS = ("win_condition", "points_to_win", "auto_win_score", "double_round_robin")

class TournamentSettings(BaseModel):
    model_config = ConfigDict(extra='ignore')

    win_condition: WinCondition = WinCondition.ROUNDS
    points_to_win: Optional[float] = None
    auto_win_score: Optional[int] = None
    pairing_mode: Optional[PairingMode] = None
    seeded_group_size: Optional[int] = None
    double_round_robin: bool = False
    auto_accept: bool = False
    require_both_reports: bool = True
    skill_fields: List[str] = []

class TournamentCreate(BaseModel):
    name: str = ""
    format: TournamentFormat
    max_rounds: Optional[int] = None
    max_players: Optional[int] = None
    settings: TournamentSettings = Field(default_factory=TournamentSettings)

class TournamentUpdate(BaseModel):
    name: Optional[str] = None
    format: Optional[TournamentFormat] = None
    max_rounds: Optional[int] = None
    max_players: Optional[int] = None
    settings: Optional[TournamentSettings] = None

class TournamentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    format: TournamentFormat
    status: str
    max_rounds: Optional[int] = None
    max_players: Optional[int] = None
    settings: TournamentSettings
    created_at: Optional[datetime] = None

class StandingEntry(BaseModel):
    uuid: str
    name: str
    wins: int = 0
    losses: int = 0
    ties: int = 0
    byes: int = 0
    points: float = 0.0
    opponents: List[str] = []
    match_win_percentage: float = 0.0
    opponent_win_percentage: float = 0.0
