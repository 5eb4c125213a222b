from pydantic import BaseModel, ConfigDict
from typing import List, Optional
from datetime import datetime

from backend.app.models.enums import AccountType, MatchState

class BracketPlayer(BaseModel):
    # Stored slots may carry extra keys (email, skills) from older rows
    model_config = ConfigDict(extra='ignore')

    uuid: str = ""
    name: str = ""
    account_type: AccountType = AccountType.PLACEHOLDER
    score: Optional[int] = None

    @property
    def is_placeholder(self) -> bool:
        return self.uuid == ""

class PlayerSkill(BaseModel):
    name: str
    value: float = 0

class SeedPlayer(BracketPlayer):
    """A bracket player plus the skill values used for seeding."""
    skills: List[PlayerSkill] = []

    def to_slot(self) -> BracketPlayer:
        return BracketPlayer(uuid=self.uuid, name=self.name, account_type=self.account_type, score=self.score)

class ScoreEntry(BaseModel):
    player_uuid: str
    score: int

class MatchupResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: int
    round: int
    match_number: int
    players: List[BracketPlayer]
    winner: Optional[str] = None
    is_tie: bool = False
    version: int
    updated_at: Optional[datetime] = None

class MatchupView(MatchupResponse):
    state: MatchState

class RoundView(BaseModel):
    round: int
    matches: List[MatchupView]

class PlannedMatchup(BaseModel):
    """A matchup computed by the builder or pairing engine, not yet stored."""
    round: int
    match_number: int
    players: List[BracketPlayer]
    winner: Optional[str] = None
    is_tie: bool = False

    @property
    def is_bye(self) -> bool:
        return any(p.is_placeholder for p in self.players)

    def slot_dicts(self) -> List[dict]:
        return [p.model_dump(mode="json") for p in self.players]
