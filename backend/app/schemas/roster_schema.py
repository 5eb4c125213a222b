from pydantic import BaseModel, ConfigDict
from typing import List, Optional
from datetime import datetime

from backend.app.models.enums import RosterStatus
from backend.app.schemas.bracket_schema import PlayerSkill

class RosterEntryCreate(BaseModel):
    member_uuid: str
    player_name: str = ""
    email: str = ""
    status: RosterStatus = RosterStatus.ACTIVE
    is_anonymous: bool = False
    is_generated: bool = False
    skills: List[PlayerSkill] = []

class RosterStatusUpdate(BaseModel):
    status: RosterStatus

class RosterEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: int
    member_uuid: str
    player_name: Optional[str] = ""
    email: Optional[str] = ""
    type: RosterStatus
    is_anonymous: bool = False
    is_generated: bool = False
    skills: List[PlayerSkill] = []
    created_at: Optional[datetime] = None
