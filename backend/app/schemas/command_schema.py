from pydantic import BaseModel
from typing import Any, Dict, List, Optional

from backend.app.models.enums import PairingMode, ResultCode
from backend.app.schemas.bracket_schema import ScoreEntry

class DeclareResultRequest(BaseModel):
    winner: Optional[str] = None
    is_tie: bool = False
    # Neither winner nor tie clears the result (Decided -> Open)
    scores: List[ScoreEntry] = []
    expected_version: Optional[int] = None

class BuildBracketRequest(BaseModel):
    pairing_mode: Optional[PairingMode] = None

class StartNextRoundRequest(BaseModel):
    force_settle: bool = False
    expected_round: Optional[int] = None

class SlotMoveRequest(BaseModel):
    from_match_id: int
    from_slot: int
    to_match_id: int
    to_slot: int

class SlotFillRequest(BaseModel):
    match_id: int
    slot: int
    member_uuid: str

class CommandResult(BaseModel):
    """Typed outcome of an engine command. Engine errors never escape as exceptions."""
    ok: bool
    code: ResultCode
    message: str = ""
    value: Any = None
    details: Dict[str, Any] = {}

    @classmethod
    def success(cls, value: Any = None, code: ResultCode = ResultCode.OK, message: str = "", **details):
        return cls(ok=True, code=code, value=value, message=message, details=details)

    @classmethod
    def failure(cls, code: ResultCode, message: str = "", **details):
        return cls(ok=False, code=code, message=message, details=details)
