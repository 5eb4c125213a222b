from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from backend.app.core.database import Base
from backend.app.models.enums import RosterStatus
from backend.app.models.types import JSONType

class TournamentPlayer(Base):
    """Roster entry. Only ``active`` players are fed to the bracket builder."""
    __tablename__ = "tournament_players"

    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    tournament_id = Column(Integer, ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False, index=True)
    tournament = relationship("Tournament", back_populates="players")

    member_uuid = Column(String, nullable=False)
    player_name = Column(String, default="")
    email = Column(String, default="")
    is_anonymous = Column(Boolean, default=False)
    is_generated = Column(Boolean, default=False)
    type = Column(String, default=RosterStatus.ACTIVE) # active, waitlist, inactive

    # [{"name": "elo", "value": 1500}, ...]
    skills = Column(JSONType, default=list)
