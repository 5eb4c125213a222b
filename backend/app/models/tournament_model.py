from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from backend.app.core.database import Base
from backend.app.models.enums import TournamentStatus
from backend.app.models.types import JSONType

class Tournament(Base):
    __tablename__ = "tournaments"

    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    name = Column(String, default="")
    format = Column(String, nullable=False) # single, swiss, robin
    status = Column(String, default=TournamentStatus.INITIALIZATION)

    # Elimination / Swiss only
    max_rounds = Column(Integer, nullable=True)
    max_players = Column(Integer, nullable=True)

    # Settings: see schemas.tournament_schema.TournamentSettings
    settings = Column(JSONType, default=dict)

    # Relationships
    players = relationship("TournamentPlayer", back_populates="tournament", cascade="all, delete-orphan")
    matches = relationship("TournamentMatch", back_populates="tournament", cascade="all, delete-orphan")
    score_reports = relationship("ScoreReport", back_populates="tournament", cascade="all, delete-orphan")
