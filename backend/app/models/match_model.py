from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from backend.app.core.database import Base
from backend.app.models.types import JSONType

class TournamentMatch(Base):
    __tablename__ = "tournament_matches"
    __table_args__ = (
        # Guards round generation: a second "start next round" fails on insert
        UniqueConstraint("tournament_id", "round", "match_number", name="uq_match_slot"),
    )

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    tournament_id = Column(Integer, ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False, index=True)
    tournament = relationship("Tournament", back_populates="matches")

    round = Column(Integer, nullable=False)
    match_number = Column(Integer, nullable=False)

    # Two slots: [{"uuid", "name", "account_type", "score"}, {...}]
    players = Column(JSONType, default=list)

    winner = Column(String, nullable=True)
    is_tie = Column(Boolean, default=False, nullable=False)

    # Optimistic concurrency: every UPDATE is "... WHERE version = :old"
    version = Column(Integer, nullable=False, default=1)

    reports = relationship("ScoreReport", back_populates="match", cascade="all, delete-orphan")

    # eager_defaults: timestamps are fetched on flush instead of lazily (async)
    __mapper_args__ = {"version_id_col": version, "eager_defaults": True}
