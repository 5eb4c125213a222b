from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, Index, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from backend.app.core.database import Base
from backend.app.models.enums import ReportStatus
from backend.app.models.types import JSONType

PENDING_ONLY = text("status = 'pending'")


class ScoreReport(Base):
    __tablename__ = "score_reports"
    __table_args__ = (
        Index("ix_score_reports_match_reporter", "match_id", "reporter_id"),
        # One pending report per (match, reporter), enforced by the database
        Index(
            "uq_score_reports_pending", "match_id", "reporter_id",
            unique=True, sqlite_where=PENDING_ONLY, postgresql_where=PENDING_ONLY,
        ),
    )

    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    match_id = Column(Integer, ForeignKey("tournament_matches.id", ondelete="CASCADE"), nullable=False)
    match = relationship("TournamentMatch", back_populates="reports")

    tournament_id = Column(Integer, ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False, index=True)
    tournament = relationship("Tournament", back_populates="score_reports")

    reporter_id = Column(String, nullable=False)

    # [{"player_uuid": "...", "score": 3}, ...]
    scores = Column(JSONType, default=list)
    winner = Column(String, nullable=True)
    is_tie = Column(Boolean, default=False, nullable=False)
    status = Column(String, default=ReportStatus.PENDING, nullable=False)
