from sqlalchemy import (
    Column,
    String,
    DateTime,
    ForeignKey,
    JSON,
    Integer,
    Text,
    Index,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from .db import Base


class Sport(Base):
    __tablename__ = "sport"
    id = Column(String, primary_key=True)   # e.g., "tennis", "pickleball"
    name = Column(String, nullable=False, unique=True)


class RuleSet(Base):
    __tablename__ = "ruleset"
    id = Column(String, primary_key=True)
    sport_id = Column(String, ForeignKey("sport.id"), nullable=False)
    name = Column(String, nullable=False)
    config = Column(JSON, nullable=False)


class Match(Base):
    __tablename__ = "match"
    id = Column(String, primary_key=True)
    sport_id = Column(String, ForeignKey("sport.id"), nullable=False)
    ruleset_id = Column(String, ForeignKey("ruleset.id"), nullable=True)
    # Scoring policy frozen at creation; every snapshot carries a copy.
    policy = Column(JSON().with_variant(JSONB, "postgresql"), nullable=True)
    status = Column(String, nullable=False, default="scheduled")  # "scheduled" | "in_progress" | "completed"
    # Denormalized projection of the latest snapshot.
    details = Column(JSON, nullable=True)
    # Bumped on every log append or undo; guards the projection update.
    version = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)


class ScoreEvent(Base):
    __tablename__ = "score_event"
    id = Column(String, primary_key=True)
    match_id = Column(String, ForeignKey("match.id", ondelete="CASCADE"), nullable=False)
    sequence = Column(Integer, nullable=False)
    type = Column(String, nullable=False)
    scoring_side = Column(Integer, nullable=True)
    snapshot = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False)
    recorded_by = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "match_id", "sequence", name="uq_score_event_match_id_sequence"
        ),
    )


class MatchAuditLog(Base):
    __tablename__ = "match_audit_log"
    id = Column(String, primary_key=True)
    match_id = Column(String, ForeignKey("match.id", ondelete="CASCADE"), nullable=False)
    actor = Column(String, nullable=True)
    action = Column(String, nullable=False)
    metadata_ = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_match_audit_log_match_id", "match_id"),
    )
