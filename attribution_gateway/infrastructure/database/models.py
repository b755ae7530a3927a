"""SQLAlchemy ORM models for the local audit database"""

import uuid
from sqlalchemy import Column, DateTime, Integer, Text, JSON, Uuid
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class MatcherRun(Base):
    """One remote matcher run and its outcome"""

    __tablename__ = "attribution_matcher_run"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(Text, nullable=False, index=True)
    status = Column(Text, nullable=False, default="running")  # running | succeeded | failed
    started_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    finished_at = Column(DateTime(timezone=True), nullable=True)
    total_matched = Column(Integer, nullable=False, default=0)
    matches_deterministic = Column(Integer, nullable=False, default=0)
    matches_heuristic = Column(Integer, nullable=False, default=0)
    unmatched_count = Column(Integer, nullable=False, default=0)
    match_breakdown = Column(JSON, nullable=True)
    error = Column(Text, nullable=True)
