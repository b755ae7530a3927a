"""Data access layer for matcher run audit records"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional
from sqlalchemy.orm import Session
from attribution_gateway.infrastructure.database.models import MatcherRun
from attribution_gateway.domain.models import MatcherRunResult


class MatcherRunRepository:
    """Repository for matcher run audit log"""

    def __init__(self, db: Session):
        self.db = db

    def start_run(self, organization_id: str) -> MatcherRun:
        """Record a run before the remote call is made"""
        run = MatcherRun(
            organization_id=organization_id,
            status="running",
            started_at=datetime.now(timezone.utc),
        )
        self.db.add(run)
        self.db.flush()  # Get ID without committing
        return run

    def complete_run(self, run: MatcherRun, result: MatcherRunResult) -> MatcherRun:
        """Store the run summary"""
        run.status = "succeeded"
        run.finished_at = datetime.now(timezone.utc)
        run.total_matched = result.total_matched
        run.matches_deterministic = result.deterministic_count
        run.matches_heuristic = result.heuristic_count
        run.unmatched_count = result.unmatched_count
        run.match_breakdown = {tag.value: count for tag, count in result.match_breakdown.items()}
        self.db.flush()
        return run

    def fail_run(self, run: MatcherRun, error: str) -> MatcherRun:
        run.status = "failed"
        run.finished_at = datetime.now(timezone.utc)
        run.error = error
        self.db.flush()
        return run

    def get_runs_by_organization(self, organization_id: str, limit: int = 10) -> List[MatcherRun]:
        """Fetch recent runs for an organization"""
        return (
            self.db.query(MatcherRun)
            .filter(MatcherRun.organization_id == organization_id)
            .order_by(MatcherRun.started_at.desc())
            .limit(limit)
            .all()
        )

    def get_run_by_id(self, run_id: uuid.UUID) -> Optional[MatcherRun]:
        return (
            self.db.query(MatcherRun)
            .filter(MatcherRun.id == run_id)
            .first()
        )
