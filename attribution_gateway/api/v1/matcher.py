"""Matcher run trigger and audit history endpoints"""

import uuid
import logging
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from attribution_gateway.api.v1.schemas import MatcherRunHistoryResponse, MatcherRunSchema
from attribution_gateway.api.dependencies import get_attribution_service, get_matcher_client, get_request_id
from attribution_gateway.services.attribution import AttributionService
from attribution_gateway.infrastructure.clients.matcher import MatcherClient
from attribution_gateway.infrastructure.database.session import get_db
from attribution_gateway.infrastructure.database.repositories import MatcherRunRepository
from attribution_gateway.domain.exceptions import DuplicateSubmissionError, MatcherRunError
from attribution_gateway.infrastructure.observability.metrics import duplicate_submission_counter, matcher_run_counter

router = APIRouter()


@router.post(
    "/organizations/{organization_id}/matcher/runs",
    response_model=MatcherRunSchema,
    status_code=201,
)
async def run_matcher(
    organization_id: str,
    request: Request,
    db: Session = Depends(get_db),
    service: AttributionService = Depends(get_attribution_service),
    matcher: MatcherClient = Depends(get_matcher_client),
):
    """
    Trigger the remote matcher and wait for it to finish.

    The run is not idempotent; a second request for the same organization
    while one is running gets 409. Failed runs are still recorded.
    """
    request_id = get_request_id(request)
    runs = MatcherRunRepository(db)

    try:
        run = await service.run_matcher(organization_id, matcher, runs)
        db.commit()

    except DuplicateSubmissionError:
        duplicate_submission_counter.labels(action="matcher_run").inc()
        raise HTTPException(status_code=409, detail="Matcher run already in progress")

    except MatcherRunError as e:
        db.commit()  # keep the failed run in the audit log
        matcher_run_counter.labels(outcome="failed").inc()
        logging.error(f"Matcher run failed: {e}", extra={"request_id": request_id, "organization_id": organization_id})
        raise HTTPException(status_code=502, detail="Matcher run failed")

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    matcher_run_counter.labels(outcome="succeeded").inc()
    logging.info(
        "Matcher run completed",
        extra={
            "request_id": request_id,
            "organization_id": organization_id,
            "total_matched": run.total_matched,
            "matches_deterministic": run.matches_deterministic,
            "matches_heuristic": run.matches_heuristic,
        },
    )
    return MatcherRunSchema.from_run(run)


@router.get("/organizations/{organization_id}/matcher/runs", response_model=MatcherRunHistoryResponse)
def get_matcher_runs(
    organization_id: str,
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """Recent matcher runs, newest first"""
    runs = MatcherRunRepository(db).get_runs_by_organization(organization_id, limit=limit)
    return MatcherRunHistoryResponse(
        organization_id=organization_id,
        runs=[MatcherRunSchema.from_run(r) for r in runs],
    )


@router.get("/organizations/{organization_id}/matcher/runs/{run_id}", response_model=MatcherRunSchema)
def get_matcher_run(organization_id: str, run_id: str, db: Session = Depends(get_db)):
    """Single matcher run"""
    try:
        run_uuid = uuid.UUID(run_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid run ID format")

    run = MatcherRunRepository(db).get_run_by_id(run_uuid)
    if not run or run.organization_id != organization_id:
        raise HTTPException(status_code=404, detail="Run not found")

    return MatcherRunSchema.from_run(run)
