"""Attribution report, suggestion, and confirmation endpoints"""

import time
import logging
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from attribution_gateway.api.v1.schemas import (
    AttributionReportResponse,
    ConfirmRequest,
    ConfirmResponse,
    MappingSchema,
    SuggestionSchema,
    SuggestionsResponse,
)
from attribution_gateway.api.dependencies import get_attribution_service, get_request_id
from attribution_gateway.services.attribution import AttributionService
from attribution_gateway.domain.exceptions import (
    DuplicateSubmissionError,
    InvalidRefcodeError,
    MappingConflictError,
    StoreAPIError,
    StoreNetworkError,
    StoreServerError,
)
from attribution_gateway.infrastructure.observability.metrics import (
    confirmation_counter,
    duplicate_submission_counter,
    record_report,
    store_fetch_failures_counter,
)
from attribution_gateway.infrastructure.observability.logging import log_mapping_confirmed, log_report_built

router = APIRouter()


def store_error_to_http(e: StoreAPIError, request_id: str) -> HTTPException:
    """Map store failures onto distinguishable HTTP statuses"""
    if isinstance(e, StoreNetworkError):
        kind, status, detail = "network", 503, "Store unavailable"
    elif isinstance(e, StoreServerError):
        kind, status, detail = "server", 502, "Store error"
    else:
        kind, status, detail = "validation", 422, "Store rejected request"
    store_fetch_failures_counter.labels(kind=kind).inc()
    logging.error(f"Store API error: {e}", extra={"request_id": request_id, "kind": kind})
    return HTTPException(status_code=status, detail=detail)


@router.get(
    "/organizations/{organization_id}/attribution",
    response_model=AttributionReportResponse,
)
async def get_attribution_report(
    organization_id: str,
    request: Request,
    start_date: Optional[date] = Query(None, description="Inclusive window start"),
    end_date: Optional[date] = Query(None, description="Inclusive window end"),
    service: AttributionService = Depends(get_attribution_service),
):
    """
    Build the attribution report for an organization.

    Flow:
    1. Fetch transactions and mappings concurrently
    2. Extract the truth set once
    3. Partition revenue and build provenance-labelled rollups
    4. On store failure, serve the last good report flagged stale
    """
    start_time = time.time()
    request_id = get_request_id(request)

    if start_date and end_date and start_date > end_date:
        raise HTTPException(status_code=400, detail="start_date must not be after end_date")

    try:
        report = await service.get_report(organization_id, start_date, end_date)
    except StoreAPIError as e:
        raise store_error_to_http(e, request_id)

    duration_ms = (time.time() - start_time) * 1000
    record_report(report.partition.match_rate_percent, report.stale)
    log_report_built(
        request_id,
        organization_id,
        report.partition.match_rate_percent,
        report.partition.transaction_count,
        report.stale,
        duration_ms,
    )

    return AttributionReportResponse.from_report(report)


@router.get(
    "/organizations/{organization_id}/attribution/suggestions",
    response_model=SuggestionsResponse,
)
async def get_suggestions(
    organization_id: str,
    request: Request,
    min_revenue_cents: Optional[int] = Query(None, ge=0, description="Revenue threshold in cents"),
    limit: Optional[int] = Query(None, ge=1, le=100, description="Maximum suggestions"),
    service: AttributionService = Depends(get_attribution_service),
):
    """
    Suggest campaigns for unmapped refcodes, highest revenue first.

    Suggestions are heuristic and never counted as matched revenue.
    """
    try:
        suggestions = await service.get_suggestions(organization_id, min_revenue_cents, limit)
    except StoreAPIError as e:
        raise store_error_to_http(e, get_request_id(request))

    return SuggestionsResponse(
        organization_id=organization_id,
        suggestions=[SuggestionSchema.from_suggestion(s) for s in suggestions],
    )


@router.post(
    "/organizations/{organization_id}/attribution/confirm",
    response_model=ConfirmResponse,
    status_code=201,
)
async def confirm_mapping(
    organization_id: str,
    request_body: ConfirmRequest,
    request: Request,
    service: AttributionService = Depends(get_attribution_service),
):
    """Promote a refcode to a manually confirmed (truth) mapping"""
    request_id = get_request_id(request)

    try:
        mapping, superseded_count = await service.confirm_suggestion(
            organization_id,
            request_body.refcode,
            suggested_campaign=request_body.suggested_campaign,
            reason=request_body.reason,
        )

    except InvalidRefcodeError as e:
        raise HTTPException(status_code=422, detail=str(e))

    except DuplicateSubmissionError:
        duplicate_submission_counter.labels(action="confirm").inc()
        raise HTTPException(status_code=409, detail="Confirmation already in progress")

    except MappingConflictError as e:
        confirmation_counter.labels(outcome="conflict").inc()
        logging.warning(f"Mapping conflict: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail=str(e))

    except StoreAPIError as e:
        confirmation_counter.labels(outcome="failed").inc()
        raise store_error_to_http(e, request_id)

    confirmation_counter.labels(outcome="created").inc()
    log_mapping_confirmed(request_id, organization_id, mapping.refcode, mapping.mapping_id, superseded_count)

    return ConfirmResponse(mapping=MappingSchema.from_mapping(mapping), superseded_count=superseded_count)
