"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Dict, List, Optional, Union

from attribution_gateway.domain.models import (
    AttributionMapping,
    AttributionReport,
    AttributionType,
    MatchType,
    Provenance,
    SuggestedMatch,
)
from attribution_gateway.infrastructure.database.models import MatcherRun


class FigureSchema(BaseModel):
    """A number and the provenance label the dashboard must display with it"""

    value: Union[int, float]
    provenance: Provenance


class TruthSetSchema(BaseModel):
    """Refcodes behind the truth-only figures; counts live in figures"""

    truth_refcodes: List[str]
    conflicting_refcodes: List[str]


class RefcodePerformanceSchema(BaseModel):
    refcode: str
    channel: str
    donation_count: int
    unique_donors: int
    total_revenue_cents: int
    avg_gift_cents: int
    recurring_rate: float
    attribution_type: Optional[AttributionType] = None
    provenance: Provenance


class ChannelRollupSchema(BaseModel):
    channel: str
    revenue_cents: int
    donation_count: int
    provenance: Provenance


class RetentionSchema(BaseModel):
    total_donors: int
    repeat_rate: float
    recurring_rate: float
    provenance: Provenance


class AttributionReportResponse(BaseModel):
    """Response for GET /v1/organizations/{organization_id}/attribution"""

    organization_id: str
    generated_at: datetime
    stale: bool
    figures: Dict[str, FigureSchema]
    truth_set: TruthSetSchema
    refcodes: List[RefcodePerformanceSchema]
    channels: List[ChannelRollupSchema]
    retention: RetentionSchema

    @classmethod
    def from_report(cls, report: AttributionReport) -> "AttributionReportResponse":
        return cls(
            organization_id=report.organization_id,
            generated_at=report.generated_at,
            stale=report.stale,
            figures={
                name: FigureSchema(value=figure.value, provenance=figure.provenance)
                for name, figure in report.figures.items()
            },
            truth_set=TruthSetSchema(
                truth_refcodes=sorted(report.truth_set.truth_refcodes),
                conflicting_refcodes=sorted(report.truth_set.conflicting_refcodes),
            ),
            refcodes=[RefcodePerformanceSchema(**vars(row)) for row in report.refcodes],
            channels=[ChannelRollupSchema(**vars(row)) for row in report.channels],
            retention=RetentionSchema(**vars(report.retention)),
        )


class SuggestionSchema(BaseModel):
    """Advisory match; always heuristic until confirmed"""

    refcode: str
    revenue_cents: int
    transaction_count: int
    suggested_campaign: str
    match_type: MatchType
    reason: str
    provenance: Provenance = Provenance.HEURISTIC_ONLY

    @classmethod
    def from_suggestion(cls, suggestion: SuggestedMatch) -> "SuggestionSchema":
        return cls(
            refcode=suggestion.refcode,
            revenue_cents=suggestion.revenue_cents,
            transaction_count=suggestion.transaction_count,
            suggested_campaign=suggestion.suggested_campaign,
            match_type=suggestion.match_type,
            reason=suggestion.reason,
        )


class SuggestionsResponse(BaseModel):
    organization_id: str
    suggestions: List[SuggestionSchema]


class ConfirmRequest(BaseModel):
    """Request body for POST .../attribution/confirm"""

    refcode: str = Field(..., min_length=1, max_length=255, description="Refcode to confirm")
    suggested_campaign: Optional[str] = Field(None, max_length=255)
    reason: Optional[str] = Field(None, max_length=1000)

    @field_validator("refcode")
    @classmethod
    def refcode_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("refcode must not be blank")
        return value


class MappingSchema(BaseModel):
    mapping_id: str
    organization_id: str
    refcode: str
    source: Optional[str] = None
    attribution_type: AttributionType
    match_reason: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_mapping(cls, mapping: AttributionMapping) -> "MappingSchema":
        return cls(
            mapping_id=mapping.mapping_id,
            organization_id=mapping.organization_id,
            refcode=mapping.refcode,
            source=mapping.source,
            attribution_type=mapping.attribution_type,
            match_reason=mapping.match_reason,
            created_at=mapping.created_at,
        )


class ConfirmResponse(BaseModel):
    mapping: MappingSchema
    superseded_count: int


class MatcherRunSchema(BaseModel):
    """Single matcher run in the audit log"""

    run_id: str
    organization_id: str
    status: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    total_matched: int
    matches_deterministic: int
    matches_heuristic: int
    unmatched_count: int
    match_breakdown: Dict[str, int] = {}
    error: Optional[str] = None

    @classmethod
    def from_run(cls, run: MatcherRun) -> "MatcherRunSchema":
        return cls(
            run_id=str(run.id),
            organization_id=run.organization_id,
            status=run.status,
            started_at=run.started_at,
            finished_at=run.finished_at,
            total_matched=run.total_matched or 0,
            matches_deterministic=run.matches_deterministic or 0,
            matches_heuristic=run.matches_heuristic or 0,
            unmatched_count=run.unmatched_count or 0,
            match_breakdown=run.match_breakdown or {},
            error=run.error,
        )


class MatcherRunHistoryResponse(BaseModel):
    organization_id: str
    runs: List[MatcherRunSchema]
