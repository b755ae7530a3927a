"""Domain models - pure Python dataclasses representing attribution entities"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Union


class AttributionType(str, Enum):
    """Closed set of mapping classifications, highest trust first"""

    DETERMINISTIC_URL_REFCODE = "deterministic_url_refcode"
    MANUAL_CONFIRMED = "manual_confirmed"
    DETERMINISTIC_REFCODE = "deterministic_refcode"  # legacy, untrusted until reclassified
    HEURISTIC_PARTIAL_URL = "heuristic_partial_url"
    HEURISTIC_PATTERN = "heuristic_pattern"
    HEURISTIC_FUZZY = "heuristic_fuzzy"

    @property
    def is_truth(self) -> bool:
        return self in TRUTH_TYPES


TRUTH_TYPES = frozenset({AttributionType.DETERMINISTIC_URL_REFCODE, AttributionType.MANUAL_CONFIRMED})


class MatchType(str, Enum):
    """How a suggestion was inferred"""

    PATTERN = "pattern"
    FUZZY = "fuzzy"


class Provenance(str, Enum):
    """Label attached to every reported figure"""

    TRUTH_ONLY = "truth_only"
    HEURISTIC_ONLY = "heuristic_only"
    INCLUDES_HEURISTIC = "includes_heuristic"
    UNATTRIBUTED = "unattributed"
    ALL_TRANSACTIONS = "all_transactions"


@dataclass(frozen=True)
class Transaction:
    """Revenue event read from the remote store"""

    transaction_id: str
    amount_cents: int
    refcode: Optional[str] = None  # normalized: trimmed, lower-cased
    transaction_date: Optional[datetime] = None
    donor_id: Optional[str] = None
    is_recurring: bool = False


@dataclass(frozen=True)
class AttributionMapping:
    """Refcode to campaign/source association"""

    mapping_id: str
    organization_id: str
    refcode: str  # normalized: trimmed, lower-cased
    source: Optional[str]
    attribution_type: AttributionType
    confidence: Optional[float] = None  # advisory only
    attributed_revenue_cents: Optional[int] = None  # denormalized display hint
    attributed_transactions: Optional[int] = None  # denormalized display hint
    match_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    superseded_at: Optional[datetime] = None
    superseded_by: Optional[str] = None

    @property
    def is_truth(self) -> bool:
        return self.attribution_type.is_truth

    @property
    def is_active(self) -> bool:
        return self.superseded_at is None


@dataclass(frozen=True)
class TruthSet:
    """Output of truth-set extraction; the single authority on attribution"""

    truth_refcodes: FrozenSet[str]
    heuristic_refcodes: FrozenSet[str]
    truth_count: int
    heuristic_count: int
    conflicting_refcodes: FrozenSet[str] = frozenset()


@dataclass
class RevenuePartition:
    """Transactions split by attribution status"""

    matched_revenue_cents: int
    heuristic_revenue_cents: int
    unmatched_revenue_cents: int
    match_rate_percent: float
    transaction_count: int
    rejected_transactions: int = 0

    @property
    def total_revenue_cents(self) -> int:
        return self.matched_revenue_cents + self.heuristic_revenue_cents + self.unmatched_revenue_cents


@dataclass
class RefcodeAggregate:
    """Revenue and count grouped by refcode"""

    refcode: str
    revenue_cents: int = 0
    transaction_count: int = 0


@dataclass(frozen=True)
class SuggestedMatch:
    """Advisory campaign guess for an unmapped refcode; never persisted as-is"""

    refcode: str
    revenue_cents: int
    transaction_count: int
    suggested_campaign: str
    match_type: MatchType
    reason: str


@dataclass
class Figure:
    """A reported number and where it came from"""

    value: Union[int, float]
    provenance: Provenance


@dataclass
class RefcodePerformance:
    """Per-refcode rollup for the performance table"""

    refcode: str
    channel: str
    donation_count: int
    unique_donors: int
    total_revenue_cents: int
    avg_gift_cents: int
    recurring_rate: float
    attribution_type: Optional[AttributionType]
    provenance: Provenance


@dataclass
class ChannelRollup:
    """Revenue grouped by inferred channel"""

    channel: str
    revenue_cents: int
    donation_count: int
    provenance: Provenance = Provenance.INCLUDES_HEURISTIC


@dataclass
class RetentionMetrics:
    """Donor retention figures over the snapshot"""

    total_donors: int
    repeat_rate: float
    recurring_rate: float
    provenance: Provenance = Provenance.ALL_TRANSACTIONS


@dataclass
class AttributionReport:
    """Everything the dashboard renders for one organization"""

    organization_id: str
    partition: RevenuePartition
    truth_set: TruthSet
    figures: Dict[str, Figure]
    refcodes: List[RefcodePerformance]
    channels: List[ChannelRollup]
    retention: RetentionMetrics
    generated_at: datetime
    stale: bool = False


@dataclass
class MatcherRunResult:
    """Aggregate outcome of a remote matcher run"""

    total_matched: int
    match_breakdown: Dict[AttributionType, int] = field(default_factory=dict)
    unmatched_count: int = 0

    @property
    def deterministic_count(self) -> int:
        return sum(count for tag, count in self.match_breakdown.items() if tag.is_truth)

    @property
    def heuristic_count(self) -> int:
        return self.total_matched - self.deterministic_count
