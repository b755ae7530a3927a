"""Provenance-labelled rollups consumed by the dashboard"""

from collections import defaultdict
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Sequence

from attribution_gateway.domain.channels import detect_channel
from attribution_gateway.domain.models import (
    AttributionMapping,
    AttributionReport,
    AttributionType,
    ChannelRollup,
    Figure,
    Provenance,
    RefcodePerformance,
    RetentionMetrics,
    RevenuePartition,
    Transaction,
    TruthSet,
)
from attribution_gateway.domain.partition import partition_revenue
from attribution_gateway.domain.truth import active_mappings, extract_truth_set
from attribution_gateway.utils.date_utils import within_window


def _percent(part: int, whole: int) -> float:
    return round(part * 100 / whole, 2) if whole > 0 else 0.0


def filter_window(
    transactions: Sequence[Transaction],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[Transaction]:
    return [t for t in transactions if within_window(t.transaction_date, start, end)]


def refcode_provenance(refcode: Optional[str], truth_set: TruthSet) -> Provenance:
    refcode = refcode.strip().lower() if refcode else None
    if refcode and refcode in truth_set.truth_refcodes:
        return Provenance.TRUTH_ONLY
    if refcode and refcode in truth_set.heuristic_refcodes:
        return Provenance.HEURISTIC_ONLY
    return Provenance.UNATTRIBUTED


def _mapping_types(mappings: Sequence[AttributionMapping]) -> Dict[str, AttributionType]:
    """One tag per refcode, truth tags taking priority over heuristic ones"""
    types: Dict[str, AttributionType] = {}
    for mapping in mappings:
        current = types.get(mapping.refcode)
        if current is None or (mapping.is_truth and not current.is_truth):
            types[mapping.refcode] = mapping.attribution_type
    return types


def build_refcode_performance(
    transactions: Sequence[Transaction],
    mappings: Sequence[AttributionMapping],
    truth_set: TruthSet,
) -> List[RefcodePerformance]:
    """Per-refcode donation stats, highest revenue first"""
    revenue: Dict[str, int] = defaultdict(int)
    counts: Dict[str, int] = defaultdict(int)
    recurring: Dict[str, int] = defaultdict(int)
    donors: Dict[str, set] = defaultdict(set)

    for txn in transactions:
        code = txn.refcode.strip().lower() if txn.refcode else None
        if not code:
            continue
        revenue[code] += txn.amount_cents
        counts[code] += 1
        if txn.is_recurring:
            recurring[code] += 1
        if txn.donor_id:
            donors[code].add(txn.donor_id)

    types = _mapping_types(mappings)
    rows = [
        RefcodePerformance(
            refcode=code,
            channel=detect_channel(code),
            donation_count=counts[code],
            unique_donors=len(donors[code]),
            total_revenue_cents=revenue[code],
            avg_gift_cents=revenue[code] // counts[code],
            recurring_rate=_percent(recurring[code], counts[code]),
            attribution_type=types.get(code),
            provenance=refcode_provenance(code, truth_set),
        )
        for code in counts
    ]
    rows.sort(key=lambda r: (-r.total_revenue_cents, r.refcode))
    return rows


def build_channel_rollups(transactions: Sequence[Transaction]) -> List[ChannelRollup]:
    revenue: Dict[str, int] = defaultdict(int)
    counts: Dict[str, int] = defaultdict(int)
    for txn in transactions:
        channel = detect_channel(txn.refcode)
        revenue[channel] += txn.amount_cents
        counts[channel] += 1
    rollups = [
        ChannelRollup(channel=channel, revenue_cents=revenue[channel], donation_count=counts[channel])
        for channel in counts
    ]
    rollups.sort(key=lambda r: (-r.revenue_cents, r.channel))
    return rollups


def build_retention(transactions: Sequence[Transaction]) -> RetentionMetrics:
    """Repeat and recurring rates over donors with a known identity"""
    donations: Dict[str, int] = defaultdict(int)
    recurring_donors = set()
    for txn in transactions:
        if not txn.donor_id:
            continue
        donations[txn.donor_id] += 1
        if txn.is_recurring:
            recurring_donors.add(txn.donor_id)

    total = len(donations)
    repeaters = sum(1 for count in donations.values() if count > 1)
    return RetentionMetrics(
        total_donors=total,
        repeat_rate=_percent(repeaters, total),
        recurring_rate=_percent(len(recurring_donors), total),
    )


def build_figures(partition: RevenuePartition, truth_set: TruthSet) -> Dict[str, Figure]:
    return {
        "total_revenue_cents": Figure(partition.total_revenue_cents, Provenance.ALL_TRANSACTIONS),
        "matched_revenue_cents": Figure(partition.matched_revenue_cents, Provenance.TRUTH_ONLY),
        "match_rate_percent": Figure(partition.match_rate_percent, Provenance.TRUTH_ONLY),
        "heuristic_revenue_cents": Figure(partition.heuristic_revenue_cents, Provenance.HEURISTIC_ONLY),
        "attributed_revenue_with_heuristics_cents": Figure(
            partition.matched_revenue_cents + partition.heuristic_revenue_cents,
            Provenance.INCLUDES_HEURISTIC,
        ),
        "unmatched_revenue_cents": Figure(partition.unmatched_revenue_cents, Provenance.UNATTRIBUTED),
        "truth_mapping_count": Figure(truth_set.truth_count, Provenance.TRUTH_ONLY),
        "heuristic_mapping_count": Figure(truth_set.heuristic_count, Provenance.HEURISTIC_ONLY),
        "transaction_count": Figure(partition.transaction_count, Provenance.ALL_TRANSACTIONS),
        "rejected_transaction_count": Figure(partition.rejected_transactions, Provenance.ALL_TRANSACTIONS),
    }


def build_attribution_report(
    organization_id: str,
    transactions: Sequence[Transaction],
    mappings: Sequence[AttributionMapping],
    rejected_transactions: int = 0,
    generated_at: Optional[datetime] = None,
) -> AttributionReport:
    """
    Main entry point: compute every dashboard figure from one snapshot.

    The truth set is extracted once here and shared by the partition, the
    figures and the refcode table so they cannot disagree.
    """
    current = active_mappings(mappings)
    truth_set = extract_truth_set(current)
    partition = partition_revenue(transactions, truth_set, rejected_transactions)

    return AttributionReport(
        organization_id=organization_id,
        partition=partition,
        truth_set=truth_set,
        figures=build_figures(partition, truth_set),
        refcodes=build_refcode_performance(transactions, current, truth_set),
        channels=build_channel_rollups(transactions),
        retention=build_retention(transactions),
        generated_at=generated_at or datetime.now(timezone.utc),
    )
