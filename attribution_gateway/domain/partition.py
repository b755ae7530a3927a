"""Revenue partitioning against the truth set"""

from typing import Sequence

from attribution_gateway.domain.models import RevenuePartition, Transaction, TruthSet


def match_rate(matched_cents: int, total_cents: int) -> float:
    """Matched share of total revenue as a percentage; 0.0 when there is no revenue"""
    if total_cents <= 0:
        return 0.0
    rate = matched_cents * 100 / total_cents
    return round(min(max(rate, 0.0), 100.0), 2)


def partition_revenue(
    transactions: Sequence[Transaction],
    truth_set: TruthSet,
    rejected_transactions: int = 0,
) -> RevenuePartition:
    """
    Split transaction revenue into matched, heuristic and unmatched buckets.

    Order of checks per transaction:
    1. refcode in truth set -> matched
    2. refcode in heuristic set -> heuristic
    3. otherwise (including no refcode) -> unmatched

    Sums are integer cents so the three buckets always add up to the total.
    """
    matched = 0
    heuristic = 0
    unmatched = 0

    for txn in transactions:
        code = txn.refcode.strip().lower() if txn.refcode else None
        if code and code in truth_set.truth_refcodes:
            matched += txn.amount_cents
        elif code and code in truth_set.heuristic_refcodes:
            heuristic += txn.amount_cents
        else:
            unmatched += txn.amount_cents

    return RevenuePartition(
        matched_revenue_cents=matched,
        heuristic_revenue_cents=heuristic,
        unmatched_revenue_cents=unmatched,
        match_rate_percent=match_rate(matched, matched + heuristic + unmatched),
        transaction_count=len(transactions),
        rejected_transactions=rejected_transactions,
    )
