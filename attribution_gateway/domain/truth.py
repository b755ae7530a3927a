"""Truth-set extraction - the single place attribution trust is decided"""

import logging
from collections import Counter
from typing import Iterable, List, Sequence

from attribution_gateway.domain.models import AttributionMapping, TruthSet

logger = logging.getLogger(__name__)


def active_mappings(mappings: Iterable[AttributionMapping]) -> List[AttributionMapping]:
    """Drop mappings superseded by a later confirmation"""
    return [m for m in mappings if m.is_active]


def extract_truth_set(mappings: Sequence[AttributionMapping]) -> TruthSet:
    """
    Split mapping refcodes into truth and heuristic sets.

    Truth = deterministic_url_refcode or manual_confirmed. Everything else,
    including the legacy deterministic_refcode tag, counts as heuristic.
    Mappings without a refcode are skipped, so
    truth_count + heuristic_count == number of mappings with a refcode.

    A refcode carried by several mappings may land in both sets; the
    partitioner checks truth first, so truth wins. Such refcodes are
    reported in conflicting_refcodes and logged.
    """
    truth_refcodes = set()
    heuristic_refcodes = set()
    truth_count = 0
    heuristic_count = 0
    seen = Counter()

    for mapping in mappings:
        code = (mapping.refcode or "").strip().lower()
        if not code:
            continue
        seen[code] += 1
        if mapping.is_truth:
            truth_refcodes.add(code)
            truth_count += 1
        else:
            heuristic_refcodes.add(code)
            heuristic_count += 1

    conflicts = frozenset(code for code, count in seen.items() if count > 1)
    if conflicts:
        logger.warning(
            "Refcodes with multiple active mappings",
            extra={"conflict_count": len(conflicts), "refcodes": sorted(conflicts)[:20]},
        )

    return TruthSet(
        truth_refcodes=frozenset(truth_refcodes),
        heuristic_refcodes=frozenset(heuristic_refcodes),
        truth_count=truth_count,
        heuristic_count=heuristic_count,
        conflicting_refcodes=conflicts,
    )
