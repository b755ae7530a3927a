"""Boundary parsing of loosely-typed store records into domain models"""

import logging
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from attribution_gateway.domain.classification import classify_mapping
from attribution_gateway.domain.models import AttributionMapping, Transaction
from attribution_gateway.utils.date_utils import parse_timestamp
from attribution_gateway.utils.money import to_cents

logger = logging.getLogger(__name__)


def normalize_refcode(value: Any) -> Optional[str]:
    """Trim and lower-case a refcode; None for empty or non-string input"""
    if not isinstance(value, str):
        return None
    code = value.strip().lower()
    return code or None


def _optional_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


def _optional_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError, OverflowError):
        return None


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_mapping(raw: Any, organization_id: Optional[str] = None) -> Optional[AttributionMapping]:
    """
    Normalize a raw campaign_attribution row.

    Returns None when the row has no usable refcode; such rows cannot
    partition transactions and are dropped at the boundary.
    """
    if not isinstance(raw, Mapping):
        return None
    refcode = normalize_refcode(raw.get("refcode"))
    if refcode is None:
        return None

    source = (
        _optional_str(raw.get("source"))
        or _optional_str(raw.get("meta_campaign_id"))
        or _optional_str(raw.get("utm_source"))
    )

    return AttributionMapping(
        mapping_id=str(raw.get("id", "")),
        organization_id=str(raw.get("organization_id") or organization_id or ""),
        refcode=refcode,
        source=source,
        attribution_type=classify_mapping(raw),
        confidence=_optional_float(raw.get("match_confidence")),
        attributed_revenue_cents=to_cents(raw.get("attributed_revenue")),
        attributed_transactions=_optional_int(raw.get("attributed_transactions")),
        match_reason=_optional_str(raw.get("match_reason")),
        created_at=parse_timestamp(raw.get("created_at")),
        superseded_at=parse_timestamp(raw.get("superseded_at")),
        superseded_by=_optional_str(raw.get("superseded_by")),
    )


def parse_transaction(raw: Any) -> Optional[Transaction]:
    """
    Normalize a raw transaction row.

    Returns None when the amount is missing, non-numeric or negative. A
    malformed refcode is not a rejection: the transaction is kept with no
    refcode and lands in unmatched revenue.
    """
    if not isinstance(raw, Mapping):
        return None
    amount_cents = to_cents(raw.get("amount"))
    if amount_cents is None or amount_cents < 0:
        return None

    donor = _optional_str(raw.get("donor_id")) or _optional_str(raw.get("donor_email"))

    return Transaction(
        transaction_id=str(raw.get("id", raw.get("transaction_id", ""))),
        amount_cents=amount_cents,
        refcode=normalize_refcode(raw.get("refcode")),
        transaction_date=parse_timestamp(raw.get("transaction_date")),
        donor_id=donor.lower() if donor else None,
        is_recurring=raw.get("is_recurring") is True,
    )


def parse_transactions(rows: Iterable[Any]) -> Tuple[List[Transaction], int]:
    """Parse many rows; returns (transactions, rejected_count)"""
    transactions: List[Transaction] = []
    rejected = 0
    for row in rows:
        txn = parse_transaction(row)
        if txn is None:
            rejected += 1
            continue
        transactions.append(txn)
    if rejected:
        logger.warning("Rejected malformed transactions", extra={"rejected_count": rejected})
    return transactions, rejected


def parse_mappings(rows: Iterable[Any], organization_id: Optional[str] = None) -> List[AttributionMapping]:
    """Parse many rows, dropping those without a refcode"""
    mappings = []
    for row in rows:
        mapping = parse_mapping(row, organization_id)
        if mapping is not None:
            mappings.append(mapping)
    return mappings
