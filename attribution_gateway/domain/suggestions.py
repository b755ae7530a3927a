"""Campaign suggestions for unmapped, high-revenue refcodes"""

from typing import Dict, Iterable, List, Sequence, Tuple

from attribution_gateway.domain.models import AttributionType, MatchType, RefcodeAggregate, SuggestedMatch, Transaction
from attribution_gateway.utils.money import from_cents

META_CAMPAIGN = "Meta Ads Campaign"
SMS_CAMPAIGN = "SMS Campaign"
EMAIL_CAMPAIGN = "Email Campaign"
UNKNOWN_CAMPAIGN = "Unknown Source"

_META_TOKENS = ("meta", "fb", "facebook")
_META_PREFIXES = ("meta_", "fb_", "facebook_")
_SMS_TOKENS = ("sms", "text")
_SMS_PREFIXES = ("sms_",)
_EMAIL_TOKENS = ("email", "em_")


def _contains_any(code: str, tokens: Tuple[str, ...]) -> bool:
    return any(token in code for token in tokens)


def infer_campaign(refcode: str) -> str:
    code = refcode.lower()
    if _contains_any(code, _META_TOKENS):
        return META_CAMPAIGN
    if _contains_any(code, _SMS_TOKENS):
        return SMS_CAMPAIGN
    if _contains_any(code, _EMAIL_TOKENS):
        return EMAIL_CAMPAIGN
    return UNKNOWN_CAMPAIGN


def infer_match_type(refcode: str) -> MatchType:
    """pattern when the channel token is underscore-delimited, e.g. fb_, sms_"""
    code = refcode.lower()
    campaign = infer_campaign(code)
    if campaign == META_CAMPAIGN and _contains_any(code, _META_PREFIXES):
        return MatchType.PATTERN
    if campaign == SMS_CAMPAIGN and _contains_any(code, _SMS_PREFIXES):
        return MatchType.PATTERN
    return MatchType.FUZZY


def generate_reason(refcode: str) -> str:
    campaign = infer_campaign(refcode)
    if campaign == META_CAMPAIGN:
        return "Refcode contains Meta/Facebook identifier"
    if campaign == SMS_CAMPAIGN:
        return "Refcode indicates SMS channel"
    if campaign == EMAIL_CAMPAIGN:
        return "Refcode indicates email channel"
    return "Pattern-based suggestion"


def aggregate_refcodes(transactions: Iterable[Transaction]) -> Dict[str, RefcodeAggregate]:
    """Group revenue and transaction counts by lower-cased refcode"""
    groups: Dict[str, RefcodeAggregate] = {}
    for txn in transactions:
        if not txn.refcode:
            continue
        code = txn.refcode.strip().lower()
        if not code:
            continue
        group = groups.setdefault(code, RefcodeAggregate(refcode=code))
        group.revenue_cents += txn.amount_cents
        group.transaction_count += 1
    return groups


def suggest_for_refcode(aggregate: RefcodeAggregate) -> SuggestedMatch:
    return SuggestedMatch(
        refcode=aggregate.refcode,
        revenue_cents=aggregate.revenue_cents,
        transaction_count=aggregate.transaction_count,
        suggested_campaign=infer_campaign(aggregate.refcode),
        match_type=infer_match_type(aggregate.refcode),
        reason=generate_reason(aggregate.refcode),
    )


def generate_suggestions(
    transactions: Sequence[Transaction],
    existing_refcodes: Iterable[str],
    min_revenue_cents: int = 10_000,
    limit: int = 10,
) -> List[SuggestedMatch]:
    """
    Rank unmapped refcodes by revenue and guess their campaign.

    Only refcodes with no mapping at all (truth or heuristic) and revenue
    strictly above min_revenue_cents are considered. Results are advisory:
    nothing here writes to the truth set.
    """
    existing = {code.strip().lower() for code in existing_refcodes if code}
    candidates = [
        agg
        for code, agg in aggregate_refcodes(transactions).items()
        if code not in existing and agg.revenue_cents > min_revenue_cents
    ]
    candidates.sort(key=lambda agg: (-agg.revenue_cents, agg.refcode))
    return [suggest_for_refcode(agg) for agg in candidates[: max(limit, 0)]]


def confirmation_payload(
    organization_id: str,
    aggregate: RefcodeAggregate,
    suggested_campaign: str,
    reason: str,
) -> Dict[str, object]:
    """Row for a human-confirmed mapping; the only way a suggestion becomes truth"""
    campaign = suggested_campaign.lower()
    if "meta" in campaign:
        source = "facebook"
    elif "sms" in campaign:
        source = "sms"
    else:
        source = "manual"

    return {
        "organization_id": organization_id,
        "refcode": aggregate.refcode,
        "utm_source": source,
        "utm_campaign": suggested_campaign,
        "match_confidence": 100,
        "is_auto_matched": False,
        "is_deterministic": False,  # human-verified, not URL-proven
        "attribution_type": AttributionType.MANUAL_CONFIRMED.value,
        "match_reason": f"Manually confirmed: {reason}",
        "attributed_revenue": str(from_cents(aggregate.revenue_cents)),
        "attributed_transactions": aggregate.transaction_count,
    }
