"""Unit tests for the suggestion generator"""

from decimal import Decimal

import pytest

from attribution_gateway.domain.models import MatchType, RefcodeAggregate, Transaction
from attribution_gateway.domain.suggestions import (
    EMAIL_CAMPAIGN,
    META_CAMPAIGN,
    SMS_CAMPAIGN,
    UNKNOWN_CAMPAIGN,
    aggregate_refcodes,
    confirmation_payload,
    generate_reason,
    generate_suggestions,
    infer_campaign,
    infer_match_type,
)


def _txn(refcode, amount_cents, txn_id="t"):
    return Transaction(transaction_id=txn_id, amount_cents=amount_cents, refcode=refcode)


@pytest.mark.parametrize(
    "refcode,campaign,match_type",
    [
        ("fb_winter_push", META_CAMPAIGN, MatchType.PATTERN),
        ("META_gotv", META_CAMPAIGN, MatchType.PATTERN),
        ("facebook_lookalike", META_CAMPAIGN, MatchType.PATTERN),
        ("winterfb", META_CAMPAIGN, MatchType.FUZZY),
        ("sms_gotv", SMS_CAMPAIGN, MatchType.PATTERN),
        ("textblast", SMS_CAMPAIGN, MatchType.FUZZY),
        ("email_oct", EMAIL_CAMPAIGN, MatchType.FUZZY),
        ("em_oct", EMAIL_CAMPAIGN, MatchType.FUZZY),
        ("xyz123", UNKNOWN_CAMPAIGN, MatchType.FUZZY),
    ],
)
def test_campaign_and_match_type_inference(refcode, campaign, match_type):
    assert infer_campaign(refcode) == campaign
    assert infer_match_type(refcode) == match_type


def test_reasons():
    assert generate_reason("fb_push") == "Refcode contains Meta/Facebook identifier"
    assert generate_reason("sms_gotv") == "Refcode indicates SMS channel"
    assert generate_reason("email_oct") == "Refcode indicates email channel"
    assert generate_reason("xyz123") == "Pattern-based suggestion"


def test_high_revenue_meta_refcode_is_suggested():
    """fb_winter_push with $250 against a $100 threshold"""
    suggestions = generate_suggestions([_txn("fb_winter_push", 25000)], existing_refcodes=[], min_revenue_cents=10000)

    assert len(suggestions) == 1
    assert suggestions[0].refcode == "fb_winter_push"
    assert suggestions[0].suggested_campaign == META_CAMPAIGN
    assert suggestions[0].match_type == MatchType.PATTERN
    assert suggestions[0].revenue_cents == 25000


def test_low_revenue_refcode_is_excluded():
    """xyz123 with $50 against a $100 threshold"""
    assert generate_suggestions([_txn("xyz123", 5000)], existing_refcodes=[], min_revenue_cents=10000) == []


def test_threshold_is_strictly_greater():
    assert generate_suggestions([_txn("xyz", 10000)], [], min_revenue_cents=10000) == []
    assert len(generate_suggestions([_txn("xyz", 10001)], [], min_revenue_cents=10000)) == 1


def test_revenue_is_summed_across_transactions():
    transactions = [_txn("Split_Code", 6000, "1"), _txn("split_code", 6000, "2")]

    suggestions = generate_suggestions(transactions, [], min_revenue_cents=10000)

    assert [s.refcode for s in suggestions] == ["split_code"]
    assert suggestions[0].revenue_cents == 12000
    assert suggestions[0].transaction_count == 2


def test_mapped_refcodes_are_excluded_case_insensitively():
    """Any mapping, truth or heuristic, removes the refcode from suggestions"""
    transactions = [_txn("sms_gotv", 50000, "1"), _txn("fb_new", 50000, "2")]

    suggestions = generate_suggestions(transactions, existing_refcodes=["SMS_GOTV"], min_revenue_cents=10000)

    assert [s.refcode for s in suggestions] == ["fb_new"]


def test_missing_refcodes_are_never_suggested():
    assert generate_suggestions([_txn(None, 90000), _txn("  ", 90000)], [], min_revenue_cents=0) == []


def test_ranked_by_revenue_and_limited():
    transactions = [_txn(f"code_{i:02d}", 20000 + i * 100, str(i)) for i in range(15)]

    suggestions = generate_suggestions(transactions, [], min_revenue_cents=10000, limit=10)

    assert len(suggestions) == 10
    assert suggestions[0].refcode == "code_14"
    revenues = [s.revenue_cents for s in suggestions]
    assert revenues == sorted(revenues, reverse=True)


def test_ties_are_broken_by_refcode():
    transactions = [_txn("zeta", 20000, "1"), _txn("alpha", 20000, "2")]
    assert [s.refcode for s in generate_suggestions(transactions, [], min_revenue_cents=0)] == ["alpha", "zeta"]


def test_aggregate_refcodes_skips_missing():
    groups = aggregate_refcodes([_txn("a", 100, "1"), _txn(None, 100, "2"), _txn("A", 50, "3")])

    assert set(groups) == {"a"}
    assert groups["a"].revenue_cents == 150
    assert groups["a"].transaction_count == 2


def test_confirmation_payload_is_manual_confirmed():
    aggregate = RefcodeAggregate(refcode="fb_winter_push", revenue_cents=25050, transaction_count=3)

    payload = confirmation_payload("org_1", aggregate, META_CAMPAIGN, "Refcode contains Meta/Facebook identifier")

    assert payload["attribution_type"] == "manual_confirmed"
    assert payload["is_deterministic"] is False
    assert payload["is_auto_matched"] is False
    assert payload["utm_source"] == "facebook"
    assert payload["utm_campaign"] == META_CAMPAIGN
    assert payload["match_reason"] == "Manually confirmed: Refcode contains Meta/Facebook identifier"
    assert Decimal(payload["attributed_revenue"]) == Decimal("250.50")
    assert payload["attributed_transactions"] == 3


@pytest.mark.parametrize(
    "campaign,source",
    [(META_CAMPAIGN, "facebook"), (SMS_CAMPAIGN, "sms"), (EMAIL_CAMPAIGN, "manual"), (UNKNOWN_CAMPAIGN, "manual")],
)
def test_confirmation_payload_source(campaign, source):
    payload = confirmation_payload("org_1", RefcodeAggregate(refcode="x"), campaign, "reason")
    assert payload["utm_source"] == source
