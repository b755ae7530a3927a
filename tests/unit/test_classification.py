"""Unit tests for attribution type classification"""

import pytest
from attribution_gateway.domain.classification import classify_breakdown_key, classify_mapping
from attribution_gateway.domain.models import AttributionType


@pytest.mark.parametrize("tag", [t.value for t in AttributionType])
def test_classify_explicit_known_tag(tag):
    """Known tags are returned verbatim"""
    assert classify_mapping({"attribution_type": tag}) == AttributionType(tag)


def test_classify_explicit_tag_beats_legacy_flag():
    """Explicit tag wins over is_deterministic"""
    raw = {"attribution_type": "heuristic_pattern", "is_deterministic": True}
    assert classify_mapping(raw) == AttributionType.HEURISTIC_PATTERN


def test_classify_legacy_deterministic_flag():
    """Legacy rows without a tag fall back to deterministic_refcode"""
    assert classify_mapping({"is_deterministic": True}) == AttributionType.DETERMINISTIC_REFCODE


def test_classify_legacy_flag_must_be_true():
    """Truthy non-boolean flags are not trusted"""
    assert classify_mapping({"is_deterministic": "yes"}) == AttributionType.HEURISTIC_FUZZY


@pytest.mark.parametrize(
    "raw",
    [
        {},
        {"attribution_type": "url_exact"},  # unknown tag
        {"attribution_type": "DETERMINISTIC_URL_REFCODE"},  # wrong case
        {"attribution_type": 1},
        {"attribution_type": None, "is_deterministic": None},
        None,
        "deterministic_url_refcode",
        ["manual_confirmed"],
    ],
)
def test_classify_fails_closed(raw):
    """Unknown or malformed input maps to the lowest-trust tag"""
    assert classify_mapping(raw) == AttributionType.HEURISTIC_FUZZY


def test_classify_is_idempotent():
    """Same input, same tag, every time"""
    raw = {"attribution_type": "manual_confirmed", "is_deterministic": False}
    assert classify_mapping(raw) == classify_mapping(raw) == AttributionType.MANUAL_CONFIRMED


def test_truth_types():
    """Only URL-proven and human-confirmed tags are truth"""
    truth = {t for t in AttributionType if t.is_truth}
    assert truth == {AttributionType.DETERMINISTIC_URL_REFCODE, AttributionType.MANUAL_CONFIRMED}
    assert not AttributionType.DETERMINISTIC_REFCODE.is_truth


def test_classify_breakdown_keys():
    """Matcher breakdown labels map onto the enumeration"""
    assert classify_breakdown_key("deterministic_url_exact") == AttributionType.DETERMINISTIC_URL_REFCODE
    assert classify_breakdown_key("url_partial") == AttributionType.HEURISTIC_PARTIAL_URL
    assert classify_breakdown_key("campaign_pattern") == AttributionType.HEURISTIC_PATTERN
    assert classify_breakdown_key("fuzzy") == AttributionType.HEURISTIC_FUZZY
    assert classify_breakdown_key("manual_confirmed") == AttributionType.MANUAL_CONFIRMED
    assert classify_breakdown_key("mystery") == AttributionType.HEURISTIC_FUZZY
