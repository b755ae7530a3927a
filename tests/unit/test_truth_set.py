"""Unit tests for truth-set extraction"""

from datetime import datetime, timezone
from attribution_gateway.domain.models import AttributionMapping, AttributionType
from attribution_gateway.domain.truth import active_mappings, extract_truth_set


def test_extract_truth_set_splits_by_type(mapping_factory):
    """Truth = deterministic_url_refcode + manual_confirmed; the rest is heuristic"""
    mappings = [
        mapping_factory("url_code", AttributionType.DETERMINISTIC_URL_REFCODE),
        mapping_factory("manual_code", AttributionType.MANUAL_CONFIRMED),
        mapping_factory("legacy_code", AttributionType.DETERMINISTIC_REFCODE),
        mapping_factory("partial_code", AttributionType.HEURISTIC_PARTIAL_URL),
        mapping_factory("pattern_code", AttributionType.HEURISTIC_PATTERN),
        mapping_factory("fuzzy_code", AttributionType.HEURISTIC_FUZZY),
    ]

    truth_set = extract_truth_set(mappings)

    assert truth_set.truth_refcodes == {"url_code", "manual_code"}
    assert truth_set.heuristic_refcodes == {"legacy_code", "partial_code", "pattern_code", "fuzzy_code"}
    assert truth_set.truth_count == 2
    assert truth_set.heuristic_count == 4


def test_extract_truth_set_lowercases_and_trims():
    """Refcodes are keyed case-insensitively"""
    mapping = AttributionMapping(
        mapping_id="1",
        organization_id="org_1",
        refcode="  META_Fall24 ",
        source=None,
        attribution_type=AttributionType.DETERMINISTIC_URL_REFCODE,
    )
    assert extract_truth_set([mapping]).truth_refcodes == {"meta_fall24"}


def test_extract_truth_set_skips_empty_refcodes(mapping_factory):
    """Mappings without a refcode cannot partition revenue and are not counted"""
    mappings = [
        mapping_factory("", AttributionType.MANUAL_CONFIRMED),
        mapping_factory("   ", AttributionType.HEURISTIC_FUZZY),
        mapping_factory("real", AttributionType.HEURISTIC_FUZZY),
    ]

    truth_set = extract_truth_set(mappings)

    assert truth_set.truth_count == 0
    assert truth_set.heuristic_count == 1
    assert truth_set.truth_refcodes == frozenset()


def test_counts_add_up_to_mappings_with_refcode(mapping_factory):
    """truth_count + heuristic_count == mappings with a refcode"""
    mappings = [
        mapping_factory("a", AttributionType.MANUAL_CONFIRMED),
        mapping_factory("a", AttributionType.HEURISTIC_PATTERN, mapping_id="dup"),
        mapping_factory("b", AttributionType.HEURISTIC_FUZZY),
        mapping_factory("", AttributionType.HEURISTIC_FUZZY),
    ]

    truth_set = extract_truth_set(mappings)

    assert truth_set.truth_count + truth_set.heuristic_count == 3


def test_duplicate_refcodes_reported_as_conflicts(mapping_factory):
    """A refcode with two active mappings is flagged, not merged silently"""
    mappings = [
        mapping_factory("shared", AttributionType.HEURISTIC_PATTERN, mapping_id="old"),
        mapping_factory("shared", AttributionType.MANUAL_CONFIRMED, mapping_id="new"),
        mapping_factory("solo", AttributionType.HEURISTIC_FUZZY),
    ]

    truth_set = extract_truth_set(mappings)

    assert truth_set.conflicting_refcodes == {"shared"}
    assert "shared" in truth_set.truth_refcodes


def test_active_mappings_drops_superseded(mapping_factory):
    """Superseded rows never reach extraction"""
    current = mapping_factory("code", AttributionType.MANUAL_CONFIRMED, mapping_id="new")
    old = AttributionMapping(
        mapping_id="old",
        organization_id="org_1",
        refcode="code",
        source=None,
        attribution_type=AttributionType.HEURISTIC_PATTERN,
        superseded_at=datetime(2024, 11, 1, tzinfo=timezone.utc),
        superseded_by="new",
    )

    assert active_mappings([old, current]) == [current]
    assert extract_truth_set(active_mappings([old, current])).heuristic_count == 0
