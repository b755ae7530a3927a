"""Attribution type classification for raw mapping records"""

import logging
from typing import Any, Mapping

from attribution_gateway.domain.models import AttributionType

logger = logging.getLogger(__name__)

_KNOWN_TAGS = {tag.value: tag for tag in AttributionType}

# Match-type labels the remote matcher reports in its run breakdown
_MATCHER_KEYS = {
    "deterministic_url_exact": AttributionType.DETERMINISTIC_URL_REFCODE,
    "url_exact": AttributionType.DETERMINISTIC_URL_REFCODE,
    "deterministic": AttributionType.DETERMINISTIC_URL_REFCODE,
    "url_partial": AttributionType.HEURISTIC_PARTIAL_URL,
    "heuristic_partial": AttributionType.HEURISTIC_PARTIAL_URL,
    "campaign_pattern": AttributionType.HEURISTIC_PATTERN,
    "pattern": AttributionType.HEURISTIC_PATTERN,
    "fuzzy": AttributionType.HEURISTIC_FUZZY,
}


def classify_mapping(raw: Any) -> AttributionType:
    """
    Assign a classification tag to a raw mapping record.

    Priority:
    1. Explicit attribution_type that is a known tag
    2. Legacy is_deterministic flag -> deterministic_refcode
    3. heuristic_fuzzy

    Never raises. Anything unreadable lands on the lowest-trust tag so a bad
    record can never be promoted into the truth set.
    """
    if not isinstance(raw, Mapping):
        return AttributionType.HEURISTIC_FUZZY

    explicit = raw.get("attribution_type")
    if isinstance(explicit, AttributionType):
        return explicit
    if isinstance(explicit, str) and explicit in _KNOWN_TAGS:
        return _KNOWN_TAGS[explicit]

    if raw.get("is_deterministic") is True:
        return AttributionType.DETERMINISTIC_REFCODE

    return AttributionType.HEURISTIC_FUZZY


def classify_breakdown_key(key: Any) -> AttributionType:
    """Map a matcher-run breakdown key onto the tag enumeration (fail closed)"""
    if isinstance(key, str):
        normalized = key.strip().lower()
        if normalized in _KNOWN_TAGS:
            return _KNOWN_TAGS[normalized]
        if normalized in _MATCHER_KEYS:
            return _MATCHER_KEYS[normalized]
    logger.warning("Unknown matcher breakdown key", extra={"breakdown_key": str(key)})
    return AttributionType.HEURISTIC_FUZZY
