"""Refcode prefix rules for channel detection"""

from typing import Optional, Tuple

META = "meta"
SMS = "sms"
EMAIL = "email"
OTHER = "other"
UNATTRIBUTED = "unattributed"

# Checked in order; first matching prefix wins
PREFIX_RULES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    (META, ("jp", "th", "meta_", "fb_", "ig_", "facebook_", "instagram_")),
    (SMS, ("txt", "sms", "text_")),
    (EMAIL, ("em", "email", "mail_", "newsletter")),
)


def detect_channel(refcode: Optional[str]) -> str:
    """Infer the acquisition channel from a refcode prefix"""
    if not refcode:
        return UNATTRIBUTED
    code = refcode.strip().lower()
    if not code:
        return UNATTRIBUTED
    for channel, prefixes in PREFIX_RULES:
        if code.startswith(prefixes):
            return channel
    return OTHER
