"""Unit tests for channel detection"""

import pytest

from attribution_gateway.domain.channels import EMAIL, META, OTHER, SMS, UNATTRIBUTED, detect_channel


@pytest.mark.parametrize(
    "refcode,channel",
    [
        ("jp421", META),
        ("th_oct", META),
        ("FB_winter", META),
        ("ig_story", META),
        ("txt_gotv", SMS),
        ("sms_gotv", SMS),
        ("text_blast", SMS),
        ("em_oct", EMAIL),
        ("newsletter_1", EMAIL),
        ("mail_list", EMAIL),
        ("website", OTHER),
        ("", UNATTRIBUTED),
        ("   ", UNATTRIBUTED),
        (None, UNATTRIBUTED),
    ],
)
def test_detect_channel(refcode, channel):
    assert detect_channel(refcode) == channel
