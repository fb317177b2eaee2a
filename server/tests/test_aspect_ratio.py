import pytest

from vertex_media.services.video_service import build_veo_payload, normalize_veo_aspect_ratio


@pytest.mark.parametrize(
    "requested, expected",
    [
        ("3:2", "16:9"),
        ("2:3", "9:16"),
        (None, "9:16"),
        ("", "9:16"),
        ("16:9", "16:9"),
        ("9:16", "9:16"),
        ("1:1", "1:1"),
    ],
)
def test_normalize_veo_aspect_ratio(requested, expected):
    assert normalize_veo_aspect_ratio(requested) == expected


def test_build_veo_payload_requests_single_sample():
    payload = build_veo_payload("wave", "QUJD", "9:16")
    assert payload["parameters"] == {"aspectRatio": "9:16", "sampleCount": 1}
    assert payload["instances"][0]["image"] == {"bytesBase64Encoded": "QUJD"}
