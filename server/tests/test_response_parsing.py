import pytest

from vertex_media.services.response_parsing import (
    IMAGE_EXTRACTORS,
    extract_count_text,
    extract_image_base64,
    extract_video_base64,
    first_match,
    parse_face_count,
    strip_data_uri,
    to_data_uri,
    upstream_error_message,
)


def test_video_bare_string_prediction():
    assert extract_video_base64({"predictions": ["AAAA"]}) == "AAAA"


def test_video_bytes_field():
    assert extract_video_base64({"predictions": [{"bytesBase64Encoded": "BBBB"}]}) == "BBBB"


def test_video_nested_video_field():
    data = {"predictions": [{"video": {"bytesBase64Encoded": "CCCC"}}]}
    assert extract_video_base64(data) == "CCCC"


def test_video_direct_bytes_win_over_nested():
    data = {
        "predictions": [
            {"bytesBase64Encoded": "DIRECT", "video": {"bytesBase64Encoded": "NESTED"}}
        ]
    }
    assert extract_video_base64(data) == "DIRECT"


@pytest.mark.parametrize(
    "data",
    [
        {},
        {"predictions": []},
        {"predictions": [""]},
        {"predictions": [{"mimeType": "video/mp4"}]},
        {"predictions": [{"video": {"gcsUri": "gs://bucket/v.mp4"}}]},
        None,
        ["AAAA"],
    ],
)
def test_video_unrecognised_shapes(data):
    assert extract_video_base64(data) is None


def test_video_ignores_candidate_parts():
    data = {"candidates": [{"content": {"parts": [{"inlineData": {"data": "EEEE"}}]}}]}
    assert extract_video_base64(data) is None


def test_image_first_inline_part_wins():
    data = {
        "candidates": [
            {
                "content": {
                    "role": "model",
                    "parts": [
                        {"text": "Here is your image"},
                        {"inlineData": {"mimeType": "image/png", "data": ""}},
                        {"inlineData": {"mimeType": "image/png", "data": "FIRST"}},
                        {"inlineData": {"mimeType": "image/png", "data": "SECOND"}},
                    ],
                }
            }
        ]
    }
    assert extract_image_base64(data) == "FIRST"


def test_image_prediction_shapes_checked_before_candidates():
    data = {
        "predictions": [{"bytesBase64Encoded": "PRED"}],
        "candidates": [{"content": {"parts": [{"inlineData": {"data": "CAND"}}]}}],
    }
    assert extract_image_base64(data) == "PRED"


def test_image_without_inline_data():
    data = {"candidates": [{"content": {"parts": [{"text": "I cannot draw that"}]}}]}
    assert extract_image_base64(data) is None


def test_first_match_stops_at_first_hit():
    calls = []

    def miss(data):
        calls.append("miss")
        return None

    def hit(data):
        calls.append("hit")
        return "X"

    def never(data):
        calls.append("never")
        return "Y"

    assert first_match({}, (miss, hit, never)) == "X"
    assert calls == ["miss", "hit"]


def test_image_extractor_order_is_fixed():
    assert [fn.__name__ for fn in IMAGE_EXTRACTORS] == [
        "prediction_as_string",
        "prediction_bytes",
        "prediction_video_bytes",
        "candidate_inline_data",
    ]


def test_data_uri_helpers():
    assert to_data_uri("video/mp4", "AAAA") == "data:video/mp4;base64,AAAA"
    assert strip_data_uri("data:image/jpeg;base64,QUJD") == "QUJD"
    assert strip_data_uri("QUJD") == "QUJD"


def test_upstream_error_message():
    assert upstream_error_message({"error": {"code": 403, "message": "denied"}}) == "denied"
    assert upstream_error_message({"error": "flat string"}) is None
    assert upstream_error_message(None) is None


@pytest.mark.parametrize(
    "text, expected",
    [
        ("**2**", 2),
        ("3", 3),
        (" 4 \n", 4),
        ("5 faces", 5),
        ("0", 0),
        ("none", 1),
        ("", 1),
        ("***", 1),
        ("\u0663", 1),
    ],
)
def test_parse_face_count(text, expected):
    assert parse_face_count(text) == expected


def test_extract_count_text_defaults_to_one():
    assert extract_count_text({}) == "1"
    assert extract_count_text({"candidates": [{"content": {"parts": [{}]}}]}) == "1"
    data = {"candidates": [{"content": {"parts": [{"text": "**2**"}]}}]}
    assert extract_count_text(data) == "**2**"
