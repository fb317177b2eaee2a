import re
from collections.abc import Callable, Iterable
from typing import Any

Extractor = Callable[[Any], str | None]

VIDEO_MIME_TYPE = "video/mp4"
IMAGE_MIME_TYPE = "image/png"
DEFAULT_FACE_COUNT = 1

_LEADING_INT = re.compile(r"^[+-]?[0-9]+")


def _non_empty_str(value: Any) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None


def _first_prediction(data: Any) -> Any:
    if not isinstance(data, dict):
        return None
    predictions = data.get("predictions")
    if isinstance(predictions, list) and predictions:
        return predictions[0]
    return None


def _first_candidate_parts(data: Any) -> list[Any]:
    if not isinstance(data, dict):
        return []
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return []
    candidate = candidates[0]
    content = candidate.get("content") if isinstance(candidate, dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    return parts if isinstance(parts, list) else []


def prediction_as_string(data: Any) -> str | None:
    return _non_empty_str(_first_prediction(data))


def prediction_bytes(data: Any) -> str | None:
    pred = _first_prediction(data)
    if isinstance(pred, dict):
        return _non_empty_str(pred.get("bytesBase64Encoded"))
    return None


def prediction_video_bytes(data: Any) -> str | None:
    pred = _first_prediction(data)
    video = pred.get("video") if isinstance(pred, dict) else None
    if isinstance(video, dict):
        return _non_empty_str(video.get("bytesBase64Encoded"))
    return None


def candidate_inline_data(data: Any) -> str | None:
    for part in _first_candidate_parts(data):
        inline = part.get("inlineData") if isinstance(part, dict) else None
        if isinstance(inline, dict):
            found = _non_empty_str(inline.get("data"))
            if found:
                return found
    return None


# Probe order matters: the first extractor returning a value wins.
VIDEO_EXTRACTORS: tuple[Extractor, ...] = (
    prediction_as_string,
    prediction_bytes,
    prediction_video_bytes,
)
IMAGE_EXTRACTORS: tuple[Extractor, ...] = VIDEO_EXTRACTORS + (candidate_inline_data,)


def first_match(data: Any, extractors: Iterable[Extractor]) -> str | None:
    for extractor in extractors:
        found = extractor(data)
        if found:
            return found
    return None


def extract_video_base64(data: Any) -> str | None:
    return first_match(data, VIDEO_EXTRACTORS)


def extract_image_base64(data: Any) -> str | None:
    return first_match(data, IMAGE_EXTRACTORS)


def to_data_uri(mime_type: str, base64_payload: str) -> str:
    return f"data:{mime_type};base64,{base64_payload}"


def strip_data_uri(image: str) -> str:
    """Return the base64 payload of a data URI, or the input if it is bare base64."""
    if "," in image:
        return image.split(",")[1]
    return image


def upstream_error_message(data: Any) -> str | None:
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict):
        return _non_empty_str(error.get("message"))
    return None


def upstream_error_code(data: Any) -> Any:
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict):
        return error.get("code")
    return None


def extract_count_text(data: Any) -> str:
    parts = _first_candidate_parts(data)
    text = parts[0].get("text") if parts and isinstance(parts[0], dict) else None
    return _non_empty_str(text) or str(DEFAULT_FACE_COUNT)


def parse_face_count(text: str) -> int:
    """Parse the model's answer, e.g. ``"**2**"`` -> 2.

    Only a leading integer is read (``"3 faces"`` -> 3); anything unparseable
    falls back to one face.
    """
    clean = text.replace("*", "").strip()
    match = _LEADING_INT.match(clean)
    if not match:
        return DEFAULT_FACE_COUNT
    return int(match.group(0))
