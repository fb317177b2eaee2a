import time
import uuid
from pathlib import Path
from typing import Any

from fastapi import HTTPException
from pydantic import ValidationError

from ..config import (
    FACE_COUNT_MODEL_ID,
    GcpCredentials,
    debug_enabled,
    load_gcp_credentials,
    request_log_path,
)
from ..logging_utils import flush_request_log, new_request_record, record_error
from ..models import FaceCountRequest, FaceCountResponse
from .response_parsing import (
    DEFAULT_FACE_COUNT,
    extract_count_text,
    parse_face_count,
    strip_data_uri,
)
from .vertex_auth import ServiceAccountTokenProvider
from .vertex_client import VertexAIClient

FACE_COUNT_PROMPT = (
    "Count the number of human faces in this image. "
    "Return ONLY the number (e.g., 1, 2, 3). If none, return 0."
)


def parse_face_count_request(body: bytes) -> FaceCountRequest:
    """An empty body is an empty request; anything else must be a JSON object."""
    if not body.strip():
        return FaceCountRequest()
    return FaceCountRequest.model_validate_json(body)


def build_face_count_payload(image_base64: str) -> dict[str, Any]:
    return {
        "contents": [
            {
                "role": "user",
                "parts": [
                    {"text": FACE_COUNT_PROMPT},
                    {"inlineData": {"mimeType": "image/jpeg", "data": image_base64}},
                ],
            }
        ],
        "generationConfig": {
            "maxOutputTokens": 10,
            "temperature": 0,
            "responseMimeType": "text/plain",
        },
    }


class FaceCountService:
    """Counts faces in a kiosk snapshot.

    Unlike the generation services this one fails open: once the request is
    validated and credentials are present, any failure answers ``count=1`` with
    HTTP 200 so the kiosk flow keeps moving.
    """

    def __init__(
        self,
        client: VertexAIClient | None = None,
        token_provider: ServiceAccountTokenProvider | None = None,
        model_id: str = FACE_COUNT_MODEL_ID,
        log_path: Path | None = None,
    ) -> None:
        self.client = client or VertexAIClient()
        self.token_provider = token_provider or ServiceAccountTokenProvider()
        self.model_id = model_id
        self.log_path = log_path or request_log_path()

    async def count_faces(self, body: bytes) -> FaceCountResponse:
        try:
            payload = parse_face_count_request(body)
        except ValidationError as exc:
            log_record = new_request_record(uuid.uuid4().hex, "detect_people", self.model_id)
            record_error(log_record, "parse_body", type=type(exc).__name__, msg=str(exc)[:500])
            log_record["fallback"] = True
            flush_request_log(self.log_path, log_record, echo=debug_enabled())
            return FaceCountResponse(count=DEFAULT_FACE_COUNT)

        if not payload.image:
            raise HTTPException(status_code=400, detail="Missing image")

        credentials = load_gcp_credentials()
        if credentials is None:
            raise HTTPException(status_code=500, detail="Auth Config Error")

        start_time = time.perf_counter()
        log_record = new_request_record(uuid.uuid4().hex, "detect_people", self.model_id)
        try:
            count = await self._count(payload.image, credentials, log_record)
        except Exception as exc:
            record_error(
                log_record,
                log_record.get("stage", "unexpected"),
                type=type(exc).__name__,
                msg=str(exc),
            )
            log_record["fallback"] = True
            count = DEFAULT_FACE_COUNT
        finally:
            log_record.pop("stage", None)
            flush_request_log(self.log_path, log_record, start_time, echo=debug_enabled())

        return FaceCountResponse(count=count)

    async def _count(
        self,
        image: str,
        credentials: GcpCredentials,
        log_record: dict[str, Any],
    ) -> int:
        log_record["stage"] = "auth"
        access_token = await self.token_provider.fetch_token(credentials)

        log_record["stage"] = "vertex_request"
        result = await self.client.generate_content(
            credentials=credentials,
            access_token=access_token,
            model_id=self.model_id,
            body=build_face_count_payload(strip_data_uri(image)),
        )
        log_record["vertex_http"] = {"status": result.status_code}

        if not result.ok:
            record_error(
                log_record,
                "vertex_call",
                status=result.status_code,
                body_preview=result.body_text[:2000],
            )
            log_record["fallback"] = True
            return DEFAULT_FACE_COUNT

        log_record["stage"] = "parse_count"
        if result.data is None:
            raise ValueError("Vertex AI returned a non-JSON body")
        text = extract_count_text(result.data)
        log_record["model_output_preview"] = text[:200]
        return parse_face_count(text)
