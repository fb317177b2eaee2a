import time
import uuid
from pathlib import Path
from typing import Any

from fastapi import HTTPException

from ..config import (
    VEO_MODEL_ID,
    GcpCredentials,
    debug_enabled,
    load_gcp_credentials,
    request_log_path,
)
from ..logging_utils import flush_request_log, new_request_record, record_error
from ..models import VideoRequest, VideoResponse
from .response_parsing import (
    VIDEO_MIME_TYPE,
    extract_video_base64,
    strip_data_uri,
    to_data_uri,
    upstream_error_message,
)
from .vertex_auth import ServiceAccountTokenProvider
from .vertex_client import VertexAIClient

DEFAULT_VEO_ASPECT_RATIO = "9:16"
# Veo only renders 16:9 or 9:16; map the kiosk's photo ratios onto those.
VEO_ASPECT_RATIO_MAP = {
    "3:2": "16:9",
    "2:3": "9:16",
}

NO_VIDEO_MESSAGE = "Model returned success but no video data found."


def normalize_veo_aspect_ratio(aspect_ratio: str | None) -> str:
    if not aspect_ratio:
        return DEFAULT_VEO_ASPECT_RATIO
    return VEO_ASPECT_RATIO_MAP.get(aspect_ratio, aspect_ratio)


def build_veo_payload(prompt: str, image_base64: str, aspect_ratio: str) -> dict[str, Any]:
    return {
        "instances": [
            {
                "prompt": prompt,
                "image": {"bytesBase64Encoded": image_base64},
            }
        ],
        "parameters": {
            "aspectRatio": aspect_ratio,
            "sampleCount": 1,
        },
    }


class VideoGenerationService:
    def __init__(
        self,
        client: VertexAIClient | None = None,
        token_provider: ServiceAccountTokenProvider | None = None,
        model_id: str = VEO_MODEL_ID,
        log_path: Path | None = None,
    ) -> None:
        self.client = client or VertexAIClient()
        self.token_provider = token_provider or ServiceAccountTokenProvider()
        self.model_id = model_id
        self.log_path = log_path or request_log_path()

    async def generate(self, payload: VideoRequest | None) -> VideoResponse:
        payload = payload or VideoRequest()
        if not payload.image or not payload.prompt:
            raise HTTPException(status_code=400, detail="Missing image or prompt")

        credentials = load_gcp_credentials()
        if credentials is None:
            raise HTTPException(
                status_code=500, detail="Server Auth Config Error: Missing GCP Credentials"
            )

        start_time = time.perf_counter()
        log_record = new_request_record(uuid.uuid4().hex, "generate_video", self.model_id)
        try:
            return await self._generate(payload, credentials, log_record)
        except HTTPException:
            raise
        except Exception as exc:
            if "error" not in log_record:
                record_error(log_record, "unexpected", type=type(exc).__name__, msg=str(exc))
            raise HTTPException(status_code=500, detail=str(exc) or "Internal Server Error")
        finally:
            flush_request_log(self.log_path, log_record, start_time, echo=debug_enabled())

    async def _generate(
        self,
        payload: VideoRequest,
        credentials: GcpCredentials,
        log_record: dict[str, Any],
    ) -> VideoResponse:
        try:
            access_token = await self.token_provider.fetch_token(credentials)
        except Exception as exc:
            record_error(log_record, "auth", type=type(exc).__name__, msg=str(exc))
            raise

        aspect_ratio = normalize_veo_aspect_ratio(payload.aspect_ratio)
        log_record["aspect_ratio"] = aspect_ratio
        body = build_veo_payload(payload.prompt, strip_data_uri(payload.image), aspect_ratio)

        try:
            result = await self.client.predict(
                credentials=credentials,
                access_token=access_token,
                model_id=self.model_id,
                body=body,
            )
        except Exception as exc:
            record_error(log_record, "vertex_request", type=type(exc).__name__, msg=str(exc))
            raise
        log_record["vertex_http"] = {"status": result.status_code}

        if not result.ok:
            record_error(
                log_record,
                "vertex_call",
                status=result.status_code,
                body_preview=result.body_text[:2000],
            )
            message = upstream_error_message(result.data) or "Vertex AI Veo Generation Failed."
            raise HTTPException(status_code=500, detail=message)

        video_base64 = extract_video_base64(result.data)
        if not video_base64:
            record_error(log_record, "extract_video", msg=NO_VIDEO_MESSAGE)
            raise HTTPException(status_code=500, detail=NO_VIDEO_MESSAGE)

        return VideoResponse(video=to_data_uri(VIDEO_MIME_TYPE, video_base64))
