import time
import uuid
from pathlib import Path
from typing import Any

from fastapi import HTTPException

from ..config import (
    DEFAULT_IMAGE_MODEL_ID,
    IMAGE_MODEL_ALIASES,
    GcpCredentials,
    debug_enabled,
    load_gcp_credentials,
    request_log_path,
)
from ..logging_utils import flush_request_log, new_request_record, record_error
from ..models import ImageRequest, ImageResponse
from .response_parsing import (
    IMAGE_MIME_TYPE,
    extract_image_base64,
    strip_data_uri,
    to_data_uri,
    upstream_error_code,
    upstream_error_message,
)
from .vertex_auth import ServiceAccountTokenProvider
from .vertex_client import VertexAIClient

INPUT_IMAGE_MIME_TYPE = "image/jpeg"
NO_IMAGE_MESSAGE = (
    "Model finished but returned no image data. Ensure your prompt requests an image."
)


def resolve_image_model_id(model_key: str | None) -> str:
    if not model_key:
        return DEFAULT_IMAGE_MODEL_ID
    return IMAGE_MODEL_ALIASES.get(model_key, DEFAULT_IMAGE_MODEL_ID)


def build_gemini_image_payload(
    prompt: str,
    image_base64: str | None = None,
    aspect_ratio: str | None = None,
) -> dict[str, Any]:
    parts: list[dict[str, Any]] = [{"text": prompt}]
    if image_base64:
        parts.append({"inlineData": {"mimeType": INPUT_IMAGE_MIME_TYPE, "data": image_base64}})

    generation_config: dict[str, Any] = {"responseMimeType": "image/jpeg"}
    if aspect_ratio:
        generation_config["imageConfig"] = {"aspectRatio": aspect_ratio}

    return {
        "contents": [{"role": "user", "parts": parts}],
        "generationConfig": generation_config,
    }


class ImageGenerationService:
    def __init__(
        self,
        client: VertexAIClient | None = None,
        token_provider: ServiceAccountTokenProvider | None = None,
        log_path: Path | None = None,
    ) -> None:
        self.client = client or VertexAIClient()
        self.token_provider = token_provider or ServiceAccountTokenProvider()
        self.log_path = log_path or request_log_path()

    async def generate(self, payload: ImageRequest | None) -> ImageResponse:
        payload = payload or ImageRequest()
        if not payload.prompt:
            raise HTTPException(status_code=400, detail="Missing prompt")

        credentials = load_gcp_credentials()
        if credentials is None:
            raise HTTPException(
                status_code=500, detail="Server Auth Config Error: Check GCP Credentials"
            )

        model_id = resolve_image_model_id(payload.model_key)
        start_time = time.perf_counter()
        log_record = new_request_record(uuid.uuid4().hex, "generate_image", model_id)
        log_record["model_key"] = payload.model_key
        try:
            return await self._generate(payload, model_id, credentials, log_record)
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
        payload: ImageRequest,
        model_id: str,
        credentials: GcpCredentials,
        log_record: dict[str, Any],
    ) -> ImageResponse:
        try:
            access_token = await self.token_provider.fetch_token(credentials)
        except Exception as exc:
            record_error(log_record, "auth", type=type(exc).__name__, msg=str(exc))
            raise

        image_base64 = strip_data_uri(payload.image) if payload.image else None
        body = build_gemini_image_payload(payload.prompt, image_base64, payload.aspect_ratio)

        try:
            result = await self.client.generate_content(
                credentials=credentials,
                access_token=access_token,
                model_id=model_id,
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
            message = upstream_error_message(result.data) or (
                f"Vertex AI Error: {upstream_error_code(result.data) or result.status_code}"
            )
            raise HTTPException(status_code=500, detail=message)

        image_result = extract_image_base64(result.data)
        if not image_result:
            record_error(
                log_record,
                "extract_image",
                msg=NO_IMAGE_MESSAGE,
                body_preview=result.body_text[:2000],
            )
            raise HTTPException(status_code=500, detail=NO_IMAGE_MESSAGE)

        return ImageResponse(image=to_data_uri(IMAGE_MIME_TYPE, image_result))
