from dataclasses import dataclass
from typing import Any

import httpx

from ..config import GcpCredentials, vertex_timeout_seconds


@dataclass
class VertexResult:
    status_code: int
    body_text: str
    data: Any | None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def build_endpoint(credentials: GcpCredentials, model_id: str, method: str) -> str:
    location = credentials.location
    return (
        f"https://{location}-aiplatform.googleapis.com/v1/projects/{credentials.project_id}"
        f"/locations/{location}/publishers/google/models/{model_id}:{method}"
    )


class VertexAIClient:
    """Single-shot JSON POSTs against Vertex AI publisher model endpoints."""

    def __init__(
        self,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.transport = transport

    async def post(
        self,
        *,
        credentials: GcpCredentials,
        access_token: str,
        model_id: str,
        method: str,
        body: dict[str, Any],
    ) -> VertexResult:
        timeout = self.timeout_seconds or vertex_timeout_seconds()
        async with httpx.AsyncClient(timeout=timeout, transport=self.transport) as client:
            response = await client.post(
                build_endpoint(credentials, model_id, method),
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Content-Type": "application/json; charset=utf-8",
                },
                json=body,
            )

        data: Any | None = None
        try:
            data = response.json()
        except ValueError:
            data = None

        return VertexResult(
            status_code=response.status_code,
            body_text=response.text,
            data=data,
        )

    async def predict(self, **kwargs: Any) -> VertexResult:
        return await self.post(method="predict", **kwargs)

    async def generate_content(self, **kwargs: Any) -> VertexResult:
        return await self.post(method="generateContent", **kwargs)
