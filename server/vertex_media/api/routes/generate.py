from fastapi import APIRouter, Depends

from ...models import ImageRequest, ImageResponse, VideoRequest, VideoResponse
from ...services.image_service import ImageGenerationService
from ...services.video_service import VideoGenerationService

router = APIRouter()


def get_video_service() -> VideoGenerationService:
    return VideoGenerationService()


def get_image_service() -> ImageGenerationService:
    return ImageGenerationService()


@router.post("/generate-video", response_model=VideoResponse)
async def generate_video(
    payload: VideoRequest | None = None,
    service: VideoGenerationService = Depends(get_video_service),
) -> VideoResponse:
    return await service.generate(payload)


@router.post("/generate-image", response_model=ImageResponse)
async def generate_image(
    payload: ImageRequest | None = None,
    service: ImageGenerationService = Depends(get_image_service),
) -> ImageResponse:
    return await service.generate(payload)
