from fastapi import APIRouter, Depends, Request

from ...models import FaceCountResponse
from ...services.face_count_service import FaceCountService

router = APIRouter()


def get_face_count_service() -> FaceCountService:
    return FaceCountService()


# The body is decoded inside the service so malformed input fails open like
# every other face-count failure.
@router.post("/detect-people", response_model=FaceCountResponse)
async def detect_people(
    request: Request,
    service: FaceCountService = Depends(get_face_count_service),
) -> FaceCountResponse:
    return await service.count_faces(await request.body())
