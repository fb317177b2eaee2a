from pydantic import BaseModel, ConfigDict, Field


class MediaRequest(BaseModel):
    # Presence is checked by each handler so missing fields map to 400, not 422.
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    image: str | None = None
    prompt: str | None = None
    aspect_ratio: str | None = Field(default=None, alias="aspectRatio")


class VideoRequest(MediaRequest):
    pass


class ImageRequest(MediaRequest):
    model_key: str | None = Field(default=None, alias="modelKey")


class FaceCountRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    image: str | None = None


class VideoResponse(BaseModel):
    video: str


class ImageResponse(BaseModel):
    image: str


class FaceCountResponse(BaseModel):
    count: int


class ErrorResponse(BaseModel):
    error: str
