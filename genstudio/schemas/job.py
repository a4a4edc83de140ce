from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class ImageGenerationRequest(BaseModel):
    prompt: Optional[str] = None
    model: Optional[str] = None
    seed: Optional[int] = None


class AnimationRequest(BaseModel):
    first_frame_image: Optional[str] = Field(None, description="Data URI or URL of the first frame")
    motion_prompt: Optional[str] = None
    seed: Optional[int] = None


class SoundToVideoRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt: Optional[str] = None
    video_file: Optional[str] = Field(None, alias="videoFile", description="Data URI or URL of the video")


class JobResponse(BaseModel):
    id: str
    status: str  # starting, processing, succeeded, failed
    output: Optional[str] = None
    error: Optional[str] = None


class JobErrorResponse(BaseModel):
    id: Optional[str] = None
    status: str = "failed"
    error: str
    error_code: Optional[str] = None
