from .job import (
    ImageGenerationRequest, AnimationRequest, SoundToVideoRequest,
    JobResponse, JobErrorResponse
)
