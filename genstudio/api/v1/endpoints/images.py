from fastapi import APIRouter, Depends, status

from genstudio.schemas.job import ImageGenerationRequest, JobResponse
from genstudio.services.generation.orchestrator import GenerationOrchestrator, get_orchestrator
from genstudio.services.generation.types import JobRequest

router = APIRouter()


@router.post("", response_model=JobResponse, status_code=status.HTTP_201_CREATED)
async def create_image(
    body: ImageGenerationRequest,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator)
):
    """
    Start an image generation job. The caller polls `GET /images/{id}`.
    """
    snapshot = await orchestrator.submit(
        "image",
        JobRequest(prompt=body.prompt, model=body.model, seed=body.seed)
    )
    return snapshot.to_dict()


@router.get("/{job_id}", response_model=JobResponse)
async def get_image(
    job_id: str,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator)
):
    snapshot = await orchestrator.status("image", job_id)
    return snapshot.to_dict()
