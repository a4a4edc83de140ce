from fastapi import APIRouter, Depends, Request

from genstudio.api.v1.responses import outcome_response
from genstudio.schemas.job import AnimationRequest, JobErrorResponse, JobResponse
from genstudio.services.generation.orchestrator import GenerationOrchestrator, get_orchestrator
from genstudio.services.generation.types import JobRequest

router = APIRouter()


@router.post("", status_code=201, response_model=JobResponse, responses={500: {"model": JobErrorResponse}})
async def create_animation(
    body: AnimationRequest,
    request: Request,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator)
):
    """
    Animate a still image and wait for the clip.

    The finished video is stored locally, so `output` is a `/media/...` path
    that can be played directly or passed to `/download`.
    """
    outcome = await orchestrator.run(
        "animation",
        JobRequest(media=body.first_frame_image, prompt=body.motion_prompt, seed=body.seed),
        abandoned=request.is_disconnected,
    )
    return outcome_response(outcome)


@router.get("/{job_id}", response_model=JobResponse)
async def get_animation(
    job_id: str,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator)
):
    snapshot = await orchestrator.status("animation", job_id)
    return snapshot.to_dict()
