from fastapi import APIRouter, Depends, Request

from genstudio.api.v1.responses import outcome_response
from genstudio.schemas.job import JobErrorResponse, JobResponse, SoundToVideoRequest
from genstudio.services.generation.orchestrator import GenerationOrchestrator, get_orchestrator
from genstudio.services.generation.types import JobRequest

router = APIRouter()


@router.post("", status_code=201, response_model=JobResponse, responses={500: {"model": JobErrorResponse}})
async def create_sound_to_video(
    body: SoundToVideoRequest,
    request: Request,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator)
):
    """
    Generate a soundtrack for a video from a prompt and wait for the result
    """
    outcome = await orchestrator.run(
        "soundtovideo",
        JobRequest(prompt=body.prompt, media=body.video_file),
        abandoned=request.is_disconnected,
    )
    return outcome_response(outcome)
