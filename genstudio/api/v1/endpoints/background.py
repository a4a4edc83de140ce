from typing import Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile

from genstudio.api.v1.responses import outcome_response
from genstudio.schemas.job import JobErrorResponse, JobResponse
from genstudio.services.generation.orchestrator import GenerationOrchestrator, get_orchestrator
from genstudio.services.generation.types import JobRequest

router = APIRouter()


@router.post("", response_model=JobResponse, responses={500: {"model": JobErrorResponse}})
async def remove_background(
    request: Request,
    image: Optional[UploadFile] = File(None),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator)
):
    """
    Remove the background of an uploaded image.

    Submission and polling both happen inside this request.
    """
    data = await image.read() if image is not None else None
    outcome = await orchestrator.run(
        "remove-background",
        JobRequest(media_bytes=data, media_type=image.content_type if image else None),
        abandoned=request.is_disconnected,
    )
    return outcome_response(outcome, success_status=200)
