from fastapi import status
from fastapi.responses import JSONResponse

from genstudio.services.generation.types import JobOutcome


def outcome_response(outcome: JobOutcome, success_status: int = status.HTTP_201_CREATED) -> JSONResponse:
    """Render a terminal outcome; failures always carry the `error` message."""
    if outcome.succeeded:
        return JSONResponse(status_code=success_status, content=outcome.to_dict())
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=outcome.to_dict(),
    )
