import logging
import mimetypes
import posixpath
import re
import time
from typing import Optional
from urllib.parse import urlparse

from fastapi import APIRouter, Depends, Query
from fastapi.responses import FileResponse, StreamingResponse
from starlette.background import BackgroundTask

from genstudio.core.exceptions import DownloadError, ProviderError, ValidationError
from genstudio.services.generation.orchestrator import GenerationOrchestrator, get_orchestrator

logger = logging.getLogger(__name__)

router = APIRouter()

_PREFIX_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def _attachment_name(prefix: str, url: str, content_type: Optional[str]) -> str:
    ext = posixpath.splitext(urlparse(url).path)[1]
    if not ext and content_type:
        ext = mimetypes.guess_extension(content_type.split(";")[0].strip()) or ""
    return f"{prefix}-{int(time.time() * 1000)}{ext}"


@router.get("/download")
async def download(
    url: Optional[str] = Query(None, description="Output reference to download"),
    prefix: str = Query("download", description="Prefix for the attachment filename"),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator)
):
    """
    Send a result as an attachment.

    Local `/media/...` references are served from storage; remote URLs are
    streamed through.
    """
    if not url:
        raise ValidationError("URL is required")
    if not _PREFIX_PATTERN.match(prefix):
        raise ValidationError("Invalid filename prefix")

    storage = orchestrator.storage
    if storage.owns(url):
        path = storage.resolve(url)
        if path is None:
            raise DownloadError("Media not found")
        media_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return FileResponse(
            path,
            media_type=media_type,
            filename=_attachment_name(prefix, url, media_type),
            headers={"Cache-Control": "no-cache"},
        )

    if not url.startswith(("http://", "https://")):
        raise ValidationError("Unsupported media reference")

    logger.info(f"Downloading {url}")
    try:
        response = await orchestrator.client.open_stream(url, accept="video/*,image/*;q=0.9,*/*;q=0.8")
    except ProviderError as e:
        logger.error(f"Download of {url} failed: {e.message}")
        raise DownloadError() from e

    content_type = response.headers.get("content-type") or "application/octet-stream"
    filename = _attachment_name(prefix, url, content_type)
    return StreamingResponse(
        response.aiter_bytes(),
        media_type=content_type,
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Cache-Control": "no-cache",
        },
        background=BackgroundTask(response.aclose),
    )
