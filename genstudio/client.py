"""
Studio client: the thin caller of the local HTTP surface.

Submits jobs the way the web pages do and, for image generation, drives a
``JobPoller`` against ``GET /images/{id}`` until the job is terminal.
"""

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import aiofiles
import httpx

from genstudio.core.exceptions import (
    DownloadError,
    GenStudioException,
    JobNotFoundError,
    ProviderConnectionError,
    ProviderError,
    ValidationError,
)
from genstudio.services.generation.poller import JobPoller
from genstudio.services.generation.types import (
    EmptyOutputPolicy,
    Failed,
    InlineOutput,
    JobOutcome,
    JobSnapshot,
    JobStatus,
    Succeeded,
)

logger = logging.getLogger(__name__)


class StudioClient:
    """Async client for a running GenStudio API"""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        api_prefix: str = "/api/v1",
        interval: float = 1.0,
        max_attempts: Optional[int] = None,
        timeout: float = 600.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.interval = interval
        self.max_attempts = max_attempts
        self.api_prefix = api_prefix.rstrip("/")
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)
        self.pollers: Dict[str, JobPoller] = {}

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def stop(self, job_id: Optional[str] = None) -> None:
        """Stop polling one tracked job, or every tracked job when no id is given."""
        if job_id is not None:
            poller = self.pollers.get(job_id)
            if poller is not None:
                poller.stop()
            return
        for poller in list(self.pollers.values()):
            poller.stop()

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            return await self._client.request(method, f"{self.api_prefix}{path}", **kwargs)
        except httpx.TransportError as e:
            raise ProviderConnectionError(f"Could not reach GenStudio API: {e}") from e

    @staticmethod
    def _raise_for_error(response: httpx.Response) -> None:
        if response.is_success:
            return
        try:
            body = response.json()
        except ValueError:
            body = {}
        message = body.get("error") or body.get("detail") or response.reason_phrase
        if response.status_code == 400:
            raise ValidationError(str(message))
        if response.status_code == 404:
            raise JobNotFoundError(str(message))
        raise ProviderError(str(message), upstream_status=response.status_code)

    @staticmethod
    def _snapshot(data: Dict[str, Any]) -> JobSnapshot:
        try:
            status = JobStatus(data["status"])
            job_id = data["id"]
        except (KeyError, ValueError) as e:
            raise ProviderError(f"Malformed job status: {data!r}") from e
        output = data.get("output")
        return JobSnapshot(
            job_id=job_id,
            status=status,
            output=InlineOutput(output) if status == JobStatus.SUCCEEDED and output else None,
            error=data.get("error"),
            raw=data,
        )

    @staticmethod
    def _outcome(data: Dict[str, Any]) -> JobOutcome:
        job_id = data.get("id") or ""
        if data.get("status") == JobStatus.SUCCEEDED.value:
            return Succeeded(job_id, data.get("output"))
        return Failed(job_id, data.get("error") or "Job failed")

    async def image_status(self, job_id: str) -> JobSnapshot:
        response = await self._send("GET", f"/images/{job_id}")
        self._raise_for_error(response)
        return self._snapshot(response.json())

    async def generate_image(
        self,
        prompt: str,
        model: str,
        seed: Optional[int] = None,
        on_update: Optional[Callable[[JobSnapshot], None]] = None,
    ) -> JobOutcome:
        """Submit an image job and poll it until it is terminal."""
        response = await self._send("POST", "/images", json={"prompt": prompt, "model": model, "seed": seed})
        self._raise_for_error(response)
        initial = self._snapshot(response.json())
        logger.info(f"Image job {initial.job_id} submitted ({initial.status.value})")

        poller = JobPoller(
            self.image_status,
            interval=self.interval,
            max_attempts=self.max_attempts,
            empty_output=EmptyOutputPolicy.FAIL,
            on_update=on_update,
        )
        self.pollers[initial.job_id] = poller
        try:
            return await poller.run(initial)
        finally:
            self.pollers.pop(initial.job_id, None)

    async def _run_to_completion(self, path: str, **kwargs) -> JobOutcome:
        response = await self._send("POST", path, **kwargs)
        try:
            data = response.json()
        except ValueError:
            data = {}
        # A job that ran and failed comes back as a failed outcome, not an error
        if response.is_success or data.get("status") == JobStatus.FAILED.value:
            return self._outcome(data)
        self._raise_for_error(response)
        raise ProviderError("Malformed response from GenStudio API")

    async def animate(self, image: str, motion_prompt: Optional[str] = None,
                      seed: Optional[int] = None) -> JobOutcome:
        return await self._run_to_completion(
            "/animations",
            json={"first_frame_image": image, "motion_prompt": motion_prompt, "seed": seed},
        )

    async def sound_to_video(self, video: str, prompt: str) -> JobOutcome:
        return await self._run_to_completion("/soundtovideo", json={"videoFile": video, "prompt": prompt})

    async def remove_background(self, image: bytes, content_type: str = "image/png",
                                filename: str = "image.png") -> JobOutcome:
        return await self._run_to_completion(
            "/remove-background",
            files={"image": (filename, image, content_type)},
        )

    async def download(self, reference: str, destination: Path, prefix: str = "download") -> Path:
        """Save a result reference to ``destination`` (a directory or a file path)."""
        destination = Path(destination)
        try:
            async with self._client.stream(
                "GET", f"{self.api_prefix}/download", params={"url": reference, "prefix": prefix}
            ) as response:
                if not response.is_success:
                    await response.aread()
                    self._raise_for_error(response)

                if destination.is_dir():
                    destination = destination / _filename_from(response)
                async with aiofiles.open(destination, "wb") as f:
                    async for chunk in response.aiter_bytes():
                        await f.write(chunk)
        except httpx.TransportError as e:
            raise DownloadError(f"Download interrupted: {e}") from e
        except GenStudioException:
            raise
        except OSError as e:
            raise DownloadError(f"Could not write {destination}: {e}") from e

        logger.info(f"Downloaded {reference} to {destination}")
        return destination


def _filename_from(response: httpx.Response) -> str:
    disposition = response.headers.get("content-disposition", "")
    for part in disposition.split(";"):
        part = part.strip()
        if part.startswith("filename="):
            return part[len("filename="):].strip('"')
    return "download"
