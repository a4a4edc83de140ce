"""
Concrete submission adapters, one per generation capability
"""

import base64
import posixpath
import random
from typing import Any, Dict, Iterable, Optional
from urllib.parse import urlparse

from genstudio.core.config import Settings
from genstudio.core.exceptions import ValidationError
from genstudio.core.http_client import ReplicateClient
from .base_provider import (
    BaseSubmissionAdapter,
    ProviderCapability,
    first_url,
    register_adapter,
)
from .types import EmptyOutputPolicy, InlineOutput, JobOutput, JobRequest, StreamOutput

DEFAULT_IMAGE_MODELS = (
    "black-forest-labs/flux-schnell",
    "black-forest-labs/flux-1.1-pro",
)

NEGATIVE_PROMPT = "low quality, bad anatomy, bad hands, cropped, worst quality"

SUPPORTED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/webp", "image/gif"}


def _is_media_reference(value: str) -> bool:
    return value.startswith(("data:", "http://", "https://"))


class ImageGenerationAdapter(BaseSubmissionAdapter):
    """Text-to-image with an allow-listed Flux model.

    The prediction is only created here; callers poll its status themselves.
    """

    capability = ProviderCapability.IMAGE_GENERATION
    empty_output_policy = EmptyOutputPolicy.FAIL

    def __init__(
        self,
        client: ReplicateClient,
        allowed_models: Optional[Iterable[str]] = None,
        max_attempts: Optional[int] = None,
    ):
        super().__init__(client, max_attempts)
        self.allowed_models = tuple(allowed_models or DEFAULT_IMAGE_MODELS)

    @classmethod
    def from_settings(cls, client: ReplicateClient, settings: Settings) -> "ImageGenerationAdapter":
        return cls(client, allowed_models=settings.IMAGE_MODELS)

    def validate(self, request: JobRequest) -> None:
        if not request.prompt or not request.prompt.strip():
            raise ValidationError("No prompt provided")
        if not request.model or request.model not in self.allowed_models:
            raise ValidationError("Invalid model selected")

    def model_for(self, request: JobRequest) -> Optional[str]:
        return request.model

    def build_input(self, request: JobRequest) -> Dict[str, Any]:
        payload = {
            "prompt": request.prompt,
            "aspect_ratio": "16:9",
            "num_inference_steps": 4,
            "negative_prompt": NEGATIVE_PROMPT,
            "output_format": "png",
        }
        if request.seed is not None:
            payload["seed"] = request.seed
        return payload

    def resolve_output(self, raw_output: Any) -> Optional[JobOutput]:
        url = first_url(raw_output)
        return InlineOutput(url) if url else None

    def output_for(self, payload: Dict[str, Any]) -> Optional[JobOutput]:
        output = self.resolve_output(payload.get("output"))
        if output is not None:
            return output
        # Some finished predictions only expose the file through their stream URL
        urls = payload.get("urls")
        if isinstance(urls, dict):
            return self.resolve_output(urls.get("stream"))
        return None


class _StreamedVideoAdapter(BaseSubmissionAdapter):
    """Adapters whose finished output is fetched and stored locally"""

    filename_prefix = "output"
    default_suffix = ".mp4"

    def resolve_output(self, raw_output: Any) -> Optional[JobOutput]:
        url = first_url(raw_output)
        if not url or url.startswith("data:"):
            return None

        suffix = posixpath.splitext(urlparse(url).path)[1] or self.default_suffix
        return StreamOutput(
            open_stream=lambda: self.client.iter_bytes(url),
            filename_prefix=self.filename_prefix,
            suffix=suffix,
            source=url,
        )


class ImageAnimationAdapter(_StreamedVideoAdapter):
    """Animates a still image into a short clip (image-to-video)"""

    capability = ProviderCapability.IMAGE_ANIMATION
    model = "minimax/video-01-live"
    filename_prefix = "live2d-animation"

    def validate(self, request: JobRequest) -> None:
        if not request.media:
            raise ValidationError("Image is required")
        if not _is_media_reference(request.media):
            raise ValidationError("Image must be a data URI or an http(s) URL")

    def build_input(self, request: JobRequest) -> Dict[str, Any]:
        seed = request.seed if request.seed is not None else random.randint(0, 999999)
        return {
            "first_frame_image": request.media,
            "seed": seed,
            "motion_type": "live",
            "motion_speed": 1,
            "prompt": (request.prompt or "").strip() or "natural movement",
            "prompt_optimizer": True,
        }


class AudioDubbingAdapter(_StreamedVideoAdapter):
    """Generates a soundtrack for a video from a text prompt"""

    capability = ProviderCapability.AUDIO_DUBBING
    version = "4b9f801a167b1f6cc2db6ba7ffdeb307630bf411841d4e8300e63ca992de0be9"
    filename_prefix = "soundtovideo"

    def validate(self, request: JobRequest) -> None:
        if not request.media or not request.prompt or not request.prompt.strip():
            raise ValidationError("Video and prompt are required")
        if not _is_media_reference(request.media):
            raise ValidationError("Video must be a data URI or an http(s) URL")

    def build_input(self, request: JobRequest) -> Dict[str, Any]:
        return {"video": request.media, "prompt": request.prompt}


class BackgroundRemovalAdapter(BaseSubmissionAdapter):
    """Removes the background from an uploaded image.

    Submitted and polled inside a single request, with a 20 poll ceiling. A
    success without output is reported as a success with no reference.
    """

    capability = ProviderCapability.BACKGROUND_REMOVAL
    version = "fb8af171cfa1616ddcf1242c093f9c46bcada5ad4cf6f2fbe8b81b330ec5c003"
    empty_output_policy = EmptyOutputPolicy.SUCCEED
    default_max_attempts = 20

    @classmethod
    def from_settings(cls, client: ReplicateClient, settings: Settings) -> "BackgroundRemovalAdapter":
        return cls(client, max_attempts=settings.BACKGROUND_REMOVAL_MAX_ATTEMPTS)

    def validate(self, request: JobRequest) -> None:
        if not request.media_bytes and not request.media:
            raise ValidationError("No image file provided")
        if request.media_bytes and request.media_type not in SUPPORTED_IMAGE_TYPES:
            raise ValidationError("Unsupported image type")
        if request.media and not _is_media_reference(request.media):
            raise ValidationError("Image must be a data URI or an http(s) URL")

    def build_input(self, request: JobRequest) -> Dict[str, Any]:
        if request.media_bytes:
            encoded = base64.b64encode(request.media_bytes).decode("ascii")
            image = f"data:{request.media_type};base64,{encoded}"
        else:
            image = request.media
        return {"image": image}

    def resolve_output(self, raw_output: Any) -> Optional[JobOutput]:
        url = first_url(raw_output)
        return InlineOutput(url) if url else None


register_adapter("image", ImageGenerationAdapter)
register_adapter("animation", ImageAnimationAdapter)
register_adapter("soundtovideo", AudioDubbingAdapter)
register_adapter("remove-background", BackgroundRemovalAdapter)
