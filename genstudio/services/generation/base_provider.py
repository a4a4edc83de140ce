"""
Base submission adapter for Replicate-backed generation capabilities
"""

import abc
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Type

from genstudio.core.config import Settings
from genstudio.core.exceptions import ProviderError
from genstudio.core.http_client import ReplicateClient
from .types import EmptyOutputPolicy, JobOutput, JobRequest, JobSnapshot, JobStatus

logger = logging.getLogger(__name__)


class ProviderCapability(Enum):
    """Capabilities an adapter can provide"""
    IMAGE_GENERATION = "image_generation"
    IMAGE_ANIMATION = "image_animation"
    AUDIO_DUBBING = "audio_dubbing"
    BACKGROUND_REMOVAL = "background_removal"


# Replicate prediction statuses
STATUS_MAP = {
    "starting": JobStatus.STARTING,
    "processing": JobStatus.PROCESSING,
    "succeeded": JobStatus.SUCCEEDED,
    "failed": JobStatus.FAILED,
    "canceled": JobStatus.FAILED,
    "aborted": JobStatus.FAILED,
}


def first_url(raw: Any) -> Optional[str]:
    """Pick the first URL-shaped value out of a prediction output."""
    if isinstance(raw, str):
        if raw.startswith(("http://", "https://", "data:")):
            return raw
        return None
    if isinstance(raw, (list, tuple)):
        for item in raw:
            url = first_url(item)
            if url:
                return url
    return None


class BaseSubmissionAdapter(abc.ABC):
    """Translates a ``JobRequest`` into one prediction and reads its status back.

    Subclasses declare which model (or pinned version) they call, how to
    validate and shape the input, and how a finished prediction's output maps
    onto a ``JobOutput``.
    """

    capability: ProviderCapability
    model: Optional[str] = None
    version: Optional[str] = None
    empty_output_policy: EmptyOutputPolicy = EmptyOutputPolicy.FAIL
    default_max_attempts: Optional[int] = None

    def __init__(self, client: ReplicateClient, max_attempts: Optional[int] = None):
        self.client = client
        self.max_attempts = max_attempts if max_attempts is not None else self.default_max_attempts

    @classmethod
    def from_settings(cls, client: ReplicateClient, settings: Settings) -> "BaseSubmissionAdapter":
        return cls(client)

    @abc.abstractmethod
    def validate(self, request: JobRequest) -> None:
        """Raise ValidationError for requests that must never reach the provider"""

    @abc.abstractmethod
    def build_input(self, request: JobRequest) -> Dict[str, Any]:
        """Provider input for a validated request"""

    @abc.abstractmethod
    def resolve_output(self, raw_output: Any) -> Optional[JobOutput]:
        """Tagged output for a succeeded prediction, or None if unrecognized"""

    def model_for(self, request: JobRequest) -> Optional[str]:
        return self.model

    def input_for(self, request: JobRequest) -> Dict[str, Any]:
        """Adapter input with the caller's extra params layered on top."""
        return {**self.build_input(request), **request.params}

    def output_for(self, payload: Dict[str, Any]) -> Optional[JobOutput]:
        return self.resolve_output(payload.get("output"))

    async def submit(self, request: JobRequest) -> JobSnapshot:
        """Validate, create the prediction once, and return its first snapshot."""
        self.validate(request)
        self.client.require_credentials()

        model = self.model_for(request)
        logger.info(f"Creating {self.capability.value} prediction with {model or self.version}")
        payload = await self.client.create_prediction(
            self.input_for(request), model=model, version=self.version
        )
        snapshot = self.parse(payload)
        logger.info(f"Prediction {snapshot.job_id} created ({snapshot.status.value})")
        return snapshot

    async def fetch(self, job_id: str) -> JobSnapshot:
        return self.parse(await self.client.get_prediction(job_id))

    def parse(self, payload: Dict[str, Any]) -> JobSnapshot:
        job_id = payload.get("id")
        if not job_id:
            raise ProviderError("Provider response is missing the prediction id")

        raw_status = payload.get("status")
        status = STATUS_MAP.get(raw_status)
        if status is None:
            raise ProviderError(f"Unrecognized prediction status: {raw_status!r}")

        error = payload.get("error")
        if error is not None and not isinstance(error, str):
            error = str(error)
        if raw_status == "canceled" and not error:
            error = "Prediction was canceled"

        # Partial output while processing is ignored until the job is terminal
        output = None
        if status == JobStatus.SUCCEEDED:
            output = self.output_for(payload)

        return JobSnapshot(job_id=job_id, status=status, output=output, error=error, raw=payload)

    def get_capabilities(self) -> List[ProviderCapability]:
        return [self.capability]


# Adapter registry for lookup by route/kind
ADAPTER_REGISTRY: Dict[str, Type[BaseSubmissionAdapter]] = {}


def register_adapter(name: str, adapter_class: Type[BaseSubmissionAdapter]):
    """Register a new adapter in the registry"""
    ADAPTER_REGISTRY[name] = adapter_class


def get_adapter_class(name: str) -> Type[BaseSubmissionAdapter]:
    if name not in ADAPTER_REGISTRY:
        raise ValueError(f"Unknown adapter: {name}")
    return ADAPTER_REGISTRY[name]
