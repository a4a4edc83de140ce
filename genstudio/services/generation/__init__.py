"""
Generation Services Package

Submission adapters for each Replicate-backed capability, the job poller that
tracks predictions to a terminal state, and local storage for streamed results.
"""

from .types import (
    EmptyOutputPolicy,
    Failed,
    InlineOutput,
    JobOutcome,
    JobRequest,
    JobSnapshot,
    JobStatus,
    StreamOutput,
    Succeeded,
)
from .storage import MediaStorage
from .poller import JobPoller
from .base_provider import BaseSubmissionAdapter, ProviderCapability
from .providers import (
    ImageGenerationAdapter,
    ImageAnimationAdapter,
    AudioDubbingAdapter,
    BackgroundRemovalAdapter,
)
from .orchestrator import GenerationOrchestrator

__all__ = [
    "EmptyOutputPolicy",
    "Failed",
    "InlineOutput",
    "JobOutcome",
    "JobRequest",
    "JobSnapshot",
    "JobStatus",
    "StreamOutput",
    "Succeeded",
    "MediaStorage",
    "JobPoller",
    "BaseSubmissionAdapter",
    "ProviderCapability",
    "ImageGenerationAdapter",
    "ImageAnimationAdapter",
    "AudioDubbingAdapter",
    "BackgroundRemovalAdapter",
    "GenerationOrchestrator",
]
