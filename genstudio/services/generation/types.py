"""
Job data model: requests, statuses, snapshots, tagged outputs and outcomes
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Callable, Dict, Optional, Union

from genstudio.core.exceptions import GenStudioException


class JobStatus(str, Enum):
    """Lifecycle of a remote job"""
    STARTING = "starting"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.SUCCEEDED, JobStatus.FAILED)

    @property
    def rank(self) -> int:
        return _STATUS_RANK[self]


_STATUS_RANK = {
    JobStatus.STARTING: 0,
    JobStatus.PROCESSING: 1,
    JobStatus.SUCCEEDED: 2,
    JobStatus.FAILED: 2,
}


class EmptyOutputPolicy(str, Enum):
    """What a terminal success without any output means for an adapter"""
    FAIL = "fail"
    SUCCEED = "succeed"


@dataclass(frozen=True)
class JobRequest:
    """Caller-supplied input for one submission"""
    prompt: Optional[str] = None
    model: Optional[str] = None
    media: Optional[str] = None
    media_bytes: Optional[bytes] = field(default=None, repr=False)
    media_type: Optional[str] = None
    seed: Optional[int] = None
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class InlineOutput:
    """Output that is already a usable URL or path"""
    url: str


@dataclass(frozen=True)
class StreamOutput:
    """Output that must be drained and persisted before it can be served.

    ``open_stream`` is called once by the poller; nothing is fetched before that.
    """
    open_stream: Callable[[], AsyncIterator[bytes]]
    filename_prefix: str = "output"
    suffix: str = ""
    source: Optional[str] = None


JobOutput = Union[InlineOutput, StreamOutput]


@dataclass
class JobSnapshot:
    """One observation of a job's state"""
    job_id: str
    status: JobStatus
    output: Optional[JobOutput] = None
    error: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        output = None
        if isinstance(self.output, InlineOutput):
            output = self.output.url
        elif isinstance(self.output, StreamOutput):
            output = self.output.source
        return {
            "id": self.job_id,
            "status": self.status.value,
            "output": output,
            "error": self.error,
        }


@dataclass
class Succeeded:
    """Terminal success; ``reference`` is a stable URL or storage path"""
    job_id: str
    reference: Optional[str]
    snapshot: Optional[JobSnapshot] = None

    succeeded = True

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.job_id, "status": JobStatus.SUCCEEDED.value, "output": self.reference}


@dataclass
class Failed:
    """Terminal failure carrying a human readable reason"""
    job_id: str
    reason: str
    error: Optional[GenStudioException] = None
    snapshot: Optional[JobSnapshot] = None

    succeeded = False

    @property
    def error_code(self) -> str:
        return self.error.error_code if self.error else "JOB_FAILED"

    @property
    def status_code(self) -> int:
        return self.error.status_code if self.error else 500

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.job_id,
            "status": JobStatus.FAILED.value,
            "error": self.reason,
            "error_code": self.error_code,
        }


JobOutcome = Union[Succeeded, Failed]
