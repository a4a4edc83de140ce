"""
Job poller: drives one submitted job from its initial status to a terminal outcome.

The loop is cooperative (wait, then fetch) and runs inside the caller's task.
It stops issuing fetches as soon as a terminal status is seen, when ``stop()``
is called, or when the ``abandoned`` predicate reports that nobody is waiting
for the result any more.
"""

import asyncio
import logging
import time
from contextlib import aclosing
from typing import Awaitable, Callable, Optional

from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from genstudio.core.exceptions import (
    ConfigurationError,
    GenStudioException,
    JobCancelledError,
    JobFailedError,
    JobTimeoutError,
    ProviderConnectionError,
    UnexpectedOutputError,
)
from .storage import MediaStorage
from .types import (
    EmptyOutputPolicy,
    Failed,
    InlineOutput,
    JobOutcome,
    JobSnapshot,
    JobStatus,
    StreamOutput,
    Succeeded,
)

logger = logging.getLogger(__name__)

FetchStatus = Callable[[str], Awaitable[JobSnapshot]]


class JobPoller:
    """Polls ``fetch(job_id)`` every ``interval`` seconds until the job is terminal.

    Args:
        fetch: coroutine returning the current ``JobSnapshot`` for a handle
        storage: where streamed outputs are persisted; required only when a
            job can finish with a ``StreamOutput``
        interval: seconds to wait before each fetch
        max_attempts: fetch ceiling; ``None`` polls until terminal
        timeout: optional wall-clock budget in seconds
        empty_output: what a success without output means
        fetch_retries: extra attempts for a fetch that failed to reach the
            provider at all; non-2xx responses are never retried
        retry_max_wait: cap for the exponential backoff between those attempts
        retry_multiplier: base of the exponential backoff
        on_update: called with every snapshot the poller accepts
        abandoned: coroutine checked before each fetch; ``True`` ends polling

    A poller tracks a single job; create a new one per submission.
    """

    def __init__(
        self,
        fetch: FetchStatus,
        storage: Optional[MediaStorage] = None,
        *,
        interval: float = 1.0,
        max_attempts: Optional[int] = None,
        timeout: Optional[float] = None,
        empty_output: EmptyOutputPolicy = EmptyOutputPolicy.FAIL,
        fetch_retries: int = 0,
        retry_max_wait: float = 10.0,
        retry_multiplier: float = 1.0,
        on_update: Optional[Callable[[JobSnapshot], None]] = None,
        abandoned: Optional[Callable[[], Awaitable[bool]]] = None,
    ):
        if max_attempts is not None and max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.fetch = fetch
        self.storage = storage
        self.interval = interval
        self.max_attempts = max_attempts
        self.timeout = timeout
        self.empty_output = empty_output
        self.fetch_retries = fetch_retries
        self.retry_max_wait = retry_max_wait
        self.retry_multiplier = retry_multiplier
        self.on_update = on_update
        self.abandoned = abandoned

        self.attempts = 0
        self.latest: Optional[JobSnapshot] = None
        self.outcome: Optional[JobOutcome] = None
        self._stopped = asyncio.Event()

    def stop(self) -> None:
        """Ask the loop to stop; takes effect before the next fetch."""
        self._stopped.set()

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    async def run(self, initial: JobSnapshot) -> JobOutcome:
        """Poll from ``initial`` until a terminal outcome and return it."""
        if self.outcome is not None:
            return self.outcome

        job_id = initial.job_id
        current = initial
        self._accept(current)
        started = time.monotonic()

        while not current.status.is_terminal:
            if self.max_attempts is not None and self.attempts >= self.max_attempts:
                logger.warning(f"Job {job_id} still {current.status.value} after {self.attempts} polls")
                return self._finish(Failed(job_id, "timeout", JobTimeoutError(), current))

            if await self._wait() or await self._is_abandoned():
                logger.info(f"Stopped polling job {job_id} while {current.status.value}")
                return self._finish(Failed(job_id, "cancelled", JobCancelledError(), current))

            if self.timeout is not None and time.monotonic() - started >= self.timeout:
                logger.warning(f"Job {job_id} exceeded its {self.timeout}s polling budget")
                return self._finish(Failed(job_id, "timeout", JobTimeoutError(), current))

            try:
                snapshot = await self._fetch(job_id)
            except GenStudioException as e:
                logger.error(f"Status check for job {job_id} failed: {e.message}")
                return self._finish(Failed(job_id, e.message, e, current))
            self.attempts += 1

            if snapshot.status.rank < current.status.rank:
                logger.warning(
                    f"Ignoring out-of-order status {snapshot.status.value} for job {job_id} "
                    f"(already {current.status.value})"
                )
                continue

            if snapshot.status != current.status:
                logger.info(f"Job {job_id}: {current.status.value} -> {snapshot.status.value}")
            current = snapshot
            self._accept(current)

        return self._finish(await self._complete(current))

    def _accept(self, snapshot: JobSnapshot) -> None:
        self.latest = snapshot
        if self.on_update is not None:
            self.on_update(snapshot)

    def _finish(self, outcome: JobOutcome) -> JobOutcome:
        self.outcome = outcome
        return outcome

    async def _wait(self) -> bool:
        """Sleep for one interval; True when stop() was called meanwhile."""
        if self.interval <= 0:
            await asyncio.sleep(0)
            return self.stopped
        try:
            await asyncio.wait_for(self._stopped.wait(), timeout=self.interval)
        except asyncio.TimeoutError:
            return False
        return True

    async def _is_abandoned(self) -> bool:
        if self.stopped:
            return True
        if self.abandoned is None:
            return False
        return await self.abandoned()

    async def _fetch(self, job_id: str) -> JobSnapshot:
        if self.fetch_retries <= 0:
            return await self.fetch(job_id)

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.fetch_retries + 1),
            wait=wait_exponential(multiplier=self.retry_multiplier, max=self.retry_max_wait),
            retry=retry_if_exception_type(ProviderConnectionError),
            before_sleep=lambda state: logger.warning(
                f"Retrying status check for job {job_id} (attempt {state.attempt_number})"
            ),
            reraise=True,
        ):
            with attempt:
                snapshot = await self.fetch(job_id)
        return snapshot

    async def _complete(self, snapshot: JobSnapshot) -> JobOutcome:
        job_id = snapshot.job_id

        if snapshot.status == JobStatus.FAILED:
            reason = snapshot.error or "Job failed"
            logger.info(f"Job {job_id} failed: {reason}")
            return Failed(job_id, reason, JobFailedError(reason), snapshot)

        output = snapshot.output
        if output is None:
            if self.empty_output == EmptyOutputPolicy.SUCCEED:
                logger.info(f"Job {job_id} succeeded without output")
                return Succeeded(job_id, None, snapshot)
            error = UnexpectedOutputError()
            logger.error(f"Job {job_id} succeeded with an unexpected output format")
            return Failed(job_id, error.message, error, snapshot)

        if isinstance(output, InlineOutput):
            logger.info(f"Job {job_id} succeeded: {output.url}")
            return Succeeded(job_id, output.url, snapshot)

        if isinstance(output, StreamOutput):
            if self.storage is None:
                error = ConfigurationError("No media storage configured for streamed output")
                return Failed(job_id, error.message, error, snapshot)
            try:
                async with aclosing(output.open_stream()) as chunks:
                    reference = await self.storage.persist(
                        chunks, output.filename_prefix, output.suffix
                    )
            except GenStudioException as e:
                logger.error(f"Persisting output of job {job_id} failed: {e.message}")
                return Failed(job_id, e.message, e, snapshot)
            logger.info(f"Job {job_id} succeeded: {reference}")
            return Succeeded(job_id, reference, snapshot)

        error = UnexpectedOutputError()
        return Failed(job_id, error.message, error, snapshot)
