"""
Generation orchestrator: one place that owns the adapters, the poller settings
and the media storage used by the API routes.
"""

import logging
from typing import Awaitable, Callable, Dict, Optional

from fastapi import Request

from genstudio.core.config import Settings
from genstudio.core.http_client import ReplicateClient
from .base_provider import ADAPTER_REGISTRY, BaseSubmissionAdapter
from .poller import JobPoller
from .storage import MediaStorage
from .types import JobOutcome, JobRequest, JobSnapshot

# Importing the module registers the concrete adapters
from . import providers  # noqa: F401

logger = logging.getLogger(__name__)


class GenerationOrchestrator:
    """Submits jobs through the registered adapters and tracks them to completion"""

    def __init__(self, client: ReplicateClient, storage: MediaStorage, settings: Settings):
        self.client = client
        self.storage = storage
        self.settings = settings
        self.adapters: Dict[str, BaseSubmissionAdapter] = {
            name: adapter_class.from_settings(client, settings)
            for name, adapter_class in ADAPTER_REGISTRY.items()
        }

    def adapter(self, kind: str) -> BaseSubmissionAdapter:
        try:
            return self.adapters[kind]
        except KeyError:
            raise ValueError(f"Unknown generation kind: {kind}") from None

    async def submit(self, kind: str, request: JobRequest) -> JobSnapshot:
        return await self.adapter(kind).submit(request)

    async def status(self, kind: str, job_id: str) -> JobSnapshot:
        return await self.adapter(kind).fetch(job_id)

    def poller(
        self,
        kind: str,
        on_update: Optional[Callable[[JobSnapshot], None]] = None,
        abandoned: Optional[Callable[[], Awaitable[bool]]] = None,
    ) -> JobPoller:
        adapter = self.adapter(kind)
        max_attempts = adapter.max_attempts
        if max_attempts is None:
            max_attempts = self.settings.POLL_MAX_ATTEMPTS

        return JobPoller(
            adapter.fetch,
            self.storage,
            interval=self.settings.POLL_INTERVAL_SECONDS,
            max_attempts=max_attempts,
            timeout=self.settings.POLL_TIMEOUT_SECONDS,
            empty_output=adapter.empty_output_policy,
            fetch_retries=self.settings.FETCH_RETRY_ATTEMPTS,
            retry_max_wait=self.settings.FETCH_RETRY_MAX_WAIT,
            on_update=on_update,
            abandoned=abandoned,
        )

    async def run(
        self,
        kind: str,
        request: JobRequest,
        abandoned: Optional[Callable[[], Awaitable[bool]]] = None,
    ) -> JobOutcome:
        """Submit once, then poll to a terminal outcome inside the caller's task.

        Validation, configuration and submission errors are raised; everything
        after the prediction exists is reported as a ``Failed`` outcome.
        """
        snapshot = await self.submit(kind, request)
        outcome = await self.poller(kind, abandoned=abandoned).run(snapshot)
        if not outcome.succeeded:
            logger.warning(f"{kind} job {outcome.job_id} ended with: {outcome.reason}")
        return outcome


def get_orchestrator(request: Request) -> GenerationOrchestrator:
    """FastAPI dependency; the orchestrator is built once in the app lifespan."""
    return request.app.state.orchestrator
