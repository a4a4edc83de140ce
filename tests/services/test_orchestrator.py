"""
Orchestrator tests against the fake prediction API: submit once, poll to a
terminal outcome, persist streamed media.
"""

import httpx
import pytest

from genstudio.core.exceptions import ValidationError
from genstudio.services.generation.orchestrator import GenerationOrchestrator
from genstudio.services.generation.types import JobRequest, JobStatus
from tests.factories import PredictionFactory

FIRST_FRAME = "data:image/png;base64,iVBORw0KGgo="


@pytest.mark.integration
class TestGenerationOrchestrator:

    async def test_animation_runs_to_stored_clip(self, orchestrator, fake_replicate, storage):
        clip = b"\x00\x00\x00\x20ftypisom" + b"\x42" * 4096
        url = fake_replicate.add_media("abc/output.mp4", clip)
        fake_replicate.queue(
            "pred-1",
            PredictionFactory(id="pred-1", status="starting"),
            PredictionFactory(id="pred-1", status="processing"),
            PredictionFactory(id="pred-1", status="succeeded", output=url),
        )

        outcome = await orchestrator.run("animation", JobRequest(media=FIRST_FRAME))

        assert outcome.succeeded
        assert outcome.reference.startswith("/media/live2d-animation-")
        assert await storage.read(outcome.reference) == clip
        assert len(fake_replicate.created) == 1
        assert fake_replicate.status_fetches("pred-1") == 3

    async def test_failed_job(self, orchestrator, fake_replicate):
        fake_replicate.queue(
            "pred-1",
            PredictionFactory(id="pred-1", status="processing"),
            PredictionFactory(id="pred-1", status="failed", error="Invalid first frame"),
        )

        outcome = await orchestrator.run("animation", JobRequest(media=FIRST_FRAME))

        assert not outcome.succeeded
        assert outcome.reason == "Invalid first frame"

    async def test_upstream_error_stops_polling(self, orchestrator, fake_replicate):
        fake_replicate.queue(
            "pred-1",
            PredictionFactory(id="pred-1", status="processing"),
            503,
            PredictionFactory(id="pred-1", status="succeeded", output="https://x.test/out.mp4"),
        )

        outcome = await orchestrator.run("soundtovideo", JobRequest(media="https://x.test/in.mp4", prompt="rain"))

        assert outcome.error_code == "PROVIDER_ERROR"
        assert fake_replicate.status_fetches("pred-1") == 2

    async def test_validation_is_raised_not_reported(self, orchestrator, fake_replicate):
        with pytest.raises(ValidationError):
            await orchestrator.run("animation", JobRequest())
        assert fake_replicate.requests == []

    async def test_background_removal_ceiling(self, replicate_client, storage, settings, fake_replicate):
        settings.BACKGROUND_REMOVAL_MAX_ATTEMPTS = 3
        orchestrator = GenerationOrchestrator(replicate_client, storage, settings)
        fake_replicate.queue("pred-1", PredictionFactory(id="pred-1", status="processing"))

        outcome = await orchestrator.run(
            "remove-background", JobRequest(media_bytes=b"png", media_type="image/png")
        )

        assert outcome.reason == "timeout"
        assert fake_replicate.status_fetches("pred-1") == 3

    async def test_background_removal_without_output_succeeds(self, orchestrator, fake_replicate):
        fake_replicate.queue("pred-1", PredictionFactory(id="pred-1", status="succeeded", output=None))

        outcome = await orchestrator.run(
            "remove-background", JobRequest(media_bytes=b"png", media_type="image/png")
        )

        assert outcome.succeeded
        assert outcome.reference is None

    async def test_global_ceiling_applies_to_unbounded_adapters(
        self, replicate_client, storage, settings, fake_replicate
    ):
        settings.POLL_MAX_ATTEMPTS = 2
        orchestrator = GenerationOrchestrator(replicate_client, storage, settings)
        fake_replicate.queue("pred-1", PredictionFactory(id="pred-1", status="processing"))

        outcome = await orchestrator.run("animation", JobRequest(media=FIRST_FRAME))

        assert outcome.reason == "timeout"
        assert fake_replicate.status_fetches("pred-1") == 2

    async def test_transport_retry_from_settings(self, replicate_client, storage, settings, fake_replicate):
        settings.FETCH_RETRY_ATTEMPTS = 2
        orchestrator = GenerationOrchestrator(replicate_client, storage, settings)
        fake_replicate.queue(
            "pred-1",
            httpx.ConnectError("connection refused"),
            PredictionFactory(id="pred-1", status="succeeded", output="https://x.test/nobg.png"),
        )

        outcome = await orchestrator.run(
            "remove-background", JobRequest(media_bytes=b"png", media_type="image/png")
        )

        assert outcome.succeeded
        assert outcome.reference == "https://x.test/nobg.png"
        assert fake_replicate.status_fetches("pred-1") == 2

    async def test_status_passthrough(self, orchestrator, fake_replicate):
        fake_replicate.queue("img-9", PredictionFactory(id="img-9", status="processing"))

        snapshot = await orchestrator.status("image", "img-9")

        assert snapshot.status == JobStatus.PROCESSING

    def test_unknown_kind(self, orchestrator):
        with pytest.raises(ValueError):
            orchestrator.adapter("upscale")
