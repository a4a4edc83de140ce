import pytest
from httpx import ASGITransport, AsyncClient

from genstudio.main import create_app
from tests.factories import PredictionFactory

FLUX = "black-forest-labs/flux-schnell"


@pytest.mark.integration
class TestImagesEndpoints:
    """Test image generation endpoints."""

    async def test_create_image(self, async_client: AsyncClient, fake_replicate):
        response = await async_client.post(
            "/api/v1/images",
            json={"prompt": "a lighthouse at dusk", "model": FLUX, "seed": 3},
        )

        assert response.status_code == 201
        assert response.json() == {"id": "pred-1", "status": "starting", "output": None, "error": None}
        assert fake_replicate.created[0]["body"]["input"]["seed"] == 3

    async def test_create_image_missing_prompt(self, async_client: AsyncClient, fake_replicate):
        response = await async_client.post("/api/v1/images", json={"model": FLUX})

        assert response.status_code == 400
        assert response.json() == {"error": "No prompt provided"}
        assert fake_replicate.requests == []

    async def test_create_image_invalid_model(self, async_client: AsyncClient, fake_replicate):
        response = await async_client.post("/api/v1/images", json={"prompt": "x", "model": "other/model"})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid model selected"}
        assert fake_replicate.requests == []

    async def test_create_image_without_token(self, settings, fake_replicate):
        settings.REPLICATE_API_TOKEN = ""
        app = create_app(settings, transport=fake_replicate.transport())

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.post("/api/v1/images", json={"prompt": "x", "model": FLUX})

        assert response.status_code == 500
        assert response.json()["detail"] == "REPLICATE_API_TOKEN is not configured"
        assert fake_replicate.requests == []
        await app.state.orchestrator.client.aclose()

    async def test_get_image_status(self, async_client: AsyncClient, fake_replicate):
        fake_replicate.queue(
            "img-1",
            PredictionFactory(id="img-1", status="processing", output=["https://x.test/partial.png"]),
            PredictionFactory(id="img-1", status="succeeded", output=["https://x.test/out-0.png"]),
        )

        first = await async_client.get("/api/v1/images/img-1")
        second = await async_client.get("/api/v1/images/img-1")

        assert first.json() == {"id": "img-1", "status": "processing", "output": None, "error": None}
        assert second.status_code == 200
        assert second.json()["output"] == "https://x.test/out-0.png"

    async def test_get_image_failed(self, async_client: AsyncClient, fake_replicate):
        fake_replicate.queue("img-1", PredictionFactory(id="img-1", status="failed", error="NSFW content"))

        response = await async_client.get("/api/v1/images/img-1")

        assert response.status_code == 200
        assert response.json()["status"] == "failed"
        assert response.json()["error"] == "NSFW content"

    async def test_get_unknown_image(self, async_client: AsyncClient):
        response = await async_client.get("/api/v1/images/missing")

        assert response.status_code == 404
        assert response.json()["error_code"] == "JOB_NOT_FOUND"

    async def test_get_image_upstream_error(self, async_client: AsyncClient, fake_replicate):
        fake_replicate.queue("img-1", 502)

        response = await async_client.get("/api/v1/images/img-1")

        assert response.status_code == 500
        assert response.json()["error_code"] == "PROVIDER_ERROR"


@pytest.mark.integration
class TestServiceEndpoints:

    async def test_health(self, async_client: AsyncClient):
        response = await async_client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "replicate_configured": True}

    async def test_root(self, async_client: AsyncClient):
        response = await async_client.get("/")

        assert response.json() == {"message": "GenStudio API is running"}
