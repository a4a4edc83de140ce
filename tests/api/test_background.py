import pytest
from httpx import AsyncClient

from tests.factories import PredictionFactory

PNG = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR"


@pytest.mark.integration
class TestBackgroundRemovalEndpoint:

    async def test_remove_background(self, async_client: AsyncClient, fake_replicate):
        fake_replicate.queue(
            "pred-1",
            PredictionFactory(id="pred-1", status="processing"),
            PredictionFactory(id="pred-1", status="succeeded", output="https://replicate.delivery/xezq/nobg.png"),
        )

        response = await async_client.post(
            "/api/v1/remove-background",
            files={"image": ("cat.png", PNG, "image/png")},
        )

        assert response.status_code == 200
        assert response.json() == {
            "id": "pred-1",
            "status": "succeeded",
            "output": "https://replicate.delivery/xezq/nobg.png",
        }
        image = fake_replicate.created[0]["body"]["input"]["image"]
        assert image.startswith("data:image/png;base64,")

    async def test_missing_file(self, async_client: AsyncClient, fake_replicate):
        response = await async_client.post("/api/v1/remove-background")

        assert response.status_code == 400
        assert response.json() == {"error": "No image file provided"}
        assert fake_replicate.requests == []

    async def test_unsupported_type(self, async_client: AsyncClient, fake_replicate):
        response = await async_client.post(
            "/api/v1/remove-background",
            files={"image": ("doc.pdf", b"%PDF-1.7", "application/pdf")},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Unsupported image type"}
        assert fake_replicate.requests == []

    async def test_times_out_after_ceiling(self, async_client: AsyncClient, fake_replicate):
        fake_replicate.queue("pred-1", PredictionFactory(id="pred-1", status="processing"))

        response = await async_client.post(
            "/api/v1/remove-background",
            files={"image": ("cat.png", PNG, "image/png")},
        )

        assert response.status_code == 500
        assert response.json()["error"] == "timeout"
        assert fake_replicate.status_fetches("pred-1") == 20
