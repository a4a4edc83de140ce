import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from genstudio.core.config import Settings
from genstudio.core.http_client import ReplicateClient
from genstudio.main import create_app
from genstudio.services.generation.orchestrator import GenerationOrchestrator
from genstudio.services.generation.storage import MediaStorage
from tests.factories import REPLICATE_BASE_URL, FakeReplicate


@pytest.fixture
def media_root(tmp_path):
    """Media directory for persisted outputs; created up front since the app lifespan does not run under ASGITransport."""
    root = tmp_path / "media"
    root.mkdir()
    return root


@pytest.fixture
def settings(media_root):
    """Settings isolated from the environment and any local .env file."""
    return Settings(
        _env_file=None,
        REPLICATE_API_TOKEN="test-token",
        REPLICATE_BASE_URL=REPLICATE_BASE_URL,
        MEDIA_ROOT=str(media_root),
        POLL_INTERVAL_SECONDS=0,
        FETCH_RETRY_MAX_WAIT=0,
    )


@pytest.fixture
def fake_replicate():
    return FakeReplicate()


@pytest.fixture
def replicate_client(settings, fake_replicate):
    """Provider client wired to the fake; the mock transport holds no connections."""
    return ReplicateClient.from_settings(settings, transport=fake_replicate.transport())


@pytest.fixture
def storage(settings):
    return MediaStorage.from_settings(settings)


@pytest.fixture
def orchestrator(replicate_client, storage, settings):
    return GenerationOrchestrator(replicate_client, storage, settings)


@pytest.fixture
def app(settings, fake_replicate):
    return create_app(settings, transport=fake_replicate.transport())


@pytest_asyncio.fixture
async def async_client(app):
    """Create an async HTTP client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    await app.state.orchestrator.client.aclose()
