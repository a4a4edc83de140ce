import pytest

from genstudio.core.config import Settings, clear_settings_cache, get_settings


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "REPLICATE_API_TOKEN", "REPLICATE_API_KEY", "BACKEND_CORS_ORIGINS", "IMAGE_MODELS",
        "POLL_MAX_ATTEMPTS", "MEDIA_URL_PREFIX",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.mark.unit
class TestSettings:

    def test_defaults(self, clean_env):
        settings = Settings(_env_file=None)

        assert settings.REPLICATE_API_TOKEN == ""
        assert not settings.has_replicate_token
        assert settings.POLL_MAX_ATTEMPTS is None
        assert settings.POLL_INTERVAL_SECONDS == 1.0
        assert settings.BACKGROUND_REMOVAL_MAX_ATTEMPTS == 20
        assert settings.FETCH_RETRY_ATTEMPTS == 0
        assert settings.IMAGE_MODELS == [
            "black-forest-labs/flux-schnell",
            "black-forest-labs/flux-1.1-pro",
        ]

    def test_token_from_legacy_variable(self, clean_env):
        clean_env.setenv("REPLICATE_API_KEY", "r8_legacy")

        settings = Settings(_env_file=None)

        assert settings.REPLICATE_API_TOKEN == "r8_legacy"
        assert settings.has_replicate_token

    def test_comma_separated_lists(self, clean_env):
        clean_env.setenv("BACKEND_CORS_ORIGINS", "http://localhost:3000, https://studio.example.com")
        clean_env.setenv("IMAGE_MODELS", "owner/a,owner/b")

        settings = Settings(_env_file=None)

        assert settings.BACKEND_CORS_ORIGINS == ["http://localhost:3000", "https://studio.example.com"]
        assert settings.IMAGE_MODELS == ["owner/a", "owner/b"]

    def test_json_cors_list(self, clean_env):
        clean_env.setenv("BACKEND_CORS_ORIGINS", '["http://localhost:3000"]')

        assert Settings(_env_file=None).BACKEND_CORS_ORIGINS == ["http://localhost:3000"]

    def test_media_prefix_normalized(self, clean_env):
        clean_env.setenv("MEDIA_URL_PREFIX", "files/")

        assert Settings(_env_file=None).MEDIA_URL_PREFIX == "/files"

    def test_ceiling_must_be_positive(self, clean_env):
        clean_env.setenv("POLL_MAX_ATTEMPTS", "0")

        with pytest.raises(ValueError):
            Settings(_env_file=None)

    def test_get_settings_is_cached(self, clean_env):
        clear_settings_cache()
        try:
            assert get_settings() is get_settings()
        finally:
            clear_settings_cache()
