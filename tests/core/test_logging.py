import logging

import pytest

from genstudio.core import logging as logging_setup
from genstudio.services.generation.types import JobRequest


@pytest.mark.unit
class TestLogging:

    def test_level_from_argument(self, mocker):
        dict_config = mocker.patch.object(logging_setup.logging.config, "dictConfig")

        logging_setup.setup_logging("debug")

        config = dict_config.call_args.args[0]
        assert config["root"]["level"] == "DEBUG"
        assert config["loggers"]["httpx"]["level"] == "WARNING"

    def test_level_from_settings(self, mocker, settings):
        settings.LOG_LEVEL = "warning"
        mocker.patch.object(logging_setup, "get_settings", return_value=settings)
        dict_config = mocker.patch.object(logging_setup.logging.config, "dictConfig")

        logging_setup.setup_logging()

        assert dict_config.call_args.args[0]["root"]["level"] == "WARNING"

    async def test_submission_logs_never_include_token_or_payload(self, orchestrator, caplog):
        image = "data:image/png;base64,U0VDUkVUUElYRUxT"
        caplog.set_level(logging.DEBUG, logger="genstudio")

        await orchestrator.submit("animation", JobRequest(media=image))

        assert "Creating image_animation prediction with minimax/video-01-live" in caplog.text
        assert "test-token" not in caplog.text
        assert "U0VDUkVUUElYRUxT" not in caplog.text
