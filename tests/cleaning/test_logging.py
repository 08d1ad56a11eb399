# SPDX-License-Identifier: MIT
"""Tests for logging configuration."""

import pytest
from loguru import logger

from admissions.config import settings
from admissions.utils.logging import setup_logging


@pytest.fixture(autouse=True)
def remove_sinks():
    yield
    logger.remove()


class TestSetupLogging:
    """Test sink configuration."""

    def test_explicit_log_file(self, tmp_path):
        log_file = tmp_path / "logs" / "run.log"
        setup_logging(level="debug", log_file=log_file)
        logger.debug("stage counts")
        logger.remove()

        assert "stage counts" in log_file.read_text(encoding="utf-8")

    def test_log_file_from_settings(self, tmp_path, monkeypatch):
        log_file = tmp_path / "pipeline.log"
        monkeypatch.setattr(settings.pipeline, "log_file", log_file)
        monkeypatch.setattr(settings.pipeline, "log_level", "WARNING")

        setup_logging()
        logger.info("not written")
        logger.warning("rejected row 4")
        logger.remove()

        text = log_file.read_text(encoding="utf-8")
        assert "rejected row 4" in text
        assert "not written" not in text

    def test_no_file_by_default(self, tmp_path, monkeypatch):
        monkeypatch.setattr(settings.pipeline, "log_file", None)
        monkeypatch.chdir(tmp_path)

        setup_logging(level="INFO")
        logger.info("console only")

        assert list(tmp_path.iterdir()) == []
