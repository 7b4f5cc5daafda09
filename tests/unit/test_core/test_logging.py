"""Unit tests for logging configuration."""

import json
from pathlib import Path

import pytest
from loguru import logger

from sway_metrics.core.logging import LOG_FILE_NAME, setup_logging


class TestLogging:
    """Tests for Loguru logging setup."""

    def test_setup_logging_case_insensitive(self) -> None:
        """setup_logging accepts case-insensitive log levels."""
        setup_logging("info")
        setup_logging("DEBUG")

    def test_plain_text_to_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging("INFO")
        logger.info("Group {} scored", "g1")
        logger.debug("hidden")

        err = capsys.readouterr().err
        assert "INFO" in err
        assert "Group g1 scored" in err
        assert "hidden" not in err

    def test_json_to_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging("INFO", json_logs=True)
        logger.warning("slow metric")

        lines = [line for line in capsys.readouterr().err.splitlines() if line.strip()]
        record = json.loads(lines[-1])
        assert record["record"]["message"] == "slow metric"
        assert record["record"]["level"]["name"] == "WARNING"

    def test_log_dir_adds_file_sink(self, tmp_path: Path) -> None:
        log_dir = tmp_path / "logs"
        setup_logging("INFO", str(log_dir))
        logger.info("written to file")
        logger.complete()

        content = (log_dir / LOG_FILE_NAME).read_text()
        assert "written to file" in content
        setup_logging("INFO")
