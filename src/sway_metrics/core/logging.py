"""Loguru logging configuration.

Metric computations log under their group id; a deployment that ships
logs to a collector can switch stderr to one JSON object per record.
"""

import sys
from pathlib import Path

from loguru import logger

_LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} | {message}"
LOG_FILE_NAME = "sway-metrics.log"


def setup_logging(log_level: str = "INFO", log_dir: str | None = None, *, json_logs: bool = False) -> None:
    """Replace Loguru's sinks with the service's own.

    Args:
        log_level: Minimum log level to emit (case-insensitive).
        log_dir: Optional directory for a rotating log file (rotated every
            24 hours, retained 7 days).  Always plain text.
        json_logs: Serialize stderr records as JSON instead of plain text.
    """
    level = log_level.upper()
    logger.remove()
    if json_logs:
        logger.add(sys.stderr, level=level, serialize=True)
    else:
        logger.add(sys.stderr, level=level, format=_LOG_FORMAT)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path / LOG_FILE_NAME,
            level=level,
            format=_LOG_FORMAT,
            rotation="24h",
            retention="7 days",
        )
