"""
Logging configuration for stderr and file output.

Stdout belongs to prompts and reports, so log records go to stderr.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"


def setup_logging(
    level: int = logging.WARNING,
    log_dir: Path | str | None = None,
) -> Path | None:
    """
    Configure root logger with a stderr handler and an optional file handler.

    When log_dir is provided, creates a datetime-stamped log file inside it
    (e.g. logs/2026-01-31_14-30-00.log) that records everything at INFO and
    above regardless of the console level. Returns the log file path if one
    was created, None otherwise.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(min(level, logging.INFO) if log_dir is not None else level)

    # clear existing handlers to avoid duplicates on repeated calls
    root_logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(formatter)
    stderr_handler.setLevel(level)
    root_logger.addHandler(stderr_handler)

    if log_dir is not None:
        dir_path = Path(log_dir)
        dir_path.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime(LOG_FILE_TIMESTAMP_FORMAT)
        file_path = dir_path / f"{timestamp}.log"
        file_handler = logging.FileHandler(file_path)
        file_handler.setFormatter(formatter)
        file_handler.setLevel(min(level, logging.INFO))
        root_logger.addHandler(file_handler)
        return file_path

    return None
