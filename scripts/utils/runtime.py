"""Shared runtime helpers for the pipeline entrypoint.

Project-root detection and the per-run logging bootstrap live here so the
runner and any ad-hoc analysis script configure logs the same way.
"""

from __future__ import annotations

from datetime import datetime
import logging
from pathlib import Path
from typing import Optional, TextIO, Tuple

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"

# Stage modules log under this namespace (scripts.dedupe_stations, ...).
PIPELINE_LOGGER_NAME = "scripts"


def find_project_root(start: Optional[Path] = None) -> Path:
    """Find the repository root by searching upward for ``pyproject.toml`` or ``.git``.

    Falls back to the resolved start directory when neither marker exists.
    """
    start_path = (start or Path.cwd()).resolve()

    for directory in [start_path, *start_path.parents]:
        if (directory / "pyproject.toml").exists() or (directory / ".git").exists():
            return directory

    return start_path


def setup_pipeline_logging(
    *,
    base_dir: Path,
    run_name: str = "ridership_change",
    level: int = logging.INFO,
    stream: Optional[TextIO] = None,
) -> Tuple[logging.Logger, Path]:
    """Attach a timestamped log file and a console stream to the pipeline logger.

    Every module under ``scripts`` logs through a child of the returned logger,
    so a single call captures the whole run in ``logs/<run_name>_<timestamp>.log``.
    """
    log_dir = base_dir / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_path = log_dir / f"{run_name}_{timestamp}.log"

    logger = logging.getLogger(PIPELINE_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)

    formatter = logging.Formatter(fmt=LOG_FORMAT)

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    stream_handler = logging.StreamHandler(stream) if stream is not None else logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    return logger, log_path
