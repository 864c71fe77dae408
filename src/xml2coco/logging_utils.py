"""Logging and progress-bar setup."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional, Union

from tqdm import tqdm

LOG_FORMAT = "[%(asctime)s][%(name)s][%(levelname)s] %(message)s"
LOG_DATEFMT = "%Y-%m-%d][%H:%M:%S"


def setup_logging(log_dir: Optional[Union[str, Path]] = "logs", level: int = logging.INFO) -> Optional[Path]:
    """Log to stdout and, when ``log_dir`` is given, to ``<log_dir>/main.log``.

    Returns the log file path (or None).
    """
    handlers = [logging.StreamHandler(sys.stdout)]
    log_file = None
    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / "main.log"
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
        handlers=handlers,
        force=True,
    )
    return log_file


def make_progress(total: int, desc: str, disable: Optional[bool] = None) -> tqdm:
    """Progress bar reporting "N of M files" for one phase.

    Anything with ``update(n)`` and ``close()`` can stand in for it; see
    ``pipeline.convert(progress_factory=...)``.
    """
    return tqdm(total=total, desc=desc, unit="file", dynamic_ncols=True, leave=True, disable=disable)
