"""Logging and filesystem helpers shared by the CLI and pipeline runs."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Third-party loggers that flood DEBUG output with font and driver discovery.
_NOISY_LOGGERS = ("matplotlib", "PIL", "fiona", "pyogrio", "pyproj")


def setup_logging(log_file: Path | None = None, verbose: bool = False) -> None:
    """Configure root logging to console and optionally a file.

    `verbose` switches to DEBUG; noisy third-party loggers stay at WARNING.
    """
    level = logging.DEBUG if verbose else logging.INFO
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def ensure_directories(paths: Iterable[Path]) -> None:
    for path in {Path(item) for item in paths}:
        path.mkdir(parents=True, exist_ok=True)
