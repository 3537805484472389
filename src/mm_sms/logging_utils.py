from __future__ import annotations

import logging
import sys
from typing import TextIO


def configure_logging(level: str | int = "INFO", stream: TextIO | None = None) -> None:
    """Configure root logger with a single handler (stdout unless a stream is given)."""
    handler = logging.StreamHandler(stream or sys.stdout)
    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper() if isinstance(level, str) else level)

    # Avoid duplicate handlers in reconfig scenarios
    root_logger.handlers = []
    root_logger.addHandler(handler)
