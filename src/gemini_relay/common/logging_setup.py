"""Central logging setup for the relay."""
from __future__ import annotations
import logging
import os
import sys

def setup_logging(level: int | str | None = None) -> None:
    """
    Configure root logger for the relay processes.

    Args:
        level: Logging level or level name. Defaults to the RELAY_LOG_LEVEL
            environment variable, then INFO.
    """
    if level is None:
        level = os.getenv("RELAY_LOG_LEVEL", "INFO")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    fmt = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
    handler.setFormatter(logging.Formatter(fmt))
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
    # httpx request logs carry the key query param.
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
