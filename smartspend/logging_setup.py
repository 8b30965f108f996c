"""Logging configuration shared by the Streamlit app and the scripts."""

from __future__ import annotations

import logging
from typing import Optional, Union

from . import config

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def configure_logging(level: Optional[Union[int, str]] = None) -> None:
    """Configure the root ``smartspend`` logger once per process.

    Streamlit re-executes page scripts on every interaction, so repeated
    calls are ignored after the first one.

    Args:
        level: Log level name or number. Defaults to ``config.LOG_LEVEL``.
    """
    global _configured
    if _configured:
        return

    resolved = level if level is not None else config.LOG_LEVEL
    if isinstance(resolved, str):
        resolved = logging.getLevelName(resolved.upper())
        if not isinstance(resolved, int):
            resolved = logging.INFO

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    logger = logging.getLogger("smartspend")
    logger.setLevel(resolved)
    logger.addHandler(handler)
    _configured = True
