"""Logging bootstrap shared by the API process and the CLI runners."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler()],
    )
    # Request-level httpx lines only at WARNING and above.
    logging.getLogger("httpx").setLevel(logging.WARNING)
