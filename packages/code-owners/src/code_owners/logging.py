"""
Logging setup for code_owners.

Usage:
    from code_owners.logging import get_logger

    logger = get_logger(__name__)
    logger.debug("computing path status for %s", path)
"""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger; call once from an entry point."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )


def get_logger(name: str | None = None) -> logging.Logger:
    return logging.getLogger(name)
