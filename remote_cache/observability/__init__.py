"""Observability utilities: logging setup.

This module configures standard logging and, if available, integrates
`structlog` for structured logs. The dependency on `structlog` is optional to
keep the base runtime lightweight.
"""

from __future__ import annotations

import importlib
import logging
from typing import Optional

from ..config.models import EnvSettings


def setup_logging(level: Optional[str] = None) -> None:
    """Configure application logging.

    Parameters
    ----------
    level: Optional[str]
        Logging level name (e.g., "DEBUG", "INFO"). When omitted the level
        comes from ``REMOTE_CACHE_LOG_LEVEL`` (default "INFO").

    Behavior
    --------
    - Initializes Python's logging with the requested level.
    - Applies the level to the ``remote_cache`` logger hierarchy.
    - If `structlog` is installed, configures it with a filtering bound logger.
    """
    if level is None:
        level = EnvSettings().log_level
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format=("%(asctime)s %(levelname)s %(name)s - %(message)s"),
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
    logging.getLogger("remote_cache").setLevel(numeric_level)

    try:  # optional structlog
        structlog = importlib.import_module("structlog")
        structlog.configure(
            wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        )
    except ModuleNotFoundError:  # pragma: no cover
        pass
