"""
Utility functions for observation simulation runs.

This module provides:
- Logging setup
- Random generator creation for noise models
- Timing helpers
"""

import logging
from datetime import datetime
from typing import Optional, Union

import numpy as np

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: Union[str, int] = "INFO") -> None:
    """
    Configure logging for the obsim package.

    Args:
        level: Log level name or number
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {level}")

    package_logger = logging.getLogger("obsim")
    package_logger.setLevel(level)
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        package_logger.addHandler(handler)


def create_rng(seed: Optional[int] = None) -> np.random.Generator:
    """
    Create a random generator for noise models.

    Args:
        seed: Random seed value (None for fresh entropy)

    Returns:
        numpy Generator
    """
    return np.random.default_rng(seed)


def format_duration(seconds: float) -> str:
    """
    Format duration in seconds to human-readable string.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted duration string
    """
    if seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        minutes = seconds / 60
        return f"{minutes:.1f}m"
    else:
        hours = seconds / 3600
        return f"{hours:.1f}h"


class Timer:
    """Context manager logging the duration of an operation."""

    def __init__(self, name: str = "Operation"):
        self.name = name
        self.start_time = None
        self.end_time = None

    def __enter__(self):
        self.start_time = datetime.now()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.end_time = datetime.now()
        if exc_type is None:
            logger.info(f"{self.name} completed in {format_duration(self.elapsed)}")

    @property
    def elapsed(self) -> float:
        """Elapsed time in seconds."""
        if self.start_time is None:
            return 0.0
        end_time = self.end_time or datetime.now()
        return (end_time - self.start_time).total_seconds()
