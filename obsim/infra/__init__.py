"""Run infrastructure: logging, random generators and timing."""

from .utils import setup_logging, create_rng, format_duration, Timer

__all__ = ['setup_logging', 'create_rng', 'format_duration', 'Timer']
