"""Utils package for obsim."""

from .config import load_config, save_config, merge_configs, validate_config

__all__ = ['load_config', 'save_config', 'merge_configs', 'validate_config']
