"""
Configuration utilities for observation simulation.
"""

import copy
import json
import yaml
from pathlib import Path
from typing import Any, Dict, List, Optional, Union


def load_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a YAML or JSON configuration file.

    Args:
        config_path: Path to config file

    Returns:
        Configuration dictionary (empty if the file is empty)
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r') as f:
        if config_path.suffix.lower() in ['.yaml', '.yml']:
            config = yaml.safe_load(f)
        elif config_path.suffix.lower() == '.json':
            config = json.load(f)
        else:
            raise ValueError(f"Unsupported config file format: {config_path.suffix}")

    return config or {}


def save_config(config: Dict[str, Any], config_path: Union[str, Path]) -> None:
    """
    Save configuration to a YAML file.

    Args:
        config: Configuration dictionary
        config_path: Path to save config file
    """
    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, 'w') as f:
        yaml.safe_dump(config, f, default_flow_style=False, indent=2, sort_keys=False)


def merge_configs(base_config: Dict[str, Any],
                  override_config: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Overlay a configuration on top of defaults.

    Nested sections are merged key by key; any other value in
    override_config replaces the default. Neither input is modified.

    Args:
        base_config: Default configuration
        override_config: Values taking precedence (None keeps the defaults)

    Returns:
        Merged configuration
    """
    merged = copy.deepcopy(base_config)

    for key, value in (override_config or {}).items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)

    return merged


def validate_config(config: Dict[str, Any],
                    required_keys: List[str],
                    context: str = "config") -> None:
    """
    Check that dot-separated key paths are present and not null.

    Raises:
        ValueError: Naming every missing key path and where it was expected
    """
    missing_keys = []

    for key_path in required_keys:
        current = config
        for key in key_path.split('.'):
            if not isinstance(current, dict) or current.get(key) is None:
                missing_keys.append(key_path)
                break
            current = current[key]

    if missing_keys:
        raise ValueError(f"Missing required keys in {context}: {', '.join(missing_keys)}")
