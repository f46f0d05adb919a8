"""
Configuration of observation simulation runs.

An observation simulation is described by a dictionary (usually loaded from
YAML) of the form:

    simulation:
      max_workers: null
      random_seed: 42
      log_level: INFO
    observations:
      one_way_range:
        - link_ends: {transmitter: [Earth, Station1], receiver: Spacecraft}
          reference_link_end: receiver
          times: [0.0, 10.0, 20.0]
        - link_ends: {transmitter: [Earth, Station2], receiver: Spacecraft}
          reference_link_end: receiver
          interval: {start: 0.0, end: 3600.0, step: 60.0}
    noise:
      one_way_range: {type: gaussian, standard_deviation: 1.0}
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import numpy as np

from ..infra.utils import Timer, create_rng, setup_logging
from ..utils.config import load_config, merge_configs, save_config, validate_config
from .noise import (
    ConstantNoiseGenerator,
    GaussianNoiseGenerator,
    NoiseGenerator,
    NoiseSettings,
    simulate_observations_with_noise,
)
from .simulation import simulate_observations
from .time_settings import (
    IntervalObservationTimeSettings,
    ObservationTimeSettings,
    TabulatedObservationTimeSettings,
    TimeSettingsMap,
)
from .types import LinkEnds, ObservableType, ObservationResultMap

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, Any] = {
    'simulation': {
        'max_workers': None,
        'random_seed': None,
        'log_level': 'INFO'
    },
    'observations': {},
    'noise': {}
}


def parse_observable_type(name: str) -> ObservableType:
    """Parse an observable type from its name (e.g. 'one_way_range')."""
    try:
        return ObservableType(str(name).strip().lower())
    except ValueError:
        raise ValueError(f"Unknown observable type: {name}") from None


def parse_link_ends(link_ends_config: Mapping[str, Any]) -> LinkEnds:
    """
    Parse a link end set.

    Args:
        link_ends_config: Map from role name to a body name or [body, station]

    Returns:
        LinkEnds
    """
    if not link_ends_config:
        raise ValueError("Link ends must contain at least one link end")
    return LinkEnds(link_ends_config)


def parse_time_settings(entry: Mapping[str, Any]) -> ObservationTimeSettings:
    """
    Parse the time settings of one observation set.

    Args:
        entry: Dictionary with 'reference_link_end' and either 'times' or
            'interval' ({start, end, step})

    Returns:
        ObservationTimeSettings
    """
    reference_link_end = entry.get('reference_link_end', 'receiver')

    if 'times' in entry and 'interval' in entry:
        raise ValueError("Specify either 'times' or 'interval', not both")
    if 'times' in entry:
        return TabulatedObservationTimeSettings(reference_link_end, entry['times'] or [])
    if 'interval' in entry:
        interval = entry['interval']
        return IntervalObservationTimeSettings(
            reference_link_end,
            start_time=interval['start'],
            end_time=interval['end'],
            time_step=interval['step']
        )
    raise ValueError("Observation set needs 'times' or 'interval'")


def parse_noise_generator(noise_config: Mapping[str, Any],
                          observation_size: int,
                          rng: np.random.Generator) -> NoiseGenerator:
    """
    Parse a noise generator definition.

    Supported types are 'gaussian' (standard_deviation, mean) and
    'constant' (value).
    """
    noise_type = noise_config.get('type', 'gaussian').lower()
    if noise_type == 'gaussian':
        validate_config(noise_config, ['standard_deviation'], "gaussian noise")
        return GaussianNoiseGenerator(
            standard_deviation=noise_config['standard_deviation'],
            observation_size=observation_size,
            rng=rng,
            mean=noise_config.get('mean', 0.0)
        )
    elif noise_type == 'constant':
        validate_config(noise_config, ['value'], "constant noise")
        return ConstantNoiseGenerator(noise_config['value'], observation_size)
    else:
        raise ValueError(f"Unknown noise type: {noise_type}")


@dataclass
class SimulationConfig:
    """Settings of one observation simulation run."""

    max_workers: Optional[int] = None
    random_seed: Optional[int] = None
    log_level: str = "INFO"

    # Raw observation and noise sections, parsed on demand
    observations: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)
    noise: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'SimulationConfig':
        """Create configuration from dictionary."""
        config_dict = merge_configs(DEFAULT_CONFIG, {
            key: value for key, value in (config_dict or {}).items() if value is not None})
        simulation = config_dict['simulation']
        return cls(
            max_workers=simulation['max_workers'],
            random_seed=simulation['random_seed'],
            log_level=simulation['log_level'],
            observations=config_dict['observations'],
            noise=config_dict['noise']
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'simulation': {
                'max_workers': self.max_workers,
                'random_seed': self.random_seed,
                'log_level': self.log_level
            },
            'observations': self.observations,
            'noise': self.noise
        }

    @classmethod
    def load_from_yaml(cls, path: str,
                       overrides: Optional[Dict[str, Any]] = None) -> 'SimulationConfig':
        """Load configuration from YAML file, optionally overriding some of its values."""
        return cls.from_dict(merge_configs(load_config(path), overrides))

    def save_to_yaml(self, path: str) -> None:
        """Save configuration to YAML file."""
        save_config(self.to_dict(), path)

    def build_time_settings(self) -> TimeSettingsMap:
        """Time settings per observable type and link end set."""
        time_settings: TimeSettingsMap = {}
        for observable_name, entries in self.observations.items():
            observable_type = parse_observable_type(observable_name)
            settings_per_link_ends = time_settings.setdefault(observable_type, {})
            for index, entry in enumerate(entries or []):
                validate_config(entry, ['link_ends'], f"observations.{observable_name}[{index}]")
                link_ends = parse_link_ends(entry['link_ends'])
                if link_ends in settings_per_link_ends:
                    raise ValueError(
                        f"Duplicate link ends {link_ends!r} for observable {observable_name}")
                settings_per_link_ends[link_ends] = parse_time_settings(entry)
        return time_settings

    def build_noise_settings(self, time_settings: TimeSettingsMap,
                             rng: Optional[np.random.Generator] = None) -> Optional[NoiseSettings]:
        """
        Noise settings for the observations in time_settings.

        Returns None if no noise section is configured. Every observable
        being simulated then needs a noise entry, or a 'default' entry
        applies.
        """
        if not self.noise:
            return None
        if rng is None:
            rng = create_rng(self.random_seed)

        noise_configs = {parse_observable_type(name): entry
                         for name, entry in self.noise.items() if name != 'default'}
        default_config = self.noise.get('default')

        generators = {}
        for observable_type, settings_per_link_ends in time_settings.items():
            noise_config = noise_configs.get(observable_type, default_config)
            if noise_config is None:
                continue
            generator = parse_noise_generator(noise_config, observable_type.size, rng)
            for link_ends in settings_per_link_ends:
                generators[(observable_type, link_ends)] = generator
        return NoiseSettings(generators)


def simulate_from_config(config: SimulationConfig,
                         observation_simulators: Mapping) -> ObservationResultMap:
    """
    Run the observation simulation described by a configuration.

    Args:
        config: Simulation configuration
        observation_simulators: Registry (or plain map) of simulators per observable

    Returns:
        Map from observable type to link ends to ObservationBatch, noisy if
        the configuration has a noise section
    """
    setup_logging(config.log_level)
    time_settings = config.build_time_settings()
    noise_settings = config.build_noise_settings(time_settings)
    logger.info(f"Simulating {sum(len(s) for s in time_settings.values())} observation sets "
                f"({'with' if noise_settings is not None else 'without'} noise)")

    with Timer("Observation simulation"):
        if noise_settings is None:
            return simulate_observations(time_settings, observation_simulators,
                                         max_workers=config.max_workers)
        return simulate_observations_with_noise(
            time_settings, observation_simulators, noise_settings,
            max_workers=config.max_workers)
