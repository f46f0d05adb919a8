"""
Observation scheduling and simulation.

This module provides:
- Observable types, link end sets and observation batches
- Observation time settings (tabulated, interval)
- Observation models and the simulator registry
- Noise-free simulation dispatched on observation size
- Noise generators and noise injection
- Configuration-driven simulation runs
"""

from .errors import (
    ObservationSimulationError,
    ModelUnavailable,
    UnsupportedObservationSize,
    ModelTypeMismatch,
    ObservationSizeMismatch,
    InconsistentBatchShape,
    MissingNoiseGenerator,
    NoiseDimensionMismatch,
    InvalidTimeSettings,
    UnsupportedTimeSettings
)

from .types import (
    ObservableType,
    LinkEndRole,
    LinkEndId,
    LinkEnds,
    ObservationBatch,
    ObservationResultMap,
    get_observable_size
)

from .time_settings import (
    ObservationTimeSettings,
    TabulatedObservationTimeSettings,
    IntervalObservationTimeSettings,
    create_observation_time_settings_map
)

from .models import (
    ObservationModel,
    FunctionObservationModel,
    ObservationSimulatorBase,
    ObservationSimulator,
    ObservationSimulatorRegistry
)

from .simulation import (
    simulate_single_observation_set,
    simulate_single_observation_set_from_simulator,
    simulate_observations
)

from .noise import (
    NoiseGenerator,
    FunctionNoiseGenerator,
    ScalarNoiseGenerator,
    IndependentScalarNoiseGenerator,
    ConstantNoiseGenerator,
    GaussianNoiseGenerator,
    TabulatedNoiseGenerator,
    NoiseSettings,
    add_noise_to_observations,
    simulate_observations_with_noise
)

from .config import SimulationConfig, simulate_from_config
from .summary import get_observation_statistics, print_observation_summary

__all__ = [
    # Errors
    'ObservationSimulationError',
    'ModelUnavailable',
    'UnsupportedObservationSize',
    'ModelTypeMismatch',
    'ObservationSizeMismatch',
    'InconsistentBatchShape',
    'MissingNoiseGenerator',
    'NoiseDimensionMismatch',
    'InvalidTimeSettings',
    'UnsupportedTimeSettings',

    # Data types
    'ObservableType',
    'LinkEndRole',
    'LinkEndId',
    'LinkEnds',
    'ObservationBatch',
    'ObservationResultMap',
    'get_observable_size',

    # Time settings
    'ObservationTimeSettings',
    'TabulatedObservationTimeSettings',
    'IntervalObservationTimeSettings',
    'create_observation_time_settings_map',

    # Models
    'ObservationModel',
    'FunctionObservationModel',
    'ObservationSimulatorBase',
    'ObservationSimulator',
    'ObservationSimulatorRegistry',

    # Simulation
    'simulate_single_observation_set',
    'simulate_single_observation_set_from_simulator',
    'simulate_observations',

    # Noise
    'NoiseGenerator',
    'FunctionNoiseGenerator',
    'ScalarNoiseGenerator',
    'IndependentScalarNoiseGenerator',
    'ConstantNoiseGenerator',
    'GaussianNoiseGenerator',
    'TabulatedNoiseGenerator',
    'NoiseSettings',
    'add_noise_to_observations',
    'simulate_observations_with_noise',

    # Configuration and reporting
    'SimulationConfig',
    'simulate_from_config',
    'get_observation_statistics',
    'print_observation_summary'
]
