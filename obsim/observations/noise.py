"""
Noise generation and injection for simulated observations.

Noise is added on top of noise-free observations by time-dependent noise
generators. Generators can be configured per observable and link end set,
per observable, or shared by all observables; all of these are normalized
to a single NoiseSettings map keyed by (observable type, link ends).

This module provides:
- NoiseGenerator interface and common implementations
- NoiseSettings: canonical noise configuration and its adapters
- Noise injection into noise-free observations
- Simulation of observations with noise
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Callable, Dict, Iterable, Optional, Sequence, Tuple, Union

import numpy as np

from .errors import InconsistentBatchShape, MissingNoiseGenerator, NoiseDimensionMismatch
from .models import ObservationSimulatorBase
from .simulation import simulate_observations
from .time_settings import ensure_time_settings_map
from .types import LinkEnds, ObservableType, ObservationBatch, ObservationResultMap

logger = logging.getLogger(__name__)


class NoiseGenerator(ABC):
    """Additive observation noise as a function of time."""

    @abstractmethod
    def evaluate(self, time: float) -> np.ndarray:
        """
        Compute the noise at a given time.

        Args:
            time: Observation time

        Returns:
            Noise vector, one entry per observation component
        """

    def __call__(self, time: float) -> np.ndarray:
        return self.evaluate(time)


class FunctionNoiseGenerator(NoiseGenerator):
    """Noise generator wrapping a function returning a noise vector."""

    def __init__(self, function: Callable[[float], object]):
        self.function = function

    def evaluate(self, time: float) -> np.ndarray:
        return np.atleast_1d(np.asarray(self.function(time), dtype=float))


class ScalarNoiseGenerator(NoiseGenerator):
    """
    Broadcast a scalar noise function over all observation components.

    The function is evaluated once per epoch and the same value is added to
    every component of the observation.
    """

    def __init__(self, function: Callable[[float], float], observation_size: int):
        self.function = function
        self.observation_size = observation_size

    def evaluate(self, time: float) -> np.ndarray:
        return np.full(self.observation_size, float(self.function(time)))


class IndependentScalarNoiseGenerator(NoiseGenerator):
    """Evaluate a scalar noise function separately for each observation component."""

    def __init__(self, function: Callable[[float], float], observation_size: int):
        self.function = function
        self.observation_size = observation_size

    def evaluate(self, time: float) -> np.ndarray:
        return np.array([float(self.function(time)) for _ in range(self.observation_size)])


class ConstantNoiseGenerator(NoiseGenerator):
    """Time-independent noise (bias)."""

    def __init__(self, value: Union[float, Sequence[float]], observation_size: Optional[int] = None):
        value = np.atleast_1d(np.asarray(value, dtype=float))
        if observation_size is not None and len(value) == 1:
            value = np.full(observation_size, value[0])
        self.value = value

    def evaluate(self, time: float) -> np.ndarray:
        return self.value.copy()


class GaussianNoiseGenerator(NoiseGenerator):
    """
    Zero-mean (by default) Gaussian noise drawn from a caller-supplied generator.

    The random generator is used as given and is never seeded here; draws
    happen in call order, so results are reproducible only if evaluation
    order is.
    """

    def __init__(self, standard_deviation: Union[float, Sequence[float]],
                 observation_size: int,
                 rng: np.random.Generator,
                 mean: Union[float, Sequence[float]] = 0.0):
        self.standard_deviation = standard_deviation
        self.observation_size = observation_size
        self.rng = rng
        self.mean = mean

    def evaluate(self, time: float) -> np.ndarray:
        return self.rng.normal(self.mean, self.standard_deviation, size=self.observation_size)


class TabulatedNoiseGenerator(NoiseGenerator):
    """Replay of recorded noise samples, looked up by exact time."""

    def __init__(self, noise_samples: Mapping):
        self.noise_samples: Dict[float, np.ndarray] = {
            float(time): np.atleast_1d(np.asarray(sample, dtype=float))
            for time, sample in noise_samples.items()
        }

    def evaluate(self, time: float) -> np.ndarray:
        try:
            return self.noise_samples[float(time)].copy()
        except KeyError:
            raise ValueError(f"No recorded noise sample at t={time}") from None


NoiseFunction = Union[NoiseGenerator, Callable[[float], object]]
NoiseKey = Tuple[ObservableType, LinkEnds]


def as_noise_generator(noise_function: Optional[NoiseFunction],
                       observation_size: int,
                       scalar: bool = False) -> Optional[NoiseGenerator]:
    """
    Wrap a plain callable in the matching NoiseGenerator.

    Args:
        noise_function: Generator or function of time (None is passed through)
        observation_size: Size of the observable the noise applies to
        scalar: Whether a plain function returns a single value to broadcast.
            NoiseGenerator instances are used as given.

    Returns:
        NoiseGenerator, or None if no function was given
    """
    if noise_function is None:
        return None
    if isinstance(noise_function, NoiseGenerator):
        return noise_function
    if scalar:
        return ScalarNoiseGenerator(noise_function, observation_size)
    if not callable(noise_function):
        raise TypeError(f"Noise function must be callable, got {type(noise_function).__name__}")
    return FunctionNoiseGenerator(noise_function)


class NoiseSettings:
    """Noise generators keyed by (observable type, link ends)."""

    def __init__(self, generators: Optional[Mapping] = None):
        self.generators: Dict[NoiseKey, NoiseGenerator] = {}
        for key, generator in (generators or {}).items():
            if generator is not None:
                self.generators[key] = generator

    @classmethod
    def per_link_ends(cls, noise_functions: Mapping,
                      scalar: bool = False) -> "NoiseSettings":
        """
        One noise function per observable and link end set.

        Args:
            noise_functions: Map from observable type to link ends to noise function
            scalar: Whether the functions return a single value to broadcast

        Returns:
            NoiseSettings
        """
        generators = {}
        for observable_type, functions_per_link_ends in noise_functions.items():
            if functions_per_link_ends is None:
                continue
            for link_ends, noise_function in functions_per_link_ends.items():
                generators[(observable_type, link_ends)] = as_noise_generator(
                    noise_function, observable_type.size, scalar)
        return cls(generators)

    @classmethod
    def per_observable(cls, noise_functions: Mapping,
                       link_ends_per_observable: Mapping[ObservableType, Iterable[LinkEnds]],
                       scalar: bool = False) -> "NoiseSettings":
        """
        One noise function per observable, shared by all its link end sets.

        Observables absent from noise_functions (or mapped to None) get no
        generator; adding noise to them raises MissingNoiseGenerator.

        Args:
            noise_functions: Map from observable type to noise function
            link_ends_per_observable: Link end sets to apply each function to
            scalar: Whether the functions return a single value to broadcast

        Returns:
            NoiseSettings
        """
        generators = {}
        for observable_type, link_ends_list in link_ends_per_observable.items():
            generator = as_noise_generator(
                noise_functions.get(observable_type), observable_type.size, scalar)
            if generator is None:
                continue
            for link_ends in link_ends_list:
                generators[(observable_type, link_ends)] = generator
        return cls(generators)

    @classmethod
    def shared(cls, noise_function: NoiseFunction,
               link_ends_per_observable: Mapping[ObservableType, Iterable[LinkEnds]],
               scalar: bool = False) -> "NoiseSettings":
        """One noise function for every observable and link end set."""
        return cls.per_observable(
            {observable_type: noise_function for observable_type in link_ends_per_observable},
            link_ends_per_observable, scalar)

    @classmethod
    def from_config(cls, noise, link_ends_per_observable: Mapping[ObservableType, Iterable[LinkEnds]],
                    scalar: bool = False) -> "NoiseSettings":
        """
        Build NoiseSettings from any of the supported noise configurations.

        Args:
            noise: NoiseSettings, a single noise function, a map from observable
                type to noise function, or a map from observable type to link
                ends to noise function
            link_ends_per_observable: Link end sets being simulated per observable
            scalar: Whether the functions return a single value to broadcast

        Returns:
            NoiseSettings
        """
        if isinstance(noise, NoiseSettings):
            return noise
        if callable(noise):
            return cls.shared(noise, link_ends_per_observable, scalar)
        if isinstance(noise, Mapping):
            nested = [isinstance(value, Mapping) for value in noise.values() if value is not None]
            if nested and all(nested):
                return cls.per_link_ends(noise, scalar)
            if any(nested):
                raise TypeError("Unsupported noise configuration: mixes per link end maps "
                                "with per observable noise functions")
            return cls.per_observable(noise, link_ends_per_observable, scalar)
        raise TypeError(f"Unsupported noise configuration: {type(noise).__name__}")

    def get_generator(self, observable_type: ObservableType, link_ends: LinkEnds) -> NoiseGenerator:
        generator = self.generators.get((observable_type, link_ends))
        if generator is None:
            raise MissingNoiseGenerator("No noise generator", observable_type, link_ends)
        return generator

    def validate(self, link_ends_per_observable: Mapping[ObservableType, Iterable[LinkEnds]]) -> None:
        """Check that every (observable, link ends) combination has a generator."""
        for observable_type, link_ends_list in link_ends_per_observable.items():
            for link_ends in link_ends_list:
                self.get_generator(observable_type, link_ends)

    def __contains__(self, key: NoiseKey) -> bool:
        return key in self.generators

    def __len__(self) -> int:
        return len(self.generators)


def add_noise_to_observation_batch(batch: ObservationBatch,
                                   noise_generator: NoiseGenerator,
                                   observable_type: ObservableType,
                                   link_ends: Optional[LinkEnds] = None) -> ObservationBatch:
    """
    Add noise to a single noise-free observation batch.

    Args:
        batch: Noise-free observations
        noise_generator: Generator evaluated at each observation time
        observable_type: Observable of the batch, defines the observation size
        link_ends: Link ends of the batch (for error messages)

    Returns:
        New ObservationBatch with the same times and reference link end
    """
    size = observable_type.size
    times = batch.times
    if len(batch.observations) != len(times) * size:
        raise InconsistentBatchShape(
            f"{len(batch.observations)} observation components are inconsistent with "
            f"{len(times)} times of size {size}", observable_type, link_ends)

    noisy_observations = np.array(batch.observations, dtype=float)
    for i, time in enumerate(times):
        noise = np.asarray(noise_generator.evaluate(time), dtype=float).reshape(-1)
        # Size is checked on the first sample only; later samples fail on addition
        if i == 0 and len(noise) != size:
            raise NoiseDimensionMismatch(
                f"Noise of size {len(noise)} for observable of size {size}",
                observable_type, link_ends)
        try:
            noisy_observations[i * size:(i + 1) * size] += noise
        except ValueError:
            raise NoiseDimensionMismatch(
                f"Noise of size {len(noise)} at t={time} for observable of size {size}",
                observable_type, link_ends) from None

    return ObservationBatch(
        observations=noisy_observations,
        times=times,
        reference_link_end=batch.reference_link_end,
        observation_size=size
    )


def add_noise_to_observations(noise_free_observations: ObservationResultMap,
                              noise_settings: NoiseSettings) -> ObservationResultMap:
    """
    Add noise to all noise-free observations.

    Args:
        noise_free_observations: Result of simulate_observations (not modified)
        noise_settings: Generator per observable and link end set

    Returns:
        New map with the same keys holding noisy observation batches
    """
    noisy_observations: ObservationResultMap = {}
    for observable_type, batches in noise_free_observations.items():
        noisy_observations[observable_type] = {}
        for link_ends, batch in batches.items():
            generator = noise_settings.get_generator(observable_type, link_ends)
            noisy_observations[observable_type][link_ends] = add_noise_to_observation_batch(
                batch, generator, observable_type, link_ends)
    return noisy_observations


def simulate_observations_with_noise(observations_to_simulate: Mapping,
                                     observation_simulators: Mapping[ObservableType, ObservationSimulatorBase],
                                     noise,
                                     max_workers: Optional[int] = None,
                                     scalar_noise: bool = False) -> ObservationResultMap:
    """
    Simulate observations and add noise to them.

    Args:
        observations_to_simulate: Per observable and link end set, either
            ObservationTimeSettings or a plain (times, reference link end) pair
        observation_simulators: Registry (or plain map) of simulators per observable
        noise: NoiseSettings, a single noise function, a map from observable
            type to noise function, or a map from observable type to link ends
            to noise function
        max_workers: Parallelism of the noise-free simulation (see simulate_observations)
        scalar_noise: Whether plain noise functions return a single value that
            is added to every observation component

    Returns:
        Map from observable type to link ends to noisy ObservationBatch
    """
    time_settings_map = ensure_time_settings_map(observations_to_simulate)
    link_ends_per_observable = {observable_type: list(settings_per_link_ends)
                                for observable_type, settings_per_link_ends in time_settings_map.items()}

    noise_settings = NoiseSettings.from_config(noise, link_ends_per_observable, scalar_noise)
    noise_settings.validate(link_ends_per_observable)

    noise_free_observations = simulate_observations(
        time_settings_map, observation_simulators, max_workers=max_workers)
    noisy_observations = add_noise_to_observations(noise_free_observations, noise_settings)

    logger.info(f"Added noise to {sum(len(b) for b in noisy_observations.values())} observation sets")
    return noisy_observations
