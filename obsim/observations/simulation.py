"""
Simulation of noise-free observations.

This module provides:
- Simulation of a single observation set from time settings and a model
- Dispatch of each (observable, link ends) combination to the handler for
  its fixed observation size
- Simulation of the complete set of observations, optionally in parallel
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Callable, Dict, List, Mapping, Optional, Tuple, Union

import numpy as np

from .errors import (
    ModelTypeMismatch,
    ModelUnavailable,
    ObservationSizeMismatch,
    UnsupportedObservationSize,
)
from .models import ObservationModel, ObservationSimulatorBase, ObservationSimulatorRegistry
from .time_settings import (
    ObservationTimeSettings,
    PlainTimesMap,
    TimeSettingsMap,
    ensure_time_settings_map,
)
from .types import LinkEnds, ObservableType, ObservationBatch, ObservationResultMap

logger = logging.getLogger(__name__)

SUPPORTED_OBSERVATION_SIZES = (1, 2, 3)


def simulate_single_observation_set(time_settings: ObservationTimeSettings,
                                    observation_model: Optional[ObservationModel]) -> ObservationBatch:
    """
    Simulate observations of one model at all epochs of the time settings.

    Args:
        time_settings: Epochs and the link end role they refer to
        observation_model: Model evaluated once per epoch, in epoch order

    Returns:
        ObservationBatch with the concatenated observations and the epochs
        exactly as produced by the time settings
    """
    if observation_model is None:
        raise ModelUnavailable("Observation model is None")

    times = time_settings.get_simulation_times()
    size = observation_model.observation_size
    observations = np.empty(len(times) * size)

    for i, time in enumerate(times):
        observation = np.asarray(observation_model.evaluate(time), dtype=float).reshape(-1)
        if len(observation) != size:
            raise ObservationSizeMismatch(
                f"Observation model returned {len(observation)} components at t={time}, "
                f"expected {size}")
        observations[i * size:(i + 1) * size] = observation

    return ObservationBatch(
        observations=observations,
        times=times,
        reference_link_end=time_settings.reference_link_end,
        observation_size=size
    )


def simulate_single_observation_set_from_simulator(time_settings: ObservationTimeSettings,
                                                   observation_simulator: Optional[ObservationSimulatorBase],
                                                   link_ends: LinkEnds) -> ObservationBatch:
    """
    Simulate one observation set, retrieving the model from a simulator.

    Args:
        time_settings: Epochs and the link end role they refer to
        observation_simulator: Simulator of the observable to compute
        link_ends: Link end set for which to retrieve the model

    Returns:
        ObservationBatch for the given link ends
    """
    if observation_simulator is None:
        raise ModelUnavailable("Observation simulator is None", link_ends=link_ends)
    return simulate_single_observation_set(
        time_settings, observation_simulator.get_observation_model(link_ends))


def _simulate_fixed_size(observation_size: int,
                         time_settings: ObservationTimeSettings,
                         observation_simulator: ObservationSimulatorBase,
                         link_ends: LinkEnds) -> ObservationBatch:
    """Narrow the simulator to one observation size and simulate."""
    if not observation_simulator.supports_observation_size(observation_size):
        raise ModelTypeMismatch(
            f"Simulator cannot be narrowed to observation size {observation_size}",
            observation_simulator.observable_type, link_ends)

    model = observation_simulator.get_observation_model(link_ends)
    if model is None or model.observation_size != observation_size:
        raise ModelTypeMismatch(
            f"Observation model is not of size {observation_size}",
            observation_simulator.observable_type, link_ends)

    return simulate_single_observation_set(time_settings, model)


SIZE_HANDLERS: Dict[int, Callable[..., ObservationBatch]] = {
    size: partial(_simulate_fixed_size, size) for size in SUPPORTED_OBSERVATION_SIZES
}


def _simulate_link_ends(observable_type: ObservableType,
                        link_ends: LinkEnds,
                        time_settings: ObservationTimeSettings,
                        registry: ObservationSimulatorRegistry) -> ObservationBatch:
    observation_size = registry.dimensionality(observable_type, link_ends)

    handler = SIZE_HANDLERS.get(observation_size)
    if handler is None:
        raise UnsupportedObservationSize(observation_size, observable_type, link_ends)

    batch = handler(time_settings, registry.get_simulator(observable_type), link_ends)
    logger.debug(f"Simulated {len(batch)} {observable_type.value} observations for {link_ends!r}")
    return batch


def _resolve_workers(n_tasks: int, max_workers: Optional[int]) -> int:
    if max_workers is None:
        return 1
    if max_workers <= 0:
        max_workers = os.cpu_count() or 1
    return max(1, min(max_workers, n_tasks))


def _run_tasks(tasks: List[Callable[[], ObservationBatch]], max_workers: Optional[int]) -> List[ObservationBatch]:
    """
    Run independent batch tasks, sequentially or in a thread pool.

    Results are returned in task order. If any task fails, the failure of
    the first failing task in task order is raised and no results are returned.
    """
    workers = _resolve_workers(len(tasks), max_workers)
    if workers == 1:
        return [task() for task in tasks]

    logger.debug(f"Running {len(tasks)} observation batches on {workers} workers")
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(task) for task in tasks]

    # Pool has shut down here, every future is done
    return [future.result() for future in futures]


def simulate_observations(observations_to_simulate: Union[TimeSettingsMap, PlainTimesMap],
                          observation_simulators: Mapping[ObservableType, ObservationSimulatorBase],
                          max_workers: Optional[int] = None) -> ObservationResultMap:
    """
    Simulate noise-free observations for all observables and link end sets.

    Args:
        observations_to_simulate: Per observable and link end set, either
            ObservationTimeSettings or a plain (times, reference link end) pair
        observation_simulators: Registry (or plain map) of simulators per observable
        max_workers: Number of threads used to simulate batches in parallel.
            None runs sequentially, 0 or less uses one thread per CPU.

    Returns:
        Map from observable type to link ends to ObservationBatch, with the
        keys in the order of observations_to_simulate
    """
    time_settings_map = ensure_time_settings_map(observations_to_simulate)
    registry = ObservationSimulatorRegistry.from_simulators(observation_simulators)

    keys: List[Tuple[ObservableType, LinkEnds]] = []
    tasks: List[Callable[[], ObservationBatch]] = []
    for observable_type, settings_per_link_ends in time_settings_map.items():
        for link_ends, time_settings in settings_per_link_ends.items():
            keys.append((observable_type, link_ends))
            tasks.append(partial(_simulate_link_ends, observable_type, link_ends,
                                 time_settings, registry))

    batches = _run_tasks(tasks, max_workers)

    observations: ObservationResultMap = {observable_type: {} for observable_type in time_settings_map}
    for (observable_type, link_ends), batch in zip(keys, batches):
        observations[observable_type][link_ends] = batch

    logger.info(f"Simulated {len(batches)} observation sets for {len(observations)} observable types")
    return observations
