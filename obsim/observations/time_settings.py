"""
Settings defining the epochs at which observations are simulated.

This module provides:
- Base time settings holding the reference link end role
- Tabulated settings (explicit list of epochs)
- Interval settings (regularly spaced epochs)
- Conversion from plain (times, role) maps to time settings maps
"""

import warnings
from typing import Dict, Mapping, Sequence, Tuple

import numpy as np

from .errors import InvalidTimeSettings, UnsupportedTimeSettings
from .types import LinkEndRole, LinkEnds, ObservableType


class ObservationTimeSettings:
    """
    Base class for observation simulation times.

    Only the link end whose time reference the epochs are expressed in is
    stored here. Subclasses define how the epochs themselves are produced by
    overriding get_simulation_times.
    """

    def __init__(self, reference_link_end: LinkEndRole):
        self.reference_link_end = LinkEndRole.from_name(reference_link_end)

    def get_simulation_times(self) -> np.ndarray:
        """Ordered epochs at which to simulate observations."""
        raise UnsupportedTimeSettings(
            f"Time settings of type {type(self).__name__} do not define simulation times")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(reference_link_end={self.reference_link_end.name})"


class TabulatedObservationTimeSettings(ObservationTimeSettings):
    """Observation times given as an explicit list of epochs."""

    def __init__(self, reference_link_end: LinkEndRole, simulation_times: Sequence[float]):
        super().__init__(reference_link_end)
        self.simulation_times = np.array(simulation_times, dtype=float).reshape(-1)
        self.simulation_times.setflags(write=False)

        # Order is preserved as given
        if np.any(np.diff(self.simulation_times) < 0):
            warnings.warn("Tabulated observation times are not monotonically increasing")

    def get_simulation_times(self) -> np.ndarray:
        return self.simulation_times

    def __repr__(self) -> str:
        return (f"TabulatedObservationTimeSettings(reference_link_end={self.reference_link_end.name}, "
                f"n_times={len(self.simulation_times)})")


class IntervalObservationTimeSettings(ObservationTimeSettings):
    """Observation times spaced regularly between a start and end epoch (inclusive)."""

    def __init__(self, reference_link_end: LinkEndRole,
                 start_time: float, end_time: float, time_step: float):
        super().__init__(reference_link_end)
        if time_step <= 0:
            raise InvalidTimeSettings(f"Time step must be positive, got {time_step}")
        if end_time < start_time:
            raise InvalidTimeSettings(
                f"End time {end_time} is before start time {start_time}")

        self.start_time = float(start_time)
        self.end_time = float(end_time)
        self.time_step = float(time_step)

    def get_simulation_times(self) -> np.ndarray:
        # Small tolerance so an end time on the grid is included
        n_steps = int(np.floor((self.end_time - self.start_time) / self.time_step + 1e-9))
        return self.start_time + self.time_step * np.arange(n_steps + 1)

    def __repr__(self) -> str:
        return (f"IntervalObservationTimeSettings(reference_link_end={self.reference_link_end.name}, "
                f"start={self.start_time}, end={self.end_time}, step={self.time_step})")


TimeSettingsMap = Dict[ObservableType, Dict[LinkEnds, ObservationTimeSettings]]
PlainTimesMap = Mapping[ObservableType, Mapping[LinkEnds, Tuple[Sequence[float], LinkEndRole]]]


def create_observation_time_settings_map(observation_times: PlainTimesMap) -> TimeSettingsMap:
    """
    Convert plain (times, reference link end) pairs to tabulated time settings.

    Args:
        observation_times: Per observable and link end set, the epochs and
            the link end role they refer to

    Returns:
        Map with the same keys holding TabulatedObservationTimeSettings
    """
    settings_map: TimeSettingsMap = {}
    for observable_type, times_per_link_ends in observation_times.items():
        settings_map[observable_type] = {}
        for link_ends, entry in times_per_link_ends.items():
            if isinstance(entry, ObservationTimeSettings):
                settings_map[observable_type][link_ends] = entry
                continue
            times, reference_link_end = entry
            settings_map[observable_type][link_ends] = TabulatedObservationTimeSettings(
                reference_link_end, times)
    return settings_map


def ensure_time_settings_map(observations_to_simulate) -> TimeSettingsMap:
    """Return the map unchanged if it already holds time settings, otherwise convert it."""
    for settings_per_link_ends in observations_to_simulate.values():
        for settings in settings_per_link_ends.values():
            if not isinstance(settings, ObservationTimeSettings):
                return create_observation_time_settings_map(observations_to_simulate)
    return observations_to_simulate
