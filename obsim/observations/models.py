"""
Observation model interfaces and the simulator registry.

The physical observation models (range, Doppler, angles, ...) live outside
this package; they are wrapped here behind a single-method capability
interface so the simulation code only ever calls evaluate(time).

This module provides:
- ObservationModel: fixed-size observation as a function of time
- ObservationSimulator: observation models of one observable per link end set
- ObservationSimulatorRegistry: simulators keyed by observable type
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Callable, Dict, Iterator, Optional

import numpy as np

from .errors import ModelTypeMismatch, ModelUnavailable
from .types import LinkEnds, ObservableType


class ObservationModel(ABC):
    """Observation of fixed size, evaluated at a given time."""

    def __init__(self, observation_size: int):
        if observation_size < 1:
            raise ValueError(f"Observation size must be positive, got {observation_size}")
        self.observation_size = int(observation_size)

    @abstractmethod
    def evaluate(self, time: float) -> np.ndarray:
        """
        Compute the observation at a given time.

        Args:
            time: Evaluation time, expressed in the reference link end's time

        Returns:
            Observation vector of length observation_size
        """

    def __call__(self, time: float) -> np.ndarray:
        return self.evaluate(time)


class FunctionObservationModel(ObservationModel):
    """Observation model wrapping a plain function of time."""

    def __init__(self, function: Callable[[float], object], observation_size: int = 1):
        super().__init__(observation_size)
        self.function = function

    def evaluate(self, time: float) -> np.ndarray:
        return np.atleast_1d(np.asarray(self.function(time), dtype=float))

    def __repr__(self) -> str:
        name = getattr(self.function, "__name__", repr(self.function))
        return f"FunctionObservationModel({name}, size={self.observation_size})"


class ObservationSimulatorBase(ABC):
    """Interface of the object creating observation models for one observable type."""

    def __init__(self, observable_type: ObservableType):
        self.observable_type = observable_type

    @abstractmethod
    def get_observation_size(self, link_ends: LinkEnds) -> int:
        """Size of a single observation for the given link end set."""

    @abstractmethod
    def get_observation_model(self, link_ends: LinkEnds) -> ObservationModel:
        """Observation model for the given link end set."""

    def supports_observation_size(self, observation_size: int) -> bool:
        """Whether this simulator can provide models of the given fixed size."""
        return True


class ObservationSimulator(ObservationSimulatorBase):
    """
    Observation models of one observable type, one per link end set.

    If observation_size is given the simulator is restricted to models of
    that size, otherwise each model determines its own size.
    """

    def __init__(self, observable_type: ObservableType,
                 observation_models: Mapping[LinkEnds, ObservationModel],
                 observation_size: Optional[int] = None):
        super().__init__(observable_type)
        self.observation_size = observation_size
        self.observation_models: Dict[LinkEnds, ObservationModel] = dict(observation_models)

        if observation_size is not None:
            for link_ends, model in self.observation_models.items():
                if model is not None and model.observation_size != observation_size:
                    raise ModelTypeMismatch(
                        f"Model of size {model.observation_size} added to simulator "
                        f"of size {observation_size}", observable_type, link_ends)

    @classmethod
    def from_functions(cls, observable_type: ObservableType,
                       functions: Mapping[LinkEnds, Callable[[float], object]],
                       observation_size: Optional[int] = None) -> "ObservationSimulator":
        """
        Build a simulator from plain functions of time.

        Args:
            observable_type: Observable the functions compute
            functions: Function of time per link end set
            observation_size: Size of the function outputs (defaults to the
                observable's size)

        Returns:
            ObservationSimulator wrapping each function in a FunctionObservationModel
        """
        size = observation_size or observable_type.size
        models = {link_ends: FunctionObservationModel(function, size)
                  for link_ends, function in functions.items()}
        return cls(observable_type, models, observation_size)

    def get_observation_model(self, link_ends: LinkEnds) -> ObservationModel:
        model = self.observation_models.get(link_ends)
        if model is None:
            raise ModelUnavailable("No observation model for link ends",
                                   self.observable_type, link_ends)
        return model

    def get_observation_size(self, link_ends: LinkEnds) -> int:
        return self.get_observation_model(link_ends).observation_size

    def supports_observation_size(self, observation_size: int) -> bool:
        return self.observation_size is None or self.observation_size == observation_size

    def __repr__(self) -> str:
        return (f"ObservationSimulator({self.observable_type.value}, "
                f"n_link_ends={len(self.observation_models)}, size={self.observation_size})")


class ObservationSimulatorRegistry(Mapping):
    """Observation simulators keyed by observable type."""

    def __init__(self, simulators: Optional[Mapping[ObservableType, ObservationSimulatorBase]] = None):
        self._simulators: Dict[ObservableType, ObservationSimulatorBase] = {}
        for observable_type, simulator in (simulators or {}).items():
            self.add(observable_type, simulator)

    @classmethod
    def from_simulators(cls, simulators: Mapping) -> "ObservationSimulatorRegistry":
        """Wrap a plain mapping, passing registries through unchanged."""
        if isinstance(simulators, cls):
            return simulators
        return cls(simulators)

    def add(self, observable_type: ObservableType, simulator: ObservationSimulatorBase) -> None:
        self._simulators[observable_type] = simulator

    def get_simulator(self, observable_type: ObservableType) -> ObservationSimulatorBase:
        simulator = self._simulators.get(observable_type)
        if simulator is None:
            raise ModelUnavailable("No observation simulator registered", observable_type)
        return simulator

    def resolve(self, observable_type: ObservableType, link_ends: LinkEnds) -> ObservationModel:
        return self.get_simulator(observable_type).get_observation_model(link_ends)

    def dimensionality(self, observable_type: ObservableType, link_ends: LinkEnds) -> int:
        return self.get_simulator(observable_type).get_observation_size(link_ends)

    def __getitem__(self, observable_type: ObservableType) -> ObservationSimulatorBase:
        return self._simulators[observable_type]

    def __iter__(self) -> Iterator[ObservableType]:
        return iter(self._simulators)

    def __len__(self) -> int:
        return len(self._simulators)
