"""
Exceptions raised during observation simulation.

All errors are deterministic configuration or logic errors: they are raised
immediately and never retried. A batch that fails is never returned.
"""

from typing import Any, Optional


class ObservationSimulationError(Exception):
    """Base class for all observation simulation errors."""

    def __init__(self, message: str,
                 observable_type: Optional[Any] = None,
                 link_ends: Optional[Any] = None):
        self.observable_type = observable_type
        self.link_ends = link_ends
        context = []
        if observable_type is not None:
            context.append(f"observable={getattr(observable_type, 'value', observable_type)}")
        if link_ends is not None:
            context.append(f"link_ends={link_ends!r}")
        if context:
            message = f"{message} ({', '.join(context)})"
        super().__init__(message)


class ModelUnavailable(ObservationSimulationError):
    """A required observation model or simulator could not be obtained."""


class UnsupportedObservationSize(ObservationSimulationError):
    """Observation size outside the supported set of dimensionalities."""

    def __init__(self, size: int, observable_type=None, link_ends=None):
        self.size = size
        super().__init__(
            f"Simulation of observations not implemented for size {size}",
            observable_type, link_ends)


class ModelTypeMismatch(ObservationSimulationError):
    """Simulator cannot be narrowed to the expected fixed observation size."""


class ObservationSizeMismatch(ModelTypeMismatch):
    """Observation model returned a vector of the wrong length."""


class InconsistentBatchShape(ObservationSimulationError):
    """Number of observation components does not match the number of epochs."""


class MissingNoiseGenerator(ObservationSimulationError):
    """No noise generator configured for an observable/link end combination."""


class NoiseDimensionMismatch(ObservationSimulationError):
    """Noise generator output length disagrees with the observable size."""


class InvalidTimeSettings(ObservationSimulationError):
    """Observation time settings cannot produce a valid epoch sequence."""


class UnsupportedTimeSettings(ObservationSimulationError):
    """Observation time settings of a type the simulator cannot interpret."""
