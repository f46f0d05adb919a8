"""
Core data types for observation simulation.

This module provides:
- Observable type and link end role enumerations
- Link end identifiers and hashable link end sets
- The ObservationBatch container produced by the simulators
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from collections.abc import Mapping
from functools import total_ordering
from typing import Dict, Iterator, Tuple, Union

import numpy as np

from .errors import InconsistentBatchShape


class ObservableType(Enum):
    """Category of measurement."""
    ONE_WAY_RANGE = "one_way_range"
    ANGULAR_POSITION = "angular_position"
    POSITION_OBSERVABLE = "position_observable"
    ONE_WAY_DOPPLER = "one_way_doppler"
    ONE_WAY_DIFFERENCED_RANGE = "one_way_differenced_range"
    N_WAY_RANGE = "n_way_range"
    TWO_WAY_DOPPLER = "two_way_doppler"
    EULER_ANGLE_313 = "euler_angle_313"
    VELOCITY_OBSERVABLE = "velocity_observable"

    @property
    def size(self) -> int:
        """Fixed number of components of a single observation."""
        return OBSERVABLE_SIZES[self]


OBSERVABLE_SIZES: Dict[ObservableType, int] = {
    ObservableType.ONE_WAY_RANGE: 1,
    ObservableType.ANGULAR_POSITION: 2,         # right ascension, declination
    ObservableType.POSITION_OBSERVABLE: 3,
    ObservableType.ONE_WAY_DOPPLER: 1,
    ObservableType.ONE_WAY_DIFFERENCED_RANGE: 1,
    ObservableType.N_WAY_RANGE: 1,
    ObservableType.TWO_WAY_DOPPLER: 1,
    ObservableType.EULER_ANGLE_313: 3,
    ObservableType.VELOCITY_OBSERVABLE: 3,
}


def get_observable_size(observable_type: ObservableType) -> int:
    """
    Get the dimensionality of an observable type.

    Args:
        observable_type: Observable to look up

    Returns:
        Number of components per observation
    """
    return OBSERVABLE_SIZES[observable_type]


class LinkEndRole(IntEnum):
    """Role of a participant in a tracking link."""
    UNIDENTIFIED = -1
    TRANSMITTER = 0
    REFLECTOR1 = 1
    RETRANSMITTER = 1
    REFLECTOR2 = 2
    REFLECTOR3 = 3
    REFLECTOR4 = 4
    RECEIVER = 5
    OBSERVED_BODY = 6

    @classmethod
    def from_name(cls, name: Union[str, "LinkEndRole"]) -> "LinkEndRole":
        """Parse a role from its (case-insensitive) name."""
        if isinstance(name, cls):
            return name
        try:
            return cls[str(name).strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown link end role: {name}") from None


@dataclass(frozen=True, order=True)
class LinkEndId:
    """Participant in a link: a body and, optionally, a station on it."""
    body: str
    station: str = ""

    def __str__(self) -> str:
        return f"{self.body}/{self.station}" if self.station else self.body


@total_ordering
class LinkEnds(Mapping):
    """
    Immutable set of link ends forming one measurement geometry.

    Behaves as a read-only mapping from LinkEndRole to LinkEndId. Two
    instances with the same content are equal and hash identically, so
    link end sets can be used as dictionary keys.
    """

    __slots__ = ("_items",)

    def __init__(self, link_ends: Union[Mapping, None] = None, **roles):
        items = dict(link_ends or {})
        for role_name, link_end in roles.items():
            items[LinkEndRole.from_name(role_name)] = link_end

        normalized = {}
        for role, link_end in items.items():
            role = LinkEndRole.from_name(role)
            if isinstance(link_end, str):
                link_end = LinkEndId(link_end)
            elif isinstance(link_end, (tuple, list)):
                link_end = LinkEndId(*link_end)
            elif not isinstance(link_end, LinkEndId):
                raise TypeError(f"Cannot interpret {link_end!r} as a link end for role {role.name}")
            normalized[role] = link_end

        self._items: Tuple[Tuple[LinkEndRole, LinkEndId], ...] = tuple(sorted(normalized.items()))

    def __getitem__(self, role: LinkEndRole) -> LinkEndId:
        for item_role, link_end in self._items:
            if item_role == role:
                return link_end
        raise KeyError(role)

    def __iter__(self) -> Iterator[LinkEndRole]:
        return (role for role, _ in self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __hash__(self) -> int:
        return hash(self._items)

    def __eq__(self, other) -> bool:
        if not isinstance(other, LinkEnds):
            return NotImplemented
        return self._items == other._items

    def __lt__(self, other: "LinkEnds") -> bool:
        if not isinstance(other, LinkEnds):
            return NotImplemented
        return self._items < other._items

    def __repr__(self) -> str:
        content = ", ".join(f"{role.name.lower()}={link_end}" for role, link_end in self._items)
        return f"LinkEnds({content})"


@dataclass(frozen=True, eq=False)
class ObservationBatch:
    """
    Simulated observations of one observable for one link end set.

    Observations are stored as a flat vector: the components of the
    observation at times[i] occupy
    observations[i * observation_size:(i + 1) * observation_size].
    Both arrays are copied on construction and made read-only.
    """
    observations: np.ndarray
    times: np.ndarray
    reference_link_end: LinkEndRole
    observation_size: int = 1

    def __post_init__(self):
        observations = np.array(self.observations, dtype=float).reshape(-1)
        times = np.array(self.times, dtype=float).reshape(-1)
        observations.setflags(write=False)
        times.setflags(write=False)
        object.__setattr__(self, "observations", observations)
        object.__setattr__(self, "times", times)

        if self.observation_size < 1:
            raise InconsistentBatchShape(
                f"Observation size must be positive, got {self.observation_size}")
        if len(observations) != len(times) * self.observation_size:
            raise InconsistentBatchShape(
                f"{len(observations)} observation components do not match "
                f"{len(times)} epochs of size {self.observation_size}")

    def __len__(self) -> int:
        return len(self.times)

    def __eq__(self, other) -> bool:
        if not isinstance(other, ObservationBatch):
            return NotImplemented
        return (self.reference_link_end == other.reference_link_end
                and self.observation_size == other.observation_size
                and np.array_equal(self.times, other.times)
                and np.array_equal(self.observations, other.observations))

    def as_matrix(self) -> np.ndarray:
        """Observations as an (n_epochs, observation_size) read-only view."""
        return self.observations.reshape(len(self.times), self.observation_size)

    def as_tuple(self) -> Tuple[np.ndarray, Tuple[np.ndarray, LinkEndRole]]:
        """Canonical (observations, (times, reference link end)) triple."""
        return self.observations, (self.times, self.reference_link_end)


ObservationResultMap = Dict[ObservableType, Dict[LinkEnds, ObservationBatch]]
