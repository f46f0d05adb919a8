"""
Statistics of simulated observation sets.
"""

from typing import Dict

import numpy as np

from .types import ObservationResultMap


def get_observation_statistics(observations: ObservationResultMap) -> Dict:
    """
    Summarize a set of simulated observations.

    Args:
        observations: Map from observable type to link ends to ObservationBatch

    Returns:
        Dictionary with counts per observable and the covered time span
    """
    stats = {
        'observable_types': len(observations),
        'observation_sets': sum(len(batches) for batches in observations.values()),
        'total_observations': 0,
        'per_observable': {},
        'time_coverage': {
            'min_time': 0.0,
            'max_time': 0.0,
            'total_hours': 0.0
        }
    }

    all_times = []
    for observable_type, batches in observations.items():
        n_observations = sum(len(batch) for batch in batches.values())
        stats['per_observable'][observable_type.value] = {
            'link_end_sets': len(batches),
            'observations': n_observations,
            'observation_sizes': sorted({batch.observation_size for batch in batches.values()})
        }
        stats['total_observations'] += n_observations
        all_times.extend(batch.times for batch in batches.values() if len(batch))

    if all_times:
        times = np.concatenate(all_times)
        stats['time_coverage']['min_time'] = float(times.min())
        stats['time_coverage']['max_time'] = float(times.max())
        stats['time_coverage']['total_hours'] = float(times.max() - times.min()) / 3600.0

    return stats


def print_observation_summary(observations: ObservationResultMap) -> None:
    """Print a human-readable summary of simulated observations."""
    stats = get_observation_statistics(observations)

    print("Observation Summary:")
    print("=" * 40)
    print(f"Observable types: {stats['observable_types']}")
    print(f"Observation sets: {stats['observation_sets']}")
    print(f"Total observations: {stats['total_observations']}")
    print(f"Time coverage: {stats['time_coverage']['total_hours']:.1f} hours")

    print("\nObservations by observable:")
    for name, observable_stats in stats['per_observable'].items():
        sizes = ', '.join(str(size) for size in observable_stats['observation_sizes'])
        print(f"  {name}: {observable_stats['observations']} over "
              f"{observable_stats['link_end_sets']} link end sets (size {sizes})")
