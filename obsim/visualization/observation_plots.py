"""
Plots of simulated observations.

This module creates:
1. Observation time series per observable and link end set
2. Noise residuals (noisy minus noise-free observations)
"""

from pathlib import Path
from typing import Optional, Union

import numpy as np
import matplotlib.pyplot as plt

from ..observations.types import ObservationResultMap


def _link_ends_label(link_ends) -> str:
    return ", ".join(
        f"{role.name.lower()}: {link_end_id.body}" + (f"/{link_end_id.station}" if link_end_id.station else "")
        for role, link_end_id in link_ends.items()
    )


def _save(fig, save_path: Optional[Union[str, Path]]) -> None:
    if save_path is not None:
        save_path = Path(save_path)
        save_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(save_path, dpi=300, bbox_inches='tight')


def plot_observations(observations: ObservationResultMap,
                      save_path: Optional[Union[str, Path]] = None):
    """
    Plot every observation component against its epochs.

    One subplot per observable type; one line per link end set and component.

    Args:
        observations: Map from observable type to link ends to ObservationBatch
        save_path: Optional file to save the figure to

    Returns:
        matplotlib Figure
    """
    n_observables = max(len(observations), 1)
    fig, axes = plt.subplots(n_observables, 1, figsize=(10, 3.5 * n_observables), squeeze=False)

    for ax, (observable_type, batches) in zip(axes[:, 0], observations.items()):
        for link_ends, batch in batches.items():
            values = batch.as_matrix()
            for component in range(batch.observation_size):
                label = _link_ends_label(link_ends)
                if batch.observation_size > 1:
                    label += f" [{component}]"
                ax.plot(batch.times, values[:, component], marker='o', markersize=3, label=label)

        ax.set_title(observable_type.value.replace('_', ' ').title())
        ax.set_xlabel("Time (s)")
        ax.grid(True, alpha=0.3)
        if batches:
            ax.legend(fontsize=8)

    fig.tight_layout()
    _save(fig, save_path)
    return fig


def plot_noise_residuals(noise_free_observations: ObservationResultMap,
                         noisy_observations: ObservationResultMap,
                         save_path: Optional[Union[str, Path]] = None):
    """Plot noisy minus noise-free observations per observable type."""
    n_observables = max(len(noisy_observations), 1)
    fig, axes = plt.subplots(n_observables, 1, figsize=(10, 3.5 * n_observables), squeeze=False)

    for ax, (observable_type, batches) in zip(axes[:, 0], noisy_observations.items()):
        for link_ends, noisy_batch in batches.items():
            noise_free_batch = noise_free_observations[observable_type][link_ends]
            residuals = noisy_batch.as_matrix() - noise_free_batch.as_matrix()
            rms = np.sqrt(np.mean(residuals ** 2)) if residuals.size else 0.0
            ax.plot(noisy_batch.times, residuals, '.', alpha=0.7,
                    label=f"{_link_ends_label(link_ends)} (RMS {rms:.3g})")

        ax.set_title(f"{observable_type.value.replace('_', ' ').title()} residuals")
        ax.set_xlabel("Time (s)")
        ax.grid(True, alpha=0.3)
        if batches:
            ax.legend(fontsize=8)

    fig.tight_layout()
    _save(fig, save_path)
    return fig
