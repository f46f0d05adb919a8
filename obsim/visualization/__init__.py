"""Visualization of simulated observations."""

from .observation_plots import plot_noise_residuals, plot_observations

__all__ = ['plot_observations', 'plot_noise_residuals']
