"""
Observation simulation for orbit determination and navigation analysis.

Turns observation schedules, link end configurations and observation models
into synthetic measurement batches, optionally corrupted with noise.
"""

__version__ = "0.1.0"
