"""Luna — personal menstrual cycle tracking.

Subpackages:
    models   — Pydantic records for profile, cycles and daily advice
    storage  — Key-value store backends and the typed repository on top
    tracking — Cycle statistics, forecasting and the tracker service
    advice   — Remote advice provider and the per-day advice cache
"""

__version__ = "0.1.0"
