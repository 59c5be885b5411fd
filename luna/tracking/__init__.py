"""Cycle tracking for Luna.

Modules:
    config_loader — Load/validate tracking_config.yaml (sanity windows, defaults)
    cycle_stats   — Averages, next-period forecast, active-period detection
    tracker       — User-facing operations: onboarding, start/end period, notes, status
"""

from luna.tracking.config_loader import TrackingConfig, get_tracking_config
from luna.tracking.cycle_stats import NextPeriodForecast, forecast_next_period

__all__ = [
    "NextPeriodForecast",
    "TrackingConfig",
    "forecast_next_period",
    "get_tracking_config",
]
