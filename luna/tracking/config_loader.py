"""Load, validate, and hot-reload the Luna tracking configuration.

The config lives in ``tracking_config.yaml`` alongside this module.  At
startup it is loaded once and cached.  Call ``reload_tracking_config()`` to
re-read from disk.

Usage::

    from luna.tracking.config_loader import get_tracking_config

    config = get_tracking_config()
    config.cycle_length.accepts(28)         # True
    config.period_duration.accepts(20)      # False
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path

import yaml

logger = logging.getLogger("luna.tracking.config")

# Path to the YAML file sitting next to this module
_CONFIG_PATH = Path(__file__).parent / "tracking_config.yaml"


# ---------------------------------------------------------------------------
# Typed config sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SanityWindow:
    """Accepted range for a date-derived sample, in days.

    Attributes:
        lower:           Lower bound.
        upper:           Upper bound.
        lower_inclusive: Whether ``lower`` itself is accepted.
        upper_inclusive: Whether ``upper`` itself is accepted.
    """

    lower: int
    upper: int
    lower_inclusive: bool = True
    upper_inclusive: bool = False

    def accepts(self, value: int) -> bool:
        above = value >= self.lower if self.lower_inclusive else value > self.lower
        below = value <= self.upper if self.upper_inclusive else value < self.upper
        return above and below


@dataclass(frozen=True)
class TrackingConfig:
    """Complete, validated tracking configuration.

    Attributes:
        version:                 Config schema version string.
        default_cycle_length:    Profile default before any history exists.
        default_period_duration: Profile default before any history exists.
        period_duration:         Window for per-cycle period durations.
        cycle_length:            Window for gaps between consecutive starts.
        max_active_period_days:  Open cycles older than this are not "active".
        history_chart_cycles:    Number of recent cycles in the duration chart.
    """

    version: str
    default_cycle_length: int
    default_period_duration: int
    period_duration: SanityWindow
    cycle_length: SanityWindow
    max_active_period_days: int
    history_chart_cycles: int


# ---------------------------------------------------------------------------
# Loader / validation
# ---------------------------------------------------------------------------


class ConfigValidationError(ValueError):
    """Raised when tracking_config.yaml fails validation."""


def _load_yaml(path: Path) -> dict:
    """Read and parse a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigValidationError: If the YAML is malformed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Tracking config not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            return yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigValidationError(f"YAML parse error in {path}: {exc}") from exc


def _validate_and_build(raw: dict) -> TrackingConfig:
    """Validate the raw YAML dict and construct a TrackingConfig.

    Missing sections fall back to the built-in defaults; present values must
    be positive integers and every window must be non-empty.

    Raises:
        ConfigValidationError: If any value is invalid.
    """
    errors: list[str] = []

    def _int(section: dict, key: str, default: int, where: str) -> int:
        value = section.get(key, default)
        try:
            number = int(value)
        except (TypeError, ValueError):
            errors.append(f"{where}.{key} must be an integer, got {value!r}")
            return default
        if number < 0:
            errors.append(f"{where}.{key} must be >= 0, got {number}")
        return number

    version = str(raw.get("version", "1.0"))

    # ── Defaults ──
    d_raw = raw.get("defaults") or {}
    default_cycle_length = _int(d_raw, "cycle_length_days", 28, "defaults")
    default_period_duration = _int(d_raw, "period_duration_days", 5, "defaults")

    # ── Period duration window: min <= d < max ──
    pd_raw = raw.get("period_duration") or {}
    period_duration = SanityWindow(
        lower=_int(pd_raw, "min_days", 1, "period_duration"),
        upper=_int(pd_raw, "max_days_exclusive", 15, "period_duration"),
        lower_inclusive=True,
        upper_inclusive=False,
    )

    # ── Cycle length window: min < g < max ──
    cl_raw = raw.get("cycle_length") or {}
    cycle_length = SanityWindow(
        lower=_int(cl_raw, "min_days_exclusive", 15, "cycle_length"),
        upper=_int(cl_raw, "max_days_exclusive", 60, "cycle_length"),
        lower_inclusive=False,
        upper_inclusive=False,
    )

    for name, window in (("period_duration", period_duration), ("cycle_length", cycle_length)):
        if window.lower >= window.upper:
            errors.append(
                f"{name} window is empty: lower={window.lower}, upper={window.upper}"
            )

    max_active = _int(raw, "max_active_period_days", 10, "root")
    if max_active < 1:
        errors.append("max_active_period_days must be at least 1")

    history_raw = raw.get("history") or {}
    chart_cycles = _int(history_raw, "chart_cycles", 6, "history")

    if errors:
        raise ConfigValidationError(
            f"tracking_config.yaml has {len(errors)} validation error(s):\n"
            + "\n".join(f"  • {e}" for e in errors)
        )

    return TrackingConfig(
        version=version,
        default_cycle_length=default_cycle_length,
        default_period_duration=default_period_duration,
        period_duration=period_duration,
        cycle_length=cycle_length,
        max_active_period_days=max_active,
        history_chart_cycles=chart_cycles,
    )


def load_tracking_config(path: Path | None = None) -> TrackingConfig:
    """Load and validate the tracking config from disk.

    Args:
        path: Override path to YAML. Uses the bundled tracking_config.yaml by default.
    """
    target = path or _CONFIG_PATH
    raw = _load_yaml(target)
    config = _validate_and_build(raw)
    logger.info("Loaded tracking config v%s from %s", config.version, target)
    return config


# ---------------------------------------------------------------------------
# Global singleton with hot-reload support
# ---------------------------------------------------------------------------

_config: TrackingConfig | None = None
_config_lock = threading.Lock()


def get_tracking_config() -> TrackingConfig:
    """Return the global TrackingConfig singleton, loading it on first call."""
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:  # double-checked locking
                _config = load_tracking_config()
    return _config


def reload_tracking_config(path: Path | None = None) -> TrackingConfig:
    """Reload the tracking config and replace the global singleton.

    If validation fails, the old config is retained and the error is re-raised.

    Raises:
        ConfigValidationError: If the new config is invalid.
        FileNotFoundError:     If the config file is missing.
    """
    global _config
    new_config = load_tracking_config(path)  # validate before acquiring lock
    with _config_lock:
        old_version = _config.version if _config else "none"
        _config = new_config
    logger.info("Reloaded tracking config: %s → %s", old_version, new_config.version)
    return new_config
