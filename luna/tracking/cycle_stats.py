"""Cycle statistics and next-period forecasting.

Pure functions over a list of ``Cycle`` records:

- Average period duration (inclusive day count, sanity-windowed)
- Average cycle length (gap between consecutive starts, sanity-windowed)
- Next period forecast from the most recent start
- Current-period detection

Averages return None when no sample survives the sanity window; callers keep
their previous estimate in that case instead of storing zero.

All arithmetic is calendar-day granular.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Sequence

from luna.models.tracking import Cycle, Profile
from luna.tracking.config_loader import TrackingConfig, get_tracking_config

logger = logging.getLogger("luna.tracking.cycle_stats")


@dataclass(frozen=True)
class NextPeriodForecast:
    """Forecast for the next period start.

    Attributes:
        next_period_date: Most recent start + average cycle length.
        days_until_next:  Days from ``today`` to the forecast (negative once passed).
        anchor_date:      Start date of the cycle the forecast counts from.
    """

    next_period_date: date
    days_until_next: int
    anchor_date: date

    @property
    def is_overdue(self) -> bool:
        return self.days_until_next < 0

    @property
    def display_days_until_next(self) -> int:
        """Days until next period, clamped to 0 once the forecast date has passed."""
        return max(0, self.days_until_next)


@dataclass(frozen=True)
class DurationPoint:
    """One bar of the period-duration history chart."""

    start_date: date
    duration: int


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (``round(4.5)`` gives 4)."""
    return int(math.floor(value + 0.5))


def sort_newest_first(cycles: Iterable[Cycle]) -> list[Cycle]:
    """Return cycles ordered by start date descending."""
    return sorted(cycles, key=lambda c: c.start_date, reverse=True)


def period_duration(cycle: Cycle) -> int | None:
    """Return the inclusive period length in days, or None for open cycles.

    The start day counts as day 1, so a period from Jan 1 to Jan 5 lasts 5 days.
    """
    if cycle.end_date is None:
        return None
    return (cycle.end_date - cycle.start_date).days + 1


def cycle_day(cycle: Cycle, today: date) -> int:
    """Return the 1-indexed day of the cycle on ``today``."""
    return (today - cycle.start_date).days + 1


def average_period_duration(
    cycles: Iterable[Cycle], config: TrackingConfig | None = None
) -> int | None:
    """Average inclusive duration over closed cycles inside the sanity window.

    Args:
        cycles: Any cycle collection; open cycles are skipped.
        config: Tracking config supplying the duration window.

    Returns:
        Rounded average in days, or None if no cycle qualifies.
    """
    window = (config or get_tracking_config()).period_duration
    durations = []
    for cycle in cycles:
        duration = period_duration(cycle)
        if duration is None:
            continue
        if not window.accepts(duration):
            logger.debug("Ignoring period duration %d for cycle %s", duration, cycle.id)
            continue
        durations.append(duration)
    if not durations:
        return None
    return round_half_up(sum(durations) / len(durations))


def cycle_gaps(cycles: Iterable[Cycle]) -> list[int]:
    """Return day gaps between each adjacent (newer, older) pair of starts."""
    ordered = sort_newest_first(cycles)
    return [
        (newer.start_date - older.start_date).days
        for newer, older in zip(ordered, ordered[1:])
    ]


def average_cycle_length(
    cycles: Iterable[Cycle], config: TrackingConfig | None = None
) -> int | None:
    """Average gap between consecutive period starts inside the sanity window.

    Returns:
        Rounded average in days, or None if no adjacent pair qualifies.
    """
    window = (config or get_tracking_config()).cycle_length
    gaps = [g for g in cycle_gaps(cycles) if window.accepts(g)]
    if not gaps:
        return None
    return round_half_up(sum(gaps) / len(gaps))


def recompute_profile(
    profile: Profile, cycles: Sequence[Cycle], config: TrackingConfig | None = None
) -> Profile:
    """Return a copy of ``profile`` with averages recomputed from ``cycles``.

    Averages that cannot be computed keep the profile's current value.
    """
    cfg = config or get_tracking_config()
    updates: dict[str, int] = {}

    avg_duration = average_period_duration(cycles, cfg)
    if avg_duration is not None:
        updates["average_period_duration"] = avg_duration

    avg_length = average_cycle_length(cycles, cfg)
    if avg_length is not None:
        updates["average_cycle_length"] = avg_length

    return profile.model_copy(update=updates)


def forecast_next_period(
    cycles: Sequence[Cycle], average_length: int, today: date
) -> NextPeriodForecast | None:
    """Forecast the next period start from the most recent cycle.

    Args:
        cycles:         Cycle collection in any order.
        average_length: Average cycle length in days (from the profile).
        today:          Reference date.

    Returns:
        NextPeriodForecast, or None when there are no cycles.
    """
    if not cycles:
        return None
    latest = max(cycles, key=lambda c: c.start_date)
    next_date = latest.start_date + timedelta(days=average_length)
    return NextPeriodForecast(
        next_period_date=next_date,
        days_until_next=(next_date - today).days,
        anchor_date=latest.start_date,
    )


def is_period_active(
    cycle: Cycle, today: date, config: TrackingConfig | None = None
) -> bool:
    """Return True if ``cycle`` is an ongoing period on ``today``.

    An open cycle only counts as active for ``max_active_period_days`` days
    after its start; a forgotten end date does not keep it active forever.
    """
    if cycle.end_date is not None:
        return False
    max_days = (config or get_tracking_config()).max_active_period_days
    return 1 <= cycle_day(cycle, today) <= max_days


def duration_history(
    cycles: Sequence[Cycle], config: TrackingConfig | None = None
) -> list[DurationPoint]:
    """Period durations of the most recent cycles, oldest first.

    Open cycles and non-positive durations are left out.
    """
    limit = (config or get_tracking_config()).history_chart_cycles
    recent = sort_newest_first(cycles)[:limit]
    points = []
    for cycle in reversed(recent):
        duration = period_duration(cycle)
        if duration is not None and duration > 0:
            points.append(DurationPoint(start_date=cycle.start_date, duration=duration))
    return points
