"""User-facing cycle tracking operations.

``PeriodTracker`` is what a view layer talks to: onboarding, starting and
ending a period, editing the current cycle, and reading the dashboard status
and history.  Every cycle mutation is followed by a profile recalculation so
the stored averages always reflect the stored history.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date, timedelta

from luna.models.tracking import Cycle, Profile
from luna.storage.repository import CycleRepository
from luna.tracking.config_loader import TrackingConfig
from luna.tracking.cycle_stats import (
    DurationPoint,
    NextPeriodForecast,
    cycle_day,
    duration_history,
    forecast_next_period,
    is_period_active,
    period_duration,
)

logger = logging.getLogger("luna.tracking.tracker")


class TrackerError(Exception):
    """Base class for tracker operation failures."""


class NoCycleError(TrackerError, LookupError):
    """Raised when an operation needs a current cycle and none is stored."""


class ProfileNotFoundError(TrackerError, LookupError):
    """Raised when an operation runs before onboarding has created a profile."""


@dataclass
class DashboardStatus:
    """Everything the dashboard shows for ``today``.

    Attributes:
        profile:        The stored profile with current averages.
        current_cycle:  Most recent cycle.
        cycle_day:      Day of the current cycle (1 = first day of period).
        is_on_period:   True while the current cycle is an active period.
        forecast:       Next period forecast.
    """

    profile: Profile
    current_cycle: Cycle
    cycle_day: int
    is_on_period: bool
    forecast: NextPeriodForecast


@dataclass
class HistoryEntry:
    cycle: Cycle
    duration: int | None
    is_active: bool


class PeriodTracker:
    """Cycle tracking operations over a ``CycleRepository``.

    Usage::

        tracker = PeriodTracker(CycleRepository(InMemoryStore()))
        tracker.onboard("Mai", last_period_start=date(2024, 1, 1))
        status = tracker.status(today=date(2024, 1, 20))
        print(status.forecast.next_period_date)   # 2024-01-29
    """

    def __init__(self, repository: CycleRepository) -> None:
        self._repo = repository

    @property
    def repository(self) -> CycleRepository:
        return self._repo

    @property
    def _config(self) -> TrackingConfig:
        return self._repo.config

    # ------------------------------------------------------------------
    # Onboarding / reset
    # ------------------------------------------------------------------

    def onboard(self, name: str, last_period_start: date) -> Profile:
        """Create the profile with default averages and seed the first cycle."""
        profile = Profile(
            name=name,
            average_cycle_length=self._config.default_cycle_length,
            average_period_duration=self._config.default_period_duration,
        )
        self._repo.save_profile(profile)
        self._repo.add_cycle(Cycle(id=_new_cycle_id(), start_date=last_period_start))
        logger.info("Onboarded %s with last period start %s", profile.name, last_period_start)
        return profile

    def is_onboarded(self) -> bool:
        return self._repo.get_profile() is not None

    def reset(self) -> None:
        """Erase all stored data, returning the app to onboarding."""
        self._repo.clear_all_data()

    # ------------------------------------------------------------------
    # Cycle mutations
    # ------------------------------------------------------------------

    def start_new_period(self, today: date | None = None) -> list[Cycle]:
        """Record a period starting ``today``.

        An open previous cycle is closed as of yesterday.  If the current
        cycle already started ``today`` it is kept and no second cycle is
        added.
        """
        today = today or date.today()
        current = self._current_cycle_or_none()
        if current is not None and current.start_date >= today:
            logger.info("Period %s already started on %s", current.id, current.start_date)
            return self._repo.get_cycles()
        if current is not None and current.end_date is None:
            close_on = today - timedelta(days=1)
            self._repo.update_cycle(current.model_copy(update={"end_date": close_on}))
            logger.info("Closed open cycle %s on %s", current.id, close_on)

        cycles = self._repo.add_cycle(Cycle(id=_new_cycle_id(), start_date=today))
        self._repo.recalculate_and_save_profile()
        return cycles

    def end_period(self, today: date | None = None) -> Cycle:
        """Mark the current period as ending ``today``."""
        return self.set_end_date(today or date.today())

    def set_end_date(self, end_date: date) -> Cycle:
        """Set the end date of the current cycle."""
        return self._edit_current(end_date=end_date)

    def resume_period(self) -> Cycle:
        """Clear the current cycle's end date, making it ongoing again."""
        return self._edit_current(end_date=None)

    def save_note(self, note: str) -> Cycle:
        """Attach a free-text note to the current cycle (blank clears it)."""
        return self._edit_current(note=note.strip() or None)

    def add_cycle(
        self, start_date: date, end_date: date | None = None, note: str | None = None
    ) -> Cycle:
        """Add a historical cycle and recalculate averages."""
        cycle = Cycle(id=_new_cycle_id(), start_date=start_date, end_date=end_date, note=note)
        self._repo.add_cycle(cycle)
        self._repo.recalculate_and_save_profile()
        return cycle

    def update_cycle(self, cycle: Cycle) -> list[Cycle]:
        cycles = self._repo.update_cycle(cycle)
        self._repo.recalculate_and_save_profile()
        return cycles

    def delete_cycle(self, cycle_id: str) -> list[Cycle]:
        cycles = self._repo.delete_cycle(cycle_id)
        self._repo.recalculate_and_save_profile()
        return cycles

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def status(self, today: date | None = None) -> DashboardStatus | None:
        """Return the dashboard status, or None before onboarding or without cycles."""
        today = today or date.today()
        profile = self._repo.get_profile()
        if profile is None:
            return None
        cycles = self._repo.get_cycles()
        if not cycles:
            return None

        current = cycles[0]
        forecast = forecast_next_period(cycles, profile.average_cycle_length, today)
        return DashboardStatus(
            profile=profile,
            current_cycle=current,
            cycle_day=cycle_day(current, today),
            is_on_period=is_period_active(current, today, self._config),
            forecast=forecast,
        )

    def history(self, today: date | None = None) -> list[HistoryEntry]:
        """All cycles newest first, with their durations."""
        today = today or date.today()
        return [
            HistoryEntry(
                cycle=c,
                duration=period_duration(c),
                is_active=is_period_active(c, today, self._config),
            )
            for c in self._repo.get_cycles()
        ]

    def duration_chart(self) -> list[DurationPoint]:
        return duration_history(self._repo.get_cycles(), self._config)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _current_cycle_or_none(self) -> Cycle | None:
        cycles = self._repo.get_cycles()
        return cycles[0] if cycles else None

    def _edit_current(self, **changes) -> Cycle:
        if self._repo.get_profile() is None:
            raise ProfileNotFoundError("No profile stored; onboard first")
        current = self._current_cycle_or_none()
        if current is None:
            raise NoCycleError("No cycle recorded yet")
        updated = current.model_copy(update=changes)
        self._repo.update_cycle(updated)
        self._repo.recalculate_and_save_profile()
        return updated


def _new_cycle_id() -> str:
    return uuid.uuid4().hex
