"""Tests for PeriodTracker: onboarding, period start/end, notes, status."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from luna.storage.repository import CycleRepository
from luna.tracking.tracker import NoCycleError, PeriodTracker, ProfileNotFoundError

TEST_TODAY = date(2024, 1, 20)


class TestOnboarding:
    def test_onboard_creates_default_profile_and_open_cycle(
        self, tracker: PeriodTracker, repository: CycleRepository
    ) -> None:
        profile = tracker.onboard("  Mai  ", last_period_start=date(2024, 1, 1))
        assert profile.name == "Mai"
        assert profile.average_cycle_length == 28
        assert profile.average_period_duration == 5

        cycles = repository.get_cycles()
        assert len(cycles) == 1
        assert cycles[0].start_date == date(2024, 1, 1)
        assert cycles[0].end_date is None
        assert tracker.is_onboarded()

    def test_status_before_onboarding_is_none(self, tracker: PeriodTracker) -> None:
        assert tracker.status(today=TEST_TODAY) is None
        assert not tracker.is_onboarded()

    def test_reset_returns_to_onboarding(self, tracker: PeriodTracker) -> None:
        tracker.onboard("Mai", last_period_start=date(2024, 1, 1))
        tracker.reset()
        assert not tracker.is_onboarded()
        assert tracker.history(today=TEST_TODAY) == []


class TestStatus:
    def test_forecast_scenario(self, tracker: PeriodTracker) -> None:
        tracker.onboard("Mai", last_period_start=date(2024, 1, 1))
        status = tracker.status(today=TEST_TODAY)
        assert status.forecast.next_period_date == date(2024, 1, 29)
        assert status.forecast.days_until_next == 9
        assert status.cycle_day == 20
        # Open for 20 days: past the active window
        assert not status.is_on_period

    def test_on_period_within_first_days(self, tracker: PeriodTracker) -> None:
        tracker.onboard("Mai", last_period_start=date(2024, 1, 18))
        status = tracker.status(today=TEST_TODAY)
        assert status.is_on_period
        assert status.cycle_day == 3


class TestPeriodLifecycle:
    def test_end_period_closes_current_cycle(self, tracker: PeriodTracker) -> None:
        tracker.onboard("Mai", last_period_start=date(2024, 1, 1))
        cycle = tracker.end_period(today=date(2024, 1, 4))
        assert cycle.end_date == date(2024, 1, 4)
        profile = tracker.repository.get_profile()
        assert profile.average_period_duration == 4

    def test_start_new_period_closes_previous_as_yesterday(self, tracker: PeriodTracker) -> None:
        tracker.onboard("Mai", last_period_start=date(2024, 1, 1))
        cycles = tracker.start_new_period(today=date(2024, 1, 31))
        assert [c.start_date for c in cycles] == [date(2024, 1, 31), date(2024, 1, 1)]
        assert cycles[0].end_date is None
        assert cycles[1].end_date == date(2024, 1, 30)

    def test_start_new_period_recalculates_cycle_length(self, tracker: PeriodTracker) -> None:
        tracker.onboard("Mai", last_period_start=date(2024, 1, 1))
        tracker.end_period(today=date(2024, 1, 5))
        tracker.start_new_period(today=date(2024, 1, 31))
        profile = tracker.repository.get_profile()
        assert profile.average_cycle_length == 30
        assert profile.average_period_duration == 5

    def test_start_new_period_on_open_cycle_start_day_keeps_it(
        self, tracker: PeriodTracker
    ) -> None:
        tracker.onboard("Mai", last_period_start=TEST_TODAY)
        original = tracker.repository.get_cycles()[0]

        cycles = tracker.start_new_period(today=TEST_TODAY)

        assert cycles == [original]
        assert cycles[0].end_date is None

    def test_start_new_period_twice_same_day_adds_one_cycle(
        self, tracker: PeriodTracker
    ) -> None:
        tracker.onboard("Mai", last_period_start=date(2024, 1, 1))
        tracker.start_new_period(today=date(2024, 1, 29))
        cycles = tracker.start_new_period(today=date(2024, 1, 29))
        assert [c.start_date for c in cycles] == [date(2024, 1, 29), date(2024, 1, 1)]
        assert tracker.repository.get_profile().average_cycle_length == 28

    def test_only_newest_cycle_is_open(self, tracker: PeriodTracker) -> None:
        tracker.onboard("Mai", last_period_start=date(2024, 1, 1))
        start = date(2024, 1, 1)
        for i in range(1, 4):
            tracker.start_new_period(today=start + timedelta(days=29 * i))
        cycles = tracker.repository.get_cycles()
        assert [c.end_date is None for c in cycles] == [True, False, False, False]

    def test_resume_period_clears_end_date(self, tracker: PeriodTracker) -> None:
        tracker.onboard("Mai", last_period_start=date(2024, 1, 1))
        tracker.end_period(today=date(2024, 1, 3))
        cycle = tracker.resume_period()
        assert cycle.end_date is None

    def test_resume_keeps_last_known_average(self, tracker: PeriodTracker) -> None:
        tracker.onboard("Mai", last_period_start=date(2024, 1, 1))
        tracker.end_period(today=date(2024, 1, 3))
        tracker.resume_period()
        assert tracker.repository.get_profile().average_period_duration == 3

    def test_set_end_date_recalculates(self, tracker: PeriodTracker) -> None:
        tracker.onboard("Mai", last_period_start=date(2024, 1, 1))
        tracker.set_end_date(date(2024, 1, 7))
        assert tracker.repository.get_profile().average_period_duration == 7


class TestNotesAndEdits:
    def test_save_note_is_trimmed(self, tracker: PeriodTracker) -> None:
        tracker.onboard("Mai", last_period_start=date(2024, 1, 1))
        cycle = tracker.save_note("  đau bụng nhẹ  ")
        assert cycle.note == "đau bụng nhẹ"
        assert tracker.repository.get_cycles()[0].note == "đau bụng nhẹ"

    def test_blank_note_clears(self, tracker: PeriodTracker) -> None:
        tracker.onboard("Mai", last_period_start=date(2024, 1, 1))
        tracker.save_note("x")
        assert tracker.save_note("   ").note is None

    def test_edit_without_profile_raises(self, tracker: PeriodTracker) -> None:
        with pytest.raises(ProfileNotFoundError):
            tracker.save_note("x")

    def test_edit_without_cycles_raises(self, tracker: PeriodTracker) -> None:
        tracker.onboard("Mai", last_period_start=date(2024, 1, 1))
        cycle_id = tracker.repository.get_cycles()[0].id
        tracker.delete_cycle(cycle_id)
        with pytest.raises(NoCycleError):
            tracker.end_period(today=TEST_TODAY)

    def test_add_and_delete_historical_cycle(self, tracker: PeriodTracker) -> None:
        tracker.onboard("Mai", last_period_start=date(2024, 1, 29))
        added = tracker.add_cycle(date(2024, 1, 1), date(2024, 1, 6))
        profile = tracker.repository.get_profile()
        assert profile.average_cycle_length == 28
        assert profile.average_period_duration == 6

        tracker.delete_cycle(added.id)
        assert len(tracker.repository.get_cycles()) == 1
        # Averages fall back to the last known values
        assert tracker.repository.get_profile().average_cycle_length == 28

    def test_update_cycle_recalculates(self, tracker: PeriodTracker) -> None:
        tracker.onboard("Mai", last_period_start=date(2024, 1, 1))
        cycle = tracker.repository.get_cycles()[0]
        tracker.update_cycle(cycle.model_copy(update={"end_date": date(2024, 1, 2)}))
        assert tracker.repository.get_profile().average_period_duration == 2


class TestHistory:
    def test_history_newest_first_with_durations(self, tracker: PeriodTracker) -> None:
        tracker.onboard("Mai", last_period_start=date(2024, 1, 1))
        tracker.end_period(today=date(2024, 1, 5))
        tracker.start_new_period(today=date(2024, 1, 29))
        entries = tracker.history(today=date(2024, 1, 30))
        assert [e.cycle.start_date for e in entries] == [date(2024, 1, 29), date(2024, 1, 1)]
        assert entries[0].duration is None
        assert entries[0].is_active
        assert entries[1].duration == 5

    def test_duration_chart(self, tracker: PeriodTracker) -> None:
        tracker.onboard("Mai", last_period_start=date(2024, 1, 1))
        tracker.end_period(today=date(2024, 1, 5))
        chart = tracker.duration_chart()
        assert [(p.start_date, p.duration) for p in chart] == [(date(2024, 1, 1), 5)]
