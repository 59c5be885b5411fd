"""Pydantic records persisted by Luna: profile, cycles and daily advice."""

from __future__ import annotations

import datetime as dt
from typing import Any

from pydantic import Field, field_validator

from luna.models.base import LunaBase

DEFAULT_CYCLE_LENGTH = 28
DEFAULT_PERIOD_DURATION = 5
LEGACY_ACTIVITY_EMOJI = "✨"


# ---------- Profile ----------

class Profile(LunaBase):
    name: str = Field(min_length=1)
    average_cycle_length: int = Field(default=DEFAULT_CYCLE_LENGTH, alias="averageCycleLength")
    average_period_duration: int = Field(
        default=DEFAULT_PERIOD_DURATION, alias="averagePeriodDuration"
    )


# ---------- Cycles ----------

class Cycle(LunaBase):
    """One recorded period.  ``end_date`` is None while the period is ongoing."""

    id: str = Field(min_length=1)
    start_date: dt.date = Field(alias="startDate")
    end_date: dt.date | None = Field(default=None, alias="endDate")
    note: str | None = None

    @property
    def is_open(self) -> bool:
        return self.end_date is None


# ---------- Daily advice ----------

class Activity(LunaBase):
    emoji: str = LEGACY_ACTIVITY_EMOJI
    text: str


class Menu(LunaBase):
    breakfast: str = ""
    lunch: str = ""
    dinner: str = ""


class DailyAdvice(LunaBase):
    """One day's wellness suggestion as returned by the advice provider."""

    date: dt.date
    mood: str = ""
    menu: Menu = Field(default_factory=Menu)
    activities: list[Activity] = Field(default_factory=list)

    @field_validator("activities", mode="before")
    @classmethod
    def _upgrade_legacy_activities(cls, value: Any) -> Any:
        # Older entries stored activities as bare strings.
        if not isinstance(value, list):
            return value
        return [
            {"emoji": LEGACY_ACTIVITY_EMOJI, "text": item} if isinstance(item, str) else item
            for item in value
        ]
