"""Pydantic records persisted by Luna."""

from luna.models.tracking import Activity, Cycle, DailyAdvice, Menu, Profile

__all__ = ["Activity", "Cycle", "DailyAdvice", "Menu", "Profile"]
