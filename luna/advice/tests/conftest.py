"""Shared fixtures for advice tests."""

from __future__ import annotations

from datetime import date

import pytest

from luna.advice.provider import AdviceProvider
from luna.models.tracking import DailyAdvice, Menu
from luna.storage.kv_store import InMemoryStore
from luna.storage.repository import CycleRepository
from luna.tracking.config_loader import load_tracking_config


class StubAdviceProvider(AdviceProvider):
    """Provider returning queued results and counting calls."""

    def __init__(self, *results: DailyAdvice | None) -> None:
        self.results = list(results)
        self.calls: list[tuple[int, bool, str]] = []

    async def get_advice(
        self, day_of_cycle: int, is_period: bool, user_name: str
    ) -> DailyAdvice | None:
        self.calls.append((day_of_cycle, is_period, user_name))
        return self.results.pop(0) if self.results else None


@pytest.fixture
def repository() -> CycleRepository:
    return CycleRepository(InMemoryStore(), config=load_tracking_config())


@pytest.fixture
def morning_advice() -> DailyAdvice:
    return DailyAdvice(
        date=date(2024, 1, 20),
        mood="Hôm nay hãy nhẹ nhàng với bản thân nhé.",
        menu=Menu(breakfast="Cháo yến mạch", lunch="Cá hồi áp chảo", dinner="Canh rau ngót"),
        activities=[
            {"emoji": "🚶", "text": "Đi bộ 20 phút"},
            {"emoji": "📖", "text": "Đọc sách trước khi ngủ"},
        ],
    )


@pytest.fixture
def other_advice() -> DailyAdvice:
    return DailyAdvice(
        date=date(2024, 1, 20),
        mood="Một tâm trạng khác",
        menu=Menu(breakfast="Bánh cuốn", lunch="Bún chả", dinner="Lẩu nấm"),
        activities=[{"emoji": "🏊", "text": "Bơi"}],
    )


@pytest.fixture
def stub_provider() -> type[StubAdviceProvider]:
    """The stub provider class; build one with the results it should return."""
    return StubAdviceProvider
