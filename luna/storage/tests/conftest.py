"""Shared fixtures for storage tests."""

from __future__ import annotations

from datetime import date

import pytest

from luna.models.tracking import DailyAdvice, Menu, Profile
from luna.storage.kv_store import InMemoryStore
from luna.storage.repository import CycleRepository
from luna.tracking.config_loader import TrackingConfig, load_tracking_config


@pytest.fixture
def tracking_config() -> TrackingConfig:
    return load_tracking_config()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def repository(store: InMemoryStore, tracking_config: TrackingConfig) -> CycleRepository:
    return CycleRepository(store, config=tracking_config)


@pytest.fixture
def profile() -> Profile:
    return Profile(name="Mai")


@pytest.fixture
def sample_advice() -> DailyAdvice:
    return DailyAdvice(
        date=date(2024, 1, 20),
        mood="Bạn đang làm rất tốt!",
        menu=Menu(breakfast="Phở gà", lunch="Cơm gạo lứt", dinner="Canh bí đỏ"),
        activities=[{"emoji": "🧘", "text": "Yoga nhẹ nhàng"}],
    )
